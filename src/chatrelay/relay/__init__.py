"""Relay core — classification, caching, session state, formatting, and the message pipeline."""

from chatrelay.relay.cache import ResponseCache, cache_key
from chatrelay.relay.classifier import Classification, MessageClassifier, Tier, classify
from chatrelay.relay.formatter import extract_directive, format_output
from chatrelay.relay.pipeline import MessagePipeline
from chatrelay.relay.session_store import Conversation, SessionStore, Turn

__all__ = [
    "Classification",
    "Conversation",
    "MessageClassifier",
    "MessagePipeline",
    "ResponseCache",
    "SessionStore",
    "Tier",
    "Turn",
    "cache_key",
    "classify",
    "extract_directive",
    "format_output",
]
