"""chatrelay — triage, caching and session control for an AI chat relay."""

__version__ = "0.1.0"
