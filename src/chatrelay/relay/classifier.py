"""Message classifier — heuristic complexity tiers for inbound chat text.

Maps a message to one of three tiers using pure regex/string checks:
instant (answered from a canned table), simple (short general question) or
complex (transactional, needs full instructions and a larger context window).
Zero AI cost for triage decisions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class Tier(Enum):
    """Cost/context bucket for an inbound message."""

    instant = "instant"
    simple = "simple"
    complex = "complex"


@dataclass(frozen=True, slots=True)
class Classification:
    """Classification decision, with the canned reply for the instant tier."""

    tier: Tier
    instant_reply: str | None = None


_GREETING_REPLY = "Hello! 👋 How can I help you today? Ask me about rates or sending money."
_THANKS_REPLY = "You're welcome! 😊 Anything else I can help with?"
_FAREWELL_REPLY = "Goodbye! 👋 Message me any time you need to send money."
_HOW_ARE_YOU_REPLY = "I'm doing great, thanks for asking! 😊 How can I help you today?"
_HELP_REPLY = (
    "I can help you with:\n"
    "• Exchange rates\n"
    "• Sending money\n"
    "• Checking a transfer status\n\n"
    "Just tell me what you need!"
)

# Normalized phrase -> canned reply. Longer phrases are matched first.
INSTANT_REPLIES: dict[str, str] = {
    # English
    "hi": _GREETING_REPLY,
    "hello": _GREETING_REPLY,
    "hey": _GREETING_REPLY,
    "good morning": _GREETING_REPLY,
    "good afternoon": _GREETING_REPLY,
    "good evening": _GREETING_REPLY,
    "thanks": _THANKS_REPLY,
    "thank you": _THANKS_REPLY,
    "thx": _THANKS_REPLY,
    "bye": _FAREWELL_REPLY,
    "goodbye": _FAREWELL_REPLY,
    "see you": _FAREWELL_REPLY,
    "how are you": _HOW_ARE_YOU_REPLY,
    "help": _HELP_REPLY,
    "what can you do": _HELP_REPLY,
    # French
    "bonjour": _GREETING_REPLY,
    "bonsoir": _GREETING_REPLY,
    "salut": _GREETING_REPLY,
    "merci": _THANKS_REPLY,
    "au revoir": _FAREWELL_REPLY,
    "ça va": _HOW_ARE_YOU_REPLY,
    # Kinyarwanda
    "muraho": "Muraho! 👋 Nagufasha iki uyu munsi?",
    "mwaramutse": "Mwaramutse! ☀️ Nagufasha iki?",
    "mwiriwe": "Mwiriwe! 👋 Nagufasha iki?",
    "amakuru": "Ni meza! 😊 Nagufasha iki uyu munsi?",
    "murakoze": "Murakoze namwe! 🙏 Hari ikindi nagufasha?",
    "urakoze": "Nta kibazo! 🙏 Hari ikindi nagufasha?",
    "murabeho": "Murabeho! 👋",
    # Russian
    "привет": "Привет! 👋 Чем могу помочь?",
    "здравствуйте": "Здравствуйте! 👋 Чем могу помочь?",
    "спасибо": "Пожалуйста! 😊 Могу ещё чем-то помочь?",
    "пока": "До свидания! 👋",
    "до свидания": "До свидания! 👋",
}

_INSTANT_PHRASES = sorted(INSTANT_REPLIES, key=len, reverse=True)

_BOUNDARY_CHARS = frozenset(" \t!?.,;:)👋🙏😊")

_CURRENCY = (
    r"(?:usd|eur|gbp|rub|rwf|frw|kes|ugx|tzs"
    r"|dollars?|euros?|rubles?|roubles?|francs?|\$|€|£|₽)"
)

# Evaluated in order; first match wins
COMPLEX_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Monetary transaction verbs (en/fr/rw/ru)
    re.compile(
        r"\b(send|sending|transfer|transferring|pay|payment|deposit|withdraw|remit"
        r"|envoyer|envoi|virement|kohereza|ohereza|yohereje"
        r"|перевод|перевести|отправить)\b",
        re.IGNORECASE,
    ),
    # Status / tracking / proof requests
    re.compile(
        r"\b(status|track|tracking|proof|receipt|screenshot|confirm|confirmation"
        r"|where is my|not received|haven'?t received|reçu|preuve|statut)\b",
        re.IGNORECASE,
    ),
    # Long alphanumeric token containing a digit (candidate transaction id)
    re.compile(r"\b(?=[a-z0-9-]*\d)(?=[a-z0-9-]*[a-z])[a-z0-9-]{8,}\b", re.IGNORECASE),
    # Amount followed by currency: "100 USD", "10k rub", "5,000 rwf"
    re.compile(rf"\d[\d,.\s]*k?\s?{_CURRENCY}(?![a-z])", re.IGNORECASE),
    # Currency followed by amount: "$100", "usd 250"
    re.compile(rf"{_CURRENCY}\s?\d", re.IGNORECASE),
)

# Thresholds
SIMPLE_MAX_CHARS = 50


def normalize(text: str) -> str:
    """Trim, lowercase and collapse inner whitespace."""
    return " ".join(text.strip().lower().split())


def is_complex(normalized: str) -> bool:
    """Whether normalized text matches any transactional/status pattern."""
    return any(p.search(normalized) for p in COMPLEX_PATTERNS)


def _match_instant(normalized: str) -> str | None:
    reply = INSTANT_REPLIES.get(normalized.rstrip("!?. "))
    if reply is not None:
        return reply

    for phrase in _INSTANT_PHRASES:
        if not normalized.startswith(phrase) or len(normalized) == len(phrase):
            continue
        if normalized[len(phrase)] in _BOUNDARY_CHARS:
            return INSTANT_REPLIES[phrase]
    return None


class MessageClassifier:
    """Classifies inbound message text into complexity tiers."""

    def classify(self, text: str) -> Classification:
        """Classify text using heuristics only.

        Order of checks:
        1. Transaction / status / id / amount pattern → complex
        2. Greeting, thanks, farewell or FAQ phrase → instant
        3. Short text → simple
        4. Fallback → complex
        """
        normalized = normalize(text)

        if is_complex(normalized):
            return Classification(tier=Tier.complex)

        reply = _match_instant(normalized)
        if reply is not None:
            return Classification(tier=Tier.instant, instant_reply=reply)

        if len(normalized) < SIMPLE_MAX_CHARS:
            return Classification(tier=Tier.simple)

        return Classification(tier=Tier.complex)


# Module-level classifier instance
_classifier = MessageClassifier()


def classify(text: str) -> Classification:
    """Classify text with the shared classifier."""
    return _classifier.classify(text)
