"""Inbound text cleanup before triage.

Customer text ends up in history and is replayed to the AI on every later
turn, so anything that looks like a reply directive (``[[PROOF_IMAGE:...]]``)
is removed here; otherwise the AI could echo it back and the relay would act
on it. Prompt-injection phrasing is only reported, never altered.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4_000

FLAG_NULL_BYTES = "null_bytes"
FLAG_TRUNCATED = "truncated"
FLAG_DIRECTIVE = "directive_stripped"
FLAG_INJECTION = "injection_suspected"

_RE_DIRECTIVE = re.compile(r"\[\[\s*[A-Z_]+\s*:[^\]]*\]\]", re.IGNORECASE)

_INJECTION_PATTERNS = (
    re.compile(r"ignore\s+(previous|above|all)\s+(instructions?|prompts?)", re.IGNORECASE),
    re.compile(r"you\s+are\s+now\s+", re.IGNORECASE),
    re.compile(r"system\s*:\s*", re.IGNORECASE),
    re.compile(r"<\|(?:im_start|im_end|system|endoftext)\|>", re.IGNORECASE),
    re.compile(r"\[INST\]|\[/INST\]", re.IGNORECASE),
)


@dataclass(frozen=True, slots=True)
class CleanText:
    text: str
    flags: frozenset[str] = frozenset()

    @property
    def had_directive(self) -> bool:
        return FLAG_DIRECTIVE in self.flags


def sanitize_text(text: str, *, max_length: int = MAX_MESSAGE_LENGTH) -> CleanText:
    """Strip null bytes and forged directives, trim and cap the length."""
    flags: set[str] = set()

    if "\x00" in text:
        text = text.replace("\x00", "")
        flags.add(FLAG_NULL_BYTES)

    text, removed = _RE_DIRECTIVE.subn("", text)
    if removed:
        text = re.sub(r"[ \t]{2,}", " ", text)
        flags.add(FLAG_DIRECTIVE)

    text = text.strip()
    if len(text) > max_length:
        text = text[:max_length].rstrip()
        flags.add(FLAG_TRUNCATED)

    if any(p.search(text) for p in _INJECTION_PATTERNS):
        flags.add(FLAG_INJECTION)

    return CleanText(text=text, flags=frozenset(flags))
