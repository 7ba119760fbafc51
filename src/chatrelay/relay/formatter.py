"""WhatsApp formatter for AI replies, and directive extraction."""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Compiled patterns, module level
# ---------------------------------------------------------------------------

# Proof image directive: [[PROOF_IMAGE:https://...]]
_RE_PROOF_IMAGE = re.compile(r"\[\[PROOF_IMAGE:([^\]]+)\]\]")

# Any other internal directive tag: [[TRANSFER:...]], [[PAYMENT:...]]
_RE_DIRECTIVE_TAG = re.compile(r"\[\[[A-Z_]+:[^\]]*\]\]", re.IGNORECASE)

# Horizontal rules (whole line)
_RE_HRULE_LINE = re.compile(r"^[ \t]*([-*_])\1{2,}[ \t]*$", re.MULTILINE)

# Headings of any level become an emphasized line
_RE_HEADING_LINE = re.compile(r"^[ \t]*#{1,6}[ \t]+(.+?)[ \t#]*$", re.MULTILINE)

# Unordered list items
_RE_LIST_ITEM_LINE = re.compile(r"^([ \t]*)[-*+][ \t]+", re.MULTILINE)

# Inline emphasis (single line only)
_RE_BOLD_STAR = re.compile(r"\*\*([^*\n]+)\*\*")
_RE_BOLD_UNDER = re.compile(r"__([^_\n]+)__")

_RE_BLANK_RUN = re.compile(r"\n{3,}")

DIVIDER = "━━━━━━━━━━━━━━━━━━"
BULLET = "• "


def extract_directive(text: str) -> tuple[str, str | None]:
    """Split a proof-image directive out of an AI reply.

    Returns the text with the directive removed and the resource URL, or the
    original text and None when no directive is present.
    """
    match = _RE_PROOF_IMAGE.search(text)
    if match is None:
        return text, None
    url = match.group(1).strip()
    remaining = (text[: match.start()] + text[match.end() :]).strip()
    return remaining, url or None


def format_output(text: str) -> str:
    """Convert markdown-flavoured AI output to WhatsApp markup.

    Passes are repeated until the text stops changing, so formatting an
    already formatted reply is a no-op.
    """
    while True:
        formatted = _format_pass(text)
        if formatted == text:
            return formatted
        text = formatted


def _format_pass(text: str) -> str:
    text = _RE_DIRECTIVE_TAG.sub("", text)

    # Rules before bullets so "***" and "---" are not read as list items
    text = _RE_HRULE_LINE.sub(DIVIDER, text)
    text = _RE_HEADING_LINE.sub(r"*\1*", text)
    text = _RE_LIST_ITEM_LINE.sub(lambda m: m.group(1) + BULLET, text)

    text = _RE_BOLD_STAR.sub(r"*\1*", text)
    text = _RE_BOLD_UNDER.sub(r"_\1_", text)

    text = _RE_BLANK_RUN.sub("\n\n", text)
    return text.strip()
