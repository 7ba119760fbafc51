"""In-memory response cache — skips AI calls for repeated rate/price lookups.

Only non-personalized, non-transactional queries produce a cache key, so a
cached answer is safe to hand to any sender. Entries expire after a fixed TTL
and are purged opportunistically once the store grows past a threshold.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from chatrelay.relay.classifier import is_complex, normalize

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

KEY_PREFIX = "rate:"

_RATE_INTENT = re.compile(
    r"\b(rates?|price|prices|pricing|exchange|fx|fee|fees"
    r"|taux|prix|change|igiciro|ibiciro|ivunjisha|курс|обмен)\b",
    re.IGNORECASE,
)

# First-person wording means the answer depends on who is asking
_PERSONAL = re.compile(
    r"\b(i|i'm|i've|me|my|mine|je|mon|ma|mes|nje|я|мой|моя|мне)\b",
    re.IGNORECASE,
)


def cache_key(text: str) -> str | None:
    """Return the cache key for a cacheable rate query, else None."""
    normalized = normalize(text)
    if not normalized or not _RATE_INTENT.search(normalized):
        return None
    if _PERSONAL.search(normalized) or is_complex(normalized):
        return None
    return KEY_PREFIX + normalized


@dataclass(slots=True)
class CacheEntry:
    response: str
    created_at: float


class ResponseCache:
    """TTL-bounded key/value store for AI answers.

    Expired entries are treated as misses on read but only removed by the
    sweep that runs when ``set`` pushes the store past ``max_entries``.
    """

    def __init__(
        self,
        ttl: float = 300.0,
        max_entries: int = 100,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at >= self.ttl:
            return None
        return entry.response

    def set(self, key: str, response: str) -> None:
        self._entries[key] = CacheEntry(response=response, created_at=self._clock())
        if len(self._entries) > self.max_entries:
            removed = self.sweep()
            logger.debug("Response cache sweep removed %d expired entries", removed)

    def sweep(self) -> int:
        """Drop every entry older than the TTL. Returns the number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.created_at >= self.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
