"""
Completion response cache.

Low-temperature completions are close to deterministic, so identical
requests inside the TTL window are answered from memory. The cache is
shared by every request in the process and may be touched from worker
threads (uvicorn, the CLI), so all access goes through one lock.
"""

import hashlib
import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from .base import ChatMessage, CompletionOptions


logger = logging.getLogger(__name__)


@dataclass
class CompletionCacheEntry:
    response: str
    created_at: float


def make_cache_key(messages: list[ChatMessage], options: CompletionOptions) -> str:
    """Deterministic hash of the serialized request."""
    payload = {
        "messages": [m.to_dict() for m in messages],
        "options": options.cache_fields(),
    }
    raw = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class CompletionCache:
    """
    TTL cache with a hard capacity.

    Expired entries are swept once the cache grows past sweep_threshold.
    If live entries still exceed capacity, the least recently used are
    evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        sweep_threshold: int = 100,
        capacity: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.sweep_threshold = sweep_threshold
        self.capacity = capacity
        self._clock = clock
        self._entries: OrderedDict[str, CompletionCacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> str | None:
        """Return the cached response, or None if absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.response

    def set(self, key: str, response: str) -> None:
        with self._lock:
            self._entries[key] = CompletionCacheEntry(response, self._clock())
            self._entries.move_to_end(key)

            if len(self._entries) > self.sweep_threshold:
                self._sweep_expired()

            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry {evicted[:12]}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _is_expired(self, entry: CompletionCacheEntry) -> bool:
        return self._clock() - entry.created_at >= self.ttl_seconds

    def _sweep_expired(self) -> None:
        # Caller holds the lock
        expired = [k for k, e in self._entries.items() if self._is_expired(e)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")
