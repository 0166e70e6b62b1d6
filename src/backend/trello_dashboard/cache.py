from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Iterable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    payload: T
    expires_at: float
    generation: int
    tags: Tuple[str, ...] = ()


class TaggedTTLCache(Generic[T]):
    """
    In-process cache with a fixed time-to-live and tag invalidation.

    Invalidation is lazy: ``invalidate_tag`` only bumps a generation counter
    and ``get`` compares it with the generation stored on the entry. Entries
    are never mutated; ``set`` swaps the reference so readers always see
    either the old or the new payload.
    """

    def __init__(self, ttl_seconds: float = 1800, clock: Optional[Callable[[], float]] = None) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._tag_generations: Dict[str, int] = {}

    def generation_for(self, tags: Iterable[str]) -> int:
        return sum(self._tag_generations.get(tag, 0) for tag in tags)

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss for %s", key)
            return None
        if self._clock() >= entry.expires_at:
            logger.debug("Cache entry for %s expired", key)
            return None
        if entry.generation != self.generation_for(entry.tags):
            logger.debug("Cache entry for %s invalidated by tag", key)
            return None
        return entry.payload

    def peek(self, key: str) -> Optional[CacheEntry[T]]:
        """Return the last stored entry for ``key`` even when it is no longer fresh."""

        return self._entries.get(key)

    def set(
        self,
        key: str,
        payload: T,
        tags: Iterable[str] = (),
        generation: Optional[int] = None,
    ) -> CacheEntry[T]:
        """
        Store ``payload`` under ``key``.

        Pass the ``generation`` observed before a slow load started so that an
        invalidation arriving mid-load leaves the stored result already stale.
        """

        tag_tuple = tuple(tags)
        entry = CacheEntry(
            payload=payload,
            expires_at=self._clock() + self.ttl_seconds,
            generation=self.generation_for(tag_tuple) if generation is None else generation,
            tags=tag_tuple,
        )
        self._entries[key] = entry
        return entry

    def invalidate_tag(self, tag: str) -> int:
        generation = self._tag_generations.get(tag, 0) + 1
        self._tag_generations[tag] = generation
        logger.info("Invalidated cache tag %s (generation %d)", tag, generation)
        return generation
