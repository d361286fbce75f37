from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from .models import TaskEntity

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 600.0


# PUBLIC_INTERFACE
class TaskCache:
    """
    Time-bounded cache of each owner's full task list.

    The unit of caching is the owner's entire list because the only cached read
    path is "list all tasks for owner". Writes never update an entry in place;
    they call ``invalidate`` so the next read goes back to the store.

    Each owner also has a generation number that ``invalidate`` bumps. A reader
    takes ``generation(owner)`` before querying the store and hands it to
    ``put``; a snapshot taken before a write that has since invalidated is
    discarded instead of cached.

    No locks are taken: every operation is a single dict read, assignment or
    pop, and operations for different owners never touch the same key.

    Args:
        ttl_seconds: Lifetime of an entry, counted from its ``put``.
        clock: Monotonic time source in seconds. Injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, Tuple[float, List[TaskEntity]]] = {}
        self._generations: Dict[str, int] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, owner_id: str) -> Optional[List[TaskEntity]]:
        """Return a copy of the owner's cached list, or None if absent or expired."""
        entry = self._entries.get(owner_id)
        if entry is None:
            return None
        expires_at, tasks = entry
        if self._clock() >= expires_at:
            # Only drop the entry we looked at; a concurrent put may have replaced it.
            if self._entries.get(owner_id) is entry:
                self._entries.pop(owner_id, None)
            return None
        return [t.copy() for t in tasks]

    def generation(self, owner_id: str) -> int:
        """Current invalidation count for the owner; pass it to ``put``."""
        return self._generations.get(owner_id, 0)

    def put(self, owner_id: str, tasks: List[TaskEntity], generation: Optional[int] = None) -> bool:
        """
        Store (or replace) the owner's list and restart its TTL.

        When ``generation`` is given and the owner has been invalidated since
        it was read, nothing is stored. Returns whether the list was cached.
        """
        if generation is not None and generation != self.generation(owner_id):
            logger.debug("Dropped stale task list for owner %s", owner_id)
            return False

        now = self._clock()
        self.purge_expired(now)
        entry = (now + self._ttl, [t.copy() for t in tasks])
        self._entries[owner_id] = entry
        if generation is not None and generation != self.generation(owner_id):
            # An invalidate slipped in between the check and the store.
            if self._entries.get(owner_id) is entry:
                self._entries.pop(owner_id, None)
            return False
        return True

    def invalidate(self, owner_id: str) -> None:
        """Drop the owner's entry and bump its generation. Safe to repeat."""
        self._generations[owner_id] = self._generations.get(owner_id, 0) + 1
        if self._entries.pop(owner_id, None) is not None:
            logger.debug("Invalidated task cache for owner %s", owner_id)

    def purge_expired(self, now: Optional[float] = None) -> int:
        """Remove every expired entry; returns how many were dropped."""
        now = self._clock() if now is None else now
        expired = [owner for owner, (expires_at, _) in list(self._entries.items()) if now >= expires_at]
        for owner in expired:
            self._entries.pop(owner, None)
        return len(expired)

    def __contains__(self, owner_id: object) -> bool:
        return isinstance(owner_id, str) and self.get(owner_id) is not None

    def __len__(self) -> int:
        return len(self._entries)
