"""In-process snapshot cache with a precomputed-snapshot fallback chain.

Resolution order on ``get()``:

1. A cached value younger than ``ttl`` is returned unchanged.
2. ``load_snapshot()`` is awaited. It returns ``None`` when the precomputed
   source is unusable (missing relation, empty), or ``(value, computed_at)``.
   Snapshots older than ``max_snapshot_age`` are discarded.
3. ``compute_live()`` is awaited.

The cache is written after a usable snapshot load or a live computation and
never after a discarded snapshot. Loader exceptions propagate to the caller
and leave the previous entry in place.

Usage:
    from libs.common.snapshot_cache import SnapshotCache

    cache = SnapshotCache(
        name="global_stats",
        ttl=timedelta(hours=1),
        max_snapshot_age=timedelta(hours=24),
        load_snapshot=load_global_snapshot,
        compute_live=compute_global_live,
    )
    stats = await cache.get()
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SnapshotLoader = Callable[[], Awaitable[Optional[tuple[T, datetime]]]]
LiveLoader = Callable[[], Awaitable[T]]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    loaded_at: datetime
    source: str


class SnapshotCache(Generic[T]):
    """TTL cache for a single value that is replaced wholesale, never patched."""

    def __init__(
        self,
        *,
        name: str,
        ttl: timedelta,
        max_snapshot_age: timedelta,
        load_snapshot: SnapshotLoader,
        compute_live: LiveLoader,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.name = name
        self.ttl = ttl
        self.max_snapshot_age = max_snapshot_age
        self._load_snapshot = load_snapshot
        self._compute_live = compute_live
        self._clock = clock
        self._entry: Optional[CacheEntry[T]] = None

    @property
    def entry(self) -> Optional[CacheEntry[T]]:
        return self._entry

    def invalidate(self) -> None:
        self._entry = None

    async def get(self) -> T:
        entry = self._entry
        if entry is not None and self._clock() - entry.loaded_at < self.ttl:
            logger.debug("Using cached %s (source=%s)", self.name, entry.source)
            return entry.value

        snapshot = await self._load_snapshot()
        if snapshot is not None:
            value, computed_at = snapshot
            age = self._clock() - ensure_utc(computed_at)
            if age <= self.max_snapshot_age:
                logger.info(
                    "Using %s from snapshot (%dm old)",
                    self.name,
                    int(age.total_seconds() // 60),
                )
                return self._store(value, "snapshot")
            logger.warning(
                "%s snapshot is stale (%dh old), falling back to live query",
                self.name,
                int(age.total_seconds() // 3600),
            )

        logger.info("Computing %s with live query", self.name)
        value = await self._compute_live()
        return self._store(value, "live")

    def _store(self, value: T, source: str) -> T:
        self._entry = CacheEntry(value=value, loaded_at=self._clock(), source=source)
        return value
