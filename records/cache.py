"""Windowed read-through cache over a RecordStore.

Browsing a record list usually walks consecutive records, so a miss loads a
whole window of neighbours in the active list order instead of one row.

Consistency rules:
  - a window is dropped wholesale when any member id is written, never
    patched in place
  - a written id is marked stale; its next read goes straight to the store
    and the fresh copy is cached on its own
  - every entry also expires after ``ttl`` seconds
  - a load that started before an invalidation of one of its ids is not
    installed, so a slow read cannot resurrect pre-write data
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from records.store import RecordStore
from schemas import Record

logger = logging.getLogger(__name__)


@dataclass
class CacheWindow:
    ids: frozenset[int]
    records: dict[int, Record]
    loaded_at: float
    epoch: int

    def covers(self, record_id: int) -> bool:
        return record_id in self.ids


@dataclass
class _Single:
    record: Record
    loaded_at: float


@dataclass
class _Order:
    ids: list[int]
    loaded_at: float
    epoch: int
    positions: dict[int, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.positions = {record_id: i for i, record_id in enumerate(self.ids)}


class RecordCache:
    def __init__(
        self,
        store: RecordStore,
        window_size: int = 100,
        ttl: float = 3600.0,
        max_windows: int = 10,
        clock: Callable[[], float] = time.monotonic,
    ):
        if window_size < 1:
            raise ValueError("window_size must be positive")
        self.store = store
        self.window_size = window_size
        self.ttl = ttl
        self.max_windows = max_windows
        self._clock = clock

        self._windows: list[CacheWindow] = []
        self._singles: dict[int, _Single] = {}
        self._stale: set[int] = set()
        self._order: Optional[_Order] = None
        self._sort: Optional[tuple[str, bool]] = None

        self._epoch = 0
        self._flushed_at = 0
        self._invalidated: dict[int, tuple[int, float]] = {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, record_id: int) -> Optional[Record]:
        """Return the record, loading a window around it on a miss.

        Returns None when the id does not exist.
        """
        self._expire()

        if record_id in self._stale:
            return await self._reload_single(record_id)

        single = self._singles.get(record_id)
        if single is not None:
            return single.record

        for window in self._windows:
            if window.covers(record_id):
                return window.records.get(record_id)

        started = self._epoch
        window = await self._load_window(record_id, started)
        if window is None:
            return None
        if self._invalidated_since(record_id, started):
            # written while the window was loading
            return await self._reload_single(record_id)
        self._install(window)
        return window.records.get(record_id)

    async def neighbors(self, record_id: int) -> tuple[Optional[int], Optional[int]]:
        """Return the ids before and after ``record_id`` in the active order."""
        self._expire()
        order = await self._ordered_ids()
        pos = order.positions.get(record_id)
        if pos is None:
            return None, None
        prev_id = order.ids[pos - 1] if pos > 0 else None
        next_id = order.ids[pos + 1] if pos + 1 < len(order.ids) else None
        return prev_id, next_id

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def mark_stale(self, record_id: int) -> None:
        """Force the next get(record_id) to bypass every cached copy."""
        self._epoch += 1
        self._invalidated[record_id] = (self._epoch, self._clock())
        self._stale.add(record_id)
        self._singles.pop(record_id, None)
        before = len(self._windows)
        self._windows = [w for w in self._windows if not w.covers(record_id)]
        # an insert or a change to the sort column can move ids in the list
        self._order = None
        logger.debug(
            "Marked record %s stale (dropped %d window(s))",
            record_id, before - len(self._windows),
        )

    def invalidate_all(self) -> None:
        """Drop every cached window, single record and list order."""
        self._epoch += 1
        self._flushed_at = self._epoch
        self._windows.clear()
        self._singles.clear()
        self._stale.clear()
        self._invalidated.clear()
        self._order = None
        logger.info("Record cache cleared")

    def set_sort_order(self, sort_field: Optional[str], descending: bool = False) -> None:
        """Change the list order windows are built in. Clears the cache."""
        sort = (sort_field, descending) if sort_field else None
        if sort != self._sort:
            self._sort = sort
            self.invalidate_all()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _invalidated_since(self, record_id: int, epoch: int) -> bool:
        if epoch < self._flushed_at:
            return True
        marked = self._invalidated.get(record_id)
        return marked is not None and marked[0] > epoch

    def _expire(self) -> None:
        now = self._clock()
        self._windows = [w for w in self._windows if now - w.loaded_at < self.ttl]
        for record_id in [i for i, s in self._singles.items() if now - s.loaded_at >= self.ttl]:
            del self._singles[record_id]
        # windows holding a stale id were dropped when it was marked, so an
        # expired mark only needs forgetting
        for record_id in [i for i, m in self._invalidated.items() if now - m[1] >= self.ttl]:
            del self._invalidated[record_id]
            self._stale.discard(record_id)
        if self._order is not None and now - self._order.loaded_at >= self.ttl:
            self._order = None

    def _install(self, window: CacheWindow) -> None:
        if any(self._invalidated_since(i, window.epoch) for i in window.ids):
            logger.debug("Discarding window loaded before a write to one of its records")
            return
        self._windows.append(window)
        if len(self._windows) > self.max_windows:
            self._windows.pop(0)

    async def _reload_single(self, record_id: int) -> Optional[Record]:
        started = self._epoch
        record = await self.store.get_by_id(record_id)
        if self._invalidated_since(record_id, started):
            # another write landed during the read; stay stale
            return record
        self._stale.discard(record_id)
        if record is not None:
            self._singles[record_id] = _Single(record, self._clock())
        return record

    async def _ordered_ids(self) -> _Order:
        if self._order is None:
            started = self._epoch
            field_name, descending = self._sort if self._sort else (None, False)
            ids = await self.store.ordered_ids(field_name, descending)
            order = _Order(ids=ids, loaded_at=self._clock(), epoch=started)
            if started == self._epoch:
                self._order = order
            return order
        return self._order

    async def _load_window(self, record_id: int, epoch: int) -> Optional[CacheWindow]:
        if self._sort is None:
            top = await self.store.max_id()
            if record_id < 1 or record_id > top:
                return None
            ids = list(range(record_id, min(record_id + self.window_size, top + 1)))
        else:
            order = await self._ordered_ids()
            pos = order.positions.get(record_id)
            if pos is None:
                return None
            ids = order.ids[pos:pos + self.window_size]

        records = await self.store.get_many(ids)
        logger.debug(
            "Loaded cache window of %d record(s) starting at %s", len(records), record_id
        )
        return CacheWindow(
            ids=frozenset(ids),
            records={r.id: r for r in records},
            loaded_at=self._clock(),
            epoch=epoch,
        )
