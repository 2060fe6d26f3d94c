"""Sliding window of recent prices per symbol.

The window is owned by the ingestion loop, which is its only writer.
Readers (decision engine, API, WebSocket pushes) get copied lists, so the
window may keep changing underneath them without affecting a read that
is already in progress.

Persistence is delegated to an injected HistoryStore:
- open() reloads the stored history verbatim
- flush() writes the whole history when something changed
- close() flushes one last time and rejects further appends
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timedelta

from core.models import PricePoint
from core.strategy.protocol import HistoryStore

logger = logging.getLogger(__name__)


class SlidingPriceWindow:
    """Per-symbol price history with age-based eviction."""

    def __init__(
        self,
        retention: timedelta = timedelta(hours=3),
        store: HistoryStore | None = None,
    ):
        """
        Args:
            retention: Maximum age of a point before prune() evicts it
            store: Optional durable storage for the raw history
        """
        self.retention = retention
        self._store = store
        self._series: dict[str, deque[PricePoint]] = {}
        # Global insertion order, used for the flat persisted layout
        self._log: deque[PricePoint] = deque()
        self._dirty = False
        # Bumped on every mutation; flush() only clears _dirty if unchanged
        self._version = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> int:
        """Load persisted history into the window.

        Store errors propagate; an unreadable history is a startup failure.

        Returns:
            Number of points loaded
        """
        self._closed = False
        if self._store is None:
            return 0

        points = await self._store.load()
        for point in points:
            self._insert(point)
        self._dirty = False

        logger.info(f"Loaded {len(points)} price points from history")
        return len(points)

    async def flush(self) -> bool:
        """Write the full history to the store if it changed.

        Returns:
            True if a write happened
        """
        if self._store is None or not self._dirty:
            return False

        version = self._version
        snapshot = list(self._log)
        await self._store.save(snapshot)
        # Points appended while saving stay pending for the next flush
        if self._version == version:
            self._dirty = False
        logger.debug(f"Flushed {len(snapshot)} price points")
        return True

    async def close(self) -> None:
        """Flush pending changes and stop accepting points."""
        if self._closed:
            return
        try:
            await self.flush()
        finally:
            self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def _insert(self, point: PricePoint) -> None:
        series = self._series.get(point.symbol)
        if series is None:
            series = self._series[point.symbol] = deque()
        series.append(point)
        self._log.append(point)

    def append(self, point: PricePoint) -> None:
        """Add a point to the tail of its symbol's series."""
        if self._closed:
            raise RuntimeError("Cannot append to a closed price window")
        self._insert(point)
        self._version += 1
        self._dirty = True

    def prune(self, now: datetime) -> int:
        """Evict points older than ``now - retention`` from the head.

        Eviction is FIFO: a series stops at the first point that is still
        inside the horizon.

        Returns:
            Number of points removed
        """
        cutoff = now - self.retention
        evicted: set[int] = set()

        for symbol in list(self._series):
            series = self._series[symbol]
            while series and series[0].timestamp < cutoff:
                evicted.add(id(series.popleft()))
            if not series:
                del self._series[symbol]

        if evicted:
            remaining = len(evicted)
            while self._log and id(self._log[0]) in evicted:
                self._log.popleft()
                remaining -= 1
            # Evicted points can sit behind the log head when symbols interleave
            if remaining:
                self._log = deque(p for p in self._log if id(p) not in evicted)
            self._version += 1
            self._dirty = True
            logger.debug(f"Pruned {len(evicted)} price points older than {cutoff}")

        return len(evicted)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def view(self, symbol: str, since: datetime) -> list[float]:
        """Prices for ``symbol`` with ``timestamp >= since``, in insertion order."""
        series = self._series.get(symbol)
        if not series:
            return []
        return [p.price for p in series if p.timestamp >= since]

    def points(self, symbol: str | None = None) -> list[PricePoint]:
        """Copy of the retained points, for one symbol or all of them."""
        if symbol is None:
            return list(self._log)
        return list(self._series.get(symbol, ()))

    def latest(self, symbol: str) -> PricePoint | None:
        """Most recently appended point for ``symbol``."""
        series = self._series.get(symbol)
        if not series:
            return None
        return series[-1]

    @property
    def symbols(self) -> list[str]:
        return list(self._series)

    def __len__(self) -> int:
        return len(self._log)
