"""Tests for the sliding price window."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.models import PricePoint
from core.price_window import SlidingPriceWindow

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def point(symbol: str, minutes: float, price: float = 100.0) -> PricePoint:
    return PricePoint(timestamp=T0 + timedelta(minutes=minutes), symbol=symbol, price=price)


class TestAppendAndView:
    """Tests for the write and read paths."""

    def test_view_returns_prices_in_insertion_order(self):
        window = SlidingPriceWindow(retention=timedelta(hours=3))
        for i, price in enumerate([3.0, 1.0, 2.0]):
            window.append(point("BTC-USD", i, price))

        assert window.view("BTC-USD", T0) == [3.0, 1.0, 2.0]

    def test_view_is_time_bounded(self):
        window = SlidingPriceWindow(retention=timedelta(hours=3))
        for i in range(5):
            window.append(point("BTC-USD", i, 100.0 + i))

        assert window.view("BTC-USD", T0 + timedelta(minutes=3)) == [103.0, 104.0]

    def test_view_separates_symbols(self):
        window = SlidingPriceWindow()
        window.append(point("BTC-USD", 0, 50000.0))
        window.append(point("ETH-USD", 0, 3000.0))

        assert window.view("BTC-USD", T0) == [50000.0]
        assert window.view("ETH-USD", T0) == [3000.0]
        assert window.view("DOGE-USD", T0) == []

    def test_view_does_not_mutate(self):
        window = SlidingPriceWindow()
        window.append(point("BTC-USD", 0))

        prices = window.view("BTC-USD", T0)
        prices.append(1.0)

        assert window.view("BTC-USD", T0) == [100.0]
        assert len(window) == 1

    def test_latest(self):
        window = SlidingPriceWindow()
        assert window.latest("BTC-USD") is None

        window.append(point("BTC-USD", 0, 1.0))
        window.append(point("BTC-USD", 1, 2.0))

        assert window.latest("BTC-USD").price == 2.0

    def test_points_keep_global_order(self):
        window = SlidingPriceWindow()
        window.append(point("BTC-USD", 0))
        window.append(point("ETH-USD", 0))
        window.append(point("BTC-USD", 1))

        assert [p.symbol for p in window.points()] == ["BTC-USD", "ETH-USD", "BTC-USD"]
        assert len(window.points("BTC-USD")) == 2


class TestPrune:
    """Tests for age-based eviction."""

    def test_prune_removes_only_old_points(self):
        window = SlidingPriceWindow(retention=timedelta(minutes=60))
        for i in range(0, 120, 10):
            window.append(point("BTC-USD", i))

        now = T0 + timedelta(minutes=120)
        removed = window.prune(now)

        cutoff = now - timedelta(minutes=60)
        kept = window.points("BTC-USD")
        assert removed == 6
        assert all(p.timestamp >= cutoff for p in kept)
        assert [p.timestamp for p in kept] == [
            T0 + timedelta(minutes=m) for m in range(60, 120, 10)
        ]

    def test_point_exactly_at_cutoff_is_kept(self):
        window = SlidingPriceWindow(retention=timedelta(minutes=60))
        window.append(point("BTC-USD", 0))

        assert window.prune(T0 + timedelta(minutes=60)) == 0
        assert len(window) == 1

    def test_prune_is_idempotent(self):
        window = SlidingPriceWindow(retention=timedelta(minutes=30))
        for i in range(60):
            window.append(point("BTC-USD", i))
            window.append(point("ETH-USD", i))

        now = T0 + timedelta(minutes=60)
        first = window.prune(now)
        second = window.prune(now)

        assert first > 0
        assert second == 0

    def test_prune_is_fifo_per_symbol(self):
        """Eviction stops at the first point still inside the horizon."""
        window = SlidingPriceWindow(retention=timedelta(minutes=30))
        window.append(point("BTC-USD", 0, 1.0))
        window.append(point("BTC-USD", 50, 2.0))
        # Out of order: older timestamp behind a newer one
        window.append(point("BTC-USD", 5, 3.0))

        window.prune(T0 + timedelta(minutes=60))

        assert [p.price for p in window.points("BTC-USD")] == [2.0, 3.0]
        assert [p.price for p in window.points()] == [2.0, 3.0]

    def test_prune_interleaved_symbols(self):
        window = SlidingPriceWindow(retention=timedelta(minutes=10))
        window.append(point("BTC-USD", 0))
        window.append(point("ETH-USD", 20))
        window.append(point("SOL-USD", 0))

        removed = window.prune(T0 + timedelta(minutes=20))

        assert removed == 2
        assert [p.symbol for p in window.points()] == ["ETH-USD"]
        assert window.symbols == ["ETH-USD"]

    def test_prune_without_evictions_leaves_clean_window(self):
        window = SlidingPriceWindow(retention=timedelta(minutes=10))
        assert window.prune(T0) == 0
        assert not window.is_dirty

        window.append(point("BTC-USD", 0))
        assert window.is_dirty


class TestLifecycle:
    """Tests for open / flush / close against a store."""

    @pytest.fixture
    def store(self):
        store = MagicMock()
        store.load = AsyncMock(return_value=[point("BTC-USD", 0, 1.0), point("BTC-USD", 1, 2.0)])
        store.save = AsyncMock()
        return store

    @pytest.mark.asyncio
    async def test_open_loads_history_verbatim(self, store):
        window = SlidingPriceWindow(retention=timedelta(minutes=1), store=store)

        loaded = await window.open()

        assert loaded == 2
        assert window.view("BTC-USD", T0) == [1.0, 2.0]
        assert not window.is_dirty

    @pytest.mark.asyncio
    async def test_open_propagates_store_errors(self, store):
        store.load = AsyncMock(side_effect=RuntimeError("corrupt"))
        window = SlidingPriceWindow(store=store)

        with pytest.raises(RuntimeError, match="corrupt"):
            await window.open()

    @pytest.mark.asyncio
    async def test_flush_writes_full_history_only_when_dirty(self, store):
        window = SlidingPriceWindow(store=store)
        await window.open()

        assert await window.flush() is False
        store.save.assert_not_called()

        window.append(point("ETH-USD", 2, 3.0))
        assert await window.flush() is True

        saved = store.save.call_args[0][0]
        assert [p.price for p in saved] == [1.0, 2.0, 3.0]
        assert not window.is_dirty

    @pytest.mark.asyncio
    async def test_close_flushes_and_rejects_appends(self, store):
        window = SlidingPriceWindow(store=store)
        await window.open()
        window.append(point("BTC-USD", 2))

        await window.close()

        store.save.assert_called_once()
        assert window.is_closed
        with pytest.raises(RuntimeError):
            window.append(point("BTC-USD", 3))

    @pytest.mark.asyncio
    async def test_independent_instances(self):
        first = SlidingPriceWindow()
        second = SlidingPriceWindow()
        await first.open()
        await second.open()

        first.append(point("BTC-USD", 0))

        assert len(first) == 1
        assert len(second) == 0

    @pytest.mark.asyncio
    async def test_points_appended_during_flush_are_saved_on_close(self):
        saved = []
        gate = asyncio.Event()

        class SlowStore:
            async def load(self):
                return []

            async def save(self, points):
                await gate.wait()
                saved.append([p.price for p in points])

        window = SlidingPriceWindow(store=SlowStore())
        await window.open()
        window.append(point("BTC-USD", 0, 1.0))

        flushing = asyncio.create_task(window.flush())
        await asyncio.sleep(0)
        window.append(point("BTC-USD", 1, 2.0))
        gate.set()
        await flushing

        assert window.is_dirty

        await window.close()

        assert saved[-1] == [1.0, 2.0]
