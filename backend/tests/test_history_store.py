"""Tests for JSON price history storage."""

from datetime import datetime, timezone

import orjson
import pytest

from app.storage import HistoryLoadError, JsonHistoryStore
from core.models import PricePoint

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def history_path(tmp_path):
    return tmp_path / "price_history.json"


class TestJsonHistoryStore:
    """Tests for JsonHistoryStore."""

    @pytest.mark.asyncio
    async def test_missing_file_is_empty_history(self, history_path):
        store = JsonHistoryStore(history_path)

        assert await store.load() == []

    @pytest.mark.asyncio
    async def test_empty_file_is_empty_history(self, history_path):
        history_path.write_text("")
        store = JsonHistoryStore(history_path)

        assert await store.load() == []

    @pytest.mark.asyncio
    async def test_save_then_load(self, history_path):
        store = JsonHistoryStore(history_path)
        points = [
            PricePoint(timestamp=T0, symbol="BTC-USD", price=50000.5),
            PricePoint(timestamp=T0, symbol="ETH-USD", price=3000.25),
        ]

        await store.save(points)

        assert await store.load() == points

    @pytest.mark.asyncio
    async def test_saved_layout(self, history_path):
        store = JsonHistoryStore(history_path)

        await store.save([PricePoint(timestamp=T0, symbol="BTC-USD", price=1.5)])

        assert orjson.loads(history_path.read_bytes()) == [
            {"timestamp": "2024-01-01T12:00:00+00:00", "symbol": "BTC-USD", "price": 1.5}
        ]
        assert not history_path.with_name("price_history.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_save_replaces_whole_file(self, history_path):
        store = JsonHistoryStore(history_path)
        await store.save([PricePoint(timestamp=T0, symbol="BTC-USD", price=1.0)] * 3)

        await store.save([PricePoint(timestamp=T0, symbol="ETH-USD", price=2.0)])

        loaded = await store.load()
        assert [p.symbol for p in loaded] == ["ETH-USD"]

    @pytest.mark.asyncio
    async def test_naive_timestamps_are_utc(self, history_path):
        history_path.write_bytes(orjson.dumps([
            {"timestamp": "2024-01-01T12:00:00", "symbol": "BTC-USD", "price": 1.0}
        ]))
        store = JsonHistoryStore(history_path)

        loaded = await store.load()

        assert loaded[0].timestamp == T0

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, history_path):
        history_path.write_text("[{not json")
        store = JsonHistoryStore(history_path)

        with pytest.raises(HistoryLoadError):
            await store.load()

    @pytest.mark.asyncio
    async def test_non_list_document_raises(self, history_path):
        history_path.write_text('{"BTC-USD": []}')
        store = JsonHistoryStore(history_path)

        with pytest.raises(HistoryLoadError, match="must be a list"):
            await store.load()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", [0, -1.5, "NaN"])
    async def test_non_positive_price_raises(self, history_path, price):
        history_path.write_bytes(orjson.dumps([
            {"timestamp": "2024-01-01T12:00:00+00:00", "symbol": "BTC-USD", "price": price},
        ]))
        store = JsonHistoryStore(history_path)

        with pytest.raises(HistoryLoadError, match="#0"):
            await store.load()

    @pytest.mark.asyncio
    async def test_malformed_record_raises(self, history_path):
        history_path.write_bytes(orjson.dumps([
            {"timestamp": "2024-01-01T12:00:00+00:00", "symbol": "BTC-USD", "price": 1.0},
            {"timestamp": "yesterday", "symbol": "BTC-USD", "price": 1.0},
        ]))
        store = JsonHistoryStore(history_path)

        with pytest.raises(HistoryLoadError, match="#1"):
            await store.load()
