"""Tests for user-initiated order placement."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services import OrderService, format_limit_price


@pytest.fixture
def gateway():
    gw = MagicMock()
    gw.get_trading_pairs = AsyncMock(return_value={"results": [
        {"symbol": "BTC-USD", "status": "tradable"},
        {"symbol": "ETH-USD", "status": "tradable"},
    ]})
    gw.place_order = AsyncMock(return_value={"id": "order-1", "state": "open"})
    gw.cancel_order = AsyncMock(return_value={"detail": "ok"})
    return gw


@pytest.fixture
def market_data():
    source = MagicMock()
    source.get_best_bid_ask = AsyncMock(return_value=[
        {"symbol": "BTC-USD", "price": "64000.1234567"},
    ])
    return source


@pytest.fixture
def service(gateway, market_data):
    return OrderService(gateway=gateway, market_data=market_data)


class TestFormatLimitPrice:
    """Tests for limit price formatting."""

    def test_six_decimals(self):
        assert format_limit_price(64000.1234567) == "64000.123457"
        assert format_limit_price(1.0) == "1.000000"


class TestPlaceTrade:
    """Tests for OrderService.place_trade."""

    @pytest.mark.asyncio
    async def test_buy_is_market_order(self, service, gateway):
        result = await service.place_trade("btc-usd", "buy", "0.001")

        assert result.success
        assert result.message == "Order placed successfully!"
        assert result.order == {"id": "order-1", "state": "open"}

        client_order_id, side, order_type, symbol, config = gateway.place_order.call_args[0]
        assert client_order_id
        assert (side, order_type, symbol) == ("buy", "market", "BTC-USD")
        assert config == {"asset_quantity": "0.001"}

    @pytest.mark.asyncio
    async def test_sell_is_limit_order_at_latest_price(self, service, gateway, market_data):
        result = await service.place_trade("BTC-USD", "SELL", "0.5")

        assert result.success
        _, side, order_type, symbol, config = gateway.place_order.call_args[0]
        assert (side, order_type) == ("sell", "limit")
        assert config == {"asset_quantity": "0.5", "limit_price": "64000.123457"}
        market_data.get_best_bid_ask.assert_awaited_once_with(["BTC-USD"])

    @pytest.mark.asyncio
    async def test_sell_without_price_is_rejected(self, service, gateway, market_data):
        market_data.get_best_bid_ask = AsyncMock(return_value=[])

        result = await service.place_trade("BTC-USD", "sell", "0.5")

        assert not result.success
        assert result.message == "No current price for BTC-USD, cannot set a limit price."
        gateway.place_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_action(self, service, gateway):
        result = await service.place_trade("BTC-USD", "hodl", "1")

        assert result.message == 'Unknown action "hodl".'
        gateway.get_trading_pairs.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount,message", [
        ("abc", 'Quantity "abc" is not a number.'),
        (None, 'Quantity "None" is not a number.'),
        ("0", "Quantity must be greater than zero."),
        ("-1", "Quantity must be greater than zero."),
        ("nan", "Quantity must be greater than zero."),
    ])
    async def test_invalid_quantity(self, service, gateway, amount, message):
        result = await service.place_trade("BTC-USD", "buy", amount)

        assert not result.success
        assert result.message == message
        gateway.place_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, service, gateway):
        result = await service.place_trade("DOGE-USD", "buy", "10")

        assert result.message == 'Trading pair for symbol "DOGE-USD" could not be found.'
        gateway.place_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_trading_pairs_unavailable(self, service, gateway):
        gateway.get_trading_pairs = AsyncMock(return_value=None)

        result = await service.place_trade("BTC-USD", "buy", "1")

        assert result.message == "Could not load trading pairs, please try again."

    @pytest.mark.asyncio
    async def test_gateway_rejection(self, service, gateway):
        gateway.place_order = AsyncMock(return_value=None)

        result = await service.place_trade("BTC-USD", "buy", "1")

        assert not result.success
        assert result.message == "Order failed due to insufficient buying power or other issue."


class TestCancel:
    """Tests for OrderService.cancel."""

    @pytest.mark.asyncio
    async def test_cancel(self, service, gateway):
        result = await service.cancel(" abc-123 ")

        assert result.success
        assert result.message == "Order canceled successfully."
        gateway.cancel_order.assert_awaited_once_with("abc-123")

    @pytest.mark.asyncio
    async def test_cancel_requires_id(self, service, gateway):
        result = await service.cancel("  ")

        assert result.message == "Order ID is required."
        gateway.cancel_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_rejected(self, service, gateway):
        gateway.cancel_order = AsyncMock(return_value=None)

        result = await service.cancel("abc-123")

        assert not result.success
        assert result.message == "Invalid order ID or other issue."
