"""Order placement for user-initiated trades.

Recommendations are advisory only; nothing in the ingestion loop calls
this service. Invalid input is rejected with a user-visible message in an
OrderResult rather than an exception.

- buy: market order, config {asset_quantity}
- sell: limit order at the latest bid/ask, config {asset_quantity, limit_price}
"""

import logging
import math
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel

from core.strategy.protocol import MarketDataSource, OrderGateway

logger = logging.getLogger(__name__)

# Decimal places for limit prices
LIMIT_PRICE_DECIMALS = 6


class OrderSide(str, Enum):
    """Order side enum."""
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order type enum."""
    MARKET = "market"
    LIMIT = "limit"


class OrderResult(BaseModel):
    """Outcome of a trade intent."""

    success: bool
    message: str
    order: dict[str, Any] | None = None


def format_limit_price(price: float) -> str:
    """Round a price to the limit price precision (e.g. 64000.123457)."""
    return f"{price:.{LIMIT_PRICE_DECIMALS}f}"


class OrderService:
    """Validates trade intents and forwards them to the order gateway."""

    def __init__(self, gateway: OrderGateway, market_data: MarketDataSource):
        """
        Args:
            gateway: Exchange order gateway
            market_data: Source of the latest bid/ask for limit prices
        """
        self.gateway = gateway
        self.market_data = market_data

    async def _available_symbols(self) -> set[str] | None:
        response = await self.gateway.get_trading_pairs()
        results = response.get("results") if isinstance(response, dict) else None
        if not isinstance(results, list):
            return None
        return {
            pair["symbol"]
            for pair in results
            if isinstance(pair, dict) and pair.get("symbol")
        }

    async def _latest_price(self, symbol: str) -> float | None:
        quotes = await self.market_data.get_best_bid_ask([symbol])
        if not isinstance(quotes, list):
            return None
        for quote in quotes:
            if isinstance(quote, dict) and quote.get("symbol") == symbol:
                try:
                    price = float(quote.get("price"))
                except (TypeError, ValueError):
                    return None
                if math.isfinite(price) and price > 0:
                    return price
        return None

    async def place_trade(self, symbol: str, side: str, amount: Any) -> OrderResult:
        """
        Place a user trade.

        Args:
            symbol: Trading pair (e.g., "BTC-USD")
            side: "buy" or "sell"
            amount: Asset quantity

        Returns:
            OrderResult with the order record on success
        """
        try:
            order_side = OrderSide(str(side).lower())
        except ValueError:
            return OrderResult(success=False, message=f'Unknown action "{side}".')

        try:
            quantity = float(amount)
        except (TypeError, ValueError):
            return OrderResult(success=False, message=f'Quantity "{amount}" is not a number.')
        if not math.isfinite(quantity) or quantity <= 0:
            return OrderResult(success=False, message="Quantity must be greater than zero.")

        symbol = str(symbol).upper()
        available = await self._available_symbols()
        if available is None:
            return OrderResult(
                success=False,
                message="Could not load trading pairs, please try again.",
            )
        if symbol not in available:
            return OrderResult(
                success=False,
                message=f'Trading pair for symbol "{symbol}" could not be found.',
            )

        config = {"asset_quantity": str(amount).strip()}
        if order_side == OrderSide.BUY:
            order_type = OrderType.MARKET
        else:
            order_type = OrderType.LIMIT
            price = await self._latest_price(symbol)
            if price is None:
                return OrderResult(
                    success=False,
                    message=f"No current price for {symbol}, cannot set a limit price.",
                )
            config["limit_price"] = format_limit_price(price)

        client_order_id = str(uuid.uuid4())
        order = await self.gateway.place_order(
            client_order_id,
            order_side.value,
            order_type.value,
            symbol,
            config,
        )

        if not order:
            logger.warning(f"Order rejected: {order_side.value} {quantity} {symbol}")
            return OrderResult(
                success=False,
                message="Order failed due to insufficient buying power or other issue.",
            )

        logger.info(
            f"Order placed: {order_side.value} {order_type.value} {quantity} {symbol} "
            f"(client_order_id={client_order_id})"
        )
        return OrderResult(success=True, message="Order placed successfully!", order=order)

    async def cancel(self, order_id: str) -> OrderResult:
        """Cancel an order by id."""
        if not order_id or not str(order_id).strip():
            return OrderResult(success=False, message="Order ID is required.")

        result = await self.gateway.cancel_order(str(order_id).strip())
        if not result:
            return OrderResult(success=False, message="Invalid order ID or other issue.")

        logger.info(f"Order canceled: {order_id}")
        return OrderResult(success=True, message="Order canceled successfully.", order=result)
