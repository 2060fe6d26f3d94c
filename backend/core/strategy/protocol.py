"""Protocols for the collaborators the core depends on.

This module provides:
- MarketDataSource: supplies best bid/ask prices
- OrderGateway: places and cancels orders, reports holdings
- HistoryStore: persists the raw price history between restarts
- Type aliases for callback functions used by the ingestion loop
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Protocol, runtime_checkable

from core.models import HoldingsSnapshot, PricePoint, Recommendation


# ---------------------------------------------------------------------------
# Callback type aliases
# ---------------------------------------------------------------------------
RecommendationsCallback = Callable[[dict[str, Recommendation]], Awaitable[None]]
HoldingsCallback = Callable[
    [list[HoldingsSnapshot], dict[str, Recommendation]], Awaitable[None]
]


@runtime_checkable
class MarketDataSource(Protocol):
    """Anything that can quote current prices."""

    async def get_best_bid_ask(self, symbols: list[str]) -> list[dict[str, Any]]:
        """Return ``[{"symbol": ..., "price": ...}]``, or an empty list on failure."""
        ...


@runtime_checkable
class OrderGateway(Protocol):
    """Exchange side of user-initiated trades."""

    async def place_order(
        self,
        client_order_id: str,
        side: str,
        order_type: str,
        symbol: str,
        config: dict[str, str],
    ) -> dict[str, Any] | None:
        """Submit an order. Returns the order record, or None on failure."""
        ...

    async def cancel_order(self, order_id: str) -> dict[str, Any] | None:
        """Cancel an order. Returns a truthy record on success, None on failure."""
        ...

    async def get_trading_pairs(self, symbols: list[str] | None = None) -> dict[str, Any] | None:
        ...

    async def get_holdings(self, asset_codes: list[str] | None = None) -> dict[str, Any] | None:
        ...


@runtime_checkable
class HistoryStore(Protocol):
    """Durable storage for the flat price history log."""

    async def load(self) -> list[PricePoint]:
        """Load every persisted point in stored order.

        Raises on unreadable or malformed storage.
        """
        ...

    async def save(self, points: list[PricePoint]) -> None:
        """Replace the stored history with ``points``."""
        ...
