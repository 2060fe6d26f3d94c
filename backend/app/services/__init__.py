"""Business services."""

from app.services.holdings import build_holdings_snapshot
from app.services.ingestion import IngestionService
from app.services.order_service import (
    OrderResult,
    OrderService,
    OrderSide,
    OrderType,
    format_limit_price,
)
from app.services.scheduler import PeriodicTask

__all__ = [
    "build_holdings_snapshot",
    "IngestionService",
    "OrderResult",
    "OrderService",
    "OrderSide",
    "OrderType",
    "format_limit_price",
    "PeriodicTask",
]
