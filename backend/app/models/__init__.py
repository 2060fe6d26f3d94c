"""Data models."""

from core.models import (
    Action,
    HoldingsSnapshot,
    PricePoint,
    Quote,
    Recommendation,
)

__all__ = [
    "Action",
    "HoldingsSnapshot",
    "PricePoint",
    "Quote",
    "Recommendation",
]
