"""Core data models."""

from core.models.holdings import HoldingsSnapshot
from core.models.price import PricePoint, Quote
from core.models.recommendation import Action, Recommendation

__all__ = [
    "Action",
    "HoldingsSnapshot",
    "PricePoint",
    "Quote",
    "Recommendation",
]
