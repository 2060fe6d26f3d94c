"""Price data models.

PricePoint is a hot path model: one is created per symbol per quote
cycle, so it uses a slotted frozen dataclass with a float price.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True, slots=True)
class PricePoint:
    """A single observed price for a symbol.

    Timestamps are timezone-aware (UTC).
    """

    timestamp: datetime
    symbol: str
    price: float

    def to_record(self) -> dict:
        """Persisted layout: {timestamp, symbol, price}."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "symbol": self.symbol,
            "price": self.price,
        }

    @classmethod
    def from_record(cls, record: dict) -> "PricePoint":
        """Rebuild a point from its persisted layout.

        Raises:
            KeyError, ValueError, TypeError: If the record is malformed
        """
        timestamp = datetime.fromisoformat(record["timestamp"])
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        price = float(record["price"])
        if not math.isfinite(price) or price <= 0:
            raise ValueError(f"price must be a finite positive number, got {record['price']!r}")
        return cls(
            timestamp=timestamp,
            symbol=str(record["symbol"]),
            price=price,
        )


@dataclass(frozen=True, slots=True)
class Quote:
    """Raw market data entry as returned by the market data source."""

    symbol: str
    price: object

    def parsed_price(self) -> float | None:
        """Return the price as a finite positive float, or None."""
        try:
            value = float(self.price)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(value) or value <= 0:
            return None
        return value
