"""Account holdings models."""

from typing import Any

from pydantic import BaseModel, Field


class HoldingsSnapshot(BaseModel):
    """One held asset valued at the latest known price."""

    asset: str
    quantity: float
    usd_value: float = 0.0
    detail: dict[str, Any] = Field(default_factory=dict)
