"""Recommendation models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Action(str, Enum):
    """Trading action suggested for a symbol."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class Recommendation(BaseModel):
    """Advisory classification for one symbol.

    Rebuilt from scratch on every decision cycle.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    action: Action
    rationale: str
