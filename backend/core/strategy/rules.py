"""Ordered rule table mapping an indicator snapshot to an action.

The table is evaluated top to bottom and the first matching rule wins.
Trend rules come before RSI rules, which come before band breakouts;
changing the order changes the signals, so bump RULE_TABLE_VERSION
whenever the table changes.

Comparisons against NaN are false, so an undefined RSI never matches
the RSI rules.
"""

from dataclasses import dataclass
from typing import Callable

from core.indicators import IndicatorSnapshot
from core.models import Action

RULE_TABLE_VERSION = "1"

RSI_OVERSOLD = 30
RSI_OVERBOUGHT = 70


@dataclass(frozen=True, slots=True)
class Rule:
    """A single (predicate, action, rationale) row."""

    name: str
    action: Action
    rationale: str
    predicate: Callable[[IndicatorSnapshot], bool]

    def matches(self, snapshot: IndicatorSnapshot) -> bool:
        return bool(self.predicate(snapshot))


def _stable_uptrend(s: IndicatorSnapshot) -> bool:
    return s.latest > s.short_term_avg and s.volatility < s.threshold


def _stable_downtrend(s: IndicatorSnapshot) -> bool:
    return s.latest < s.short_term_avg and s.volatility < s.threshold


def _oversold(s: IndicatorSnapshot) -> bool:
    return s.rsi < RSI_OVERSOLD


def _overbought(s: IndicatorSnapshot) -> bool:
    return s.rsi > RSI_OVERBOUGHT


def _above_upper_band(s: IndicatorSnapshot) -> bool:
    return s.latest > s.upper_band and s.volatility > s.threshold


def _below_lower_band(s: IndicatorSnapshot) -> bool:
    return s.latest < s.lower_band and s.volatility > s.threshold


def _always(s: IndicatorSnapshot) -> bool:
    return True


DEFAULT_RULES: tuple[Rule, ...] = (
    Rule(
        name="stable_uptrend",
        action=Action.BUY,
        rationale="stable upward trend, low volatility",
        predicate=_stable_uptrend,
    ),
    Rule(
        name="stable_downtrend",
        action=Action.SELL,
        rationale="stable downward trend, low volatility",
        predicate=_stable_downtrend,
    ),
    Rule(
        name="rsi_oversold",
        action=Action.BUY,
        rationale="oversold — potential reversal up",
        predicate=_oversold,
    ),
    Rule(
        name="rsi_overbought",
        action=Action.SELL,
        rationale="overbought — potential reversal down",
        predicate=_overbought,
    ),
    Rule(
        name="upper_band_breakout",
        action=Action.SELL,
        rationale="high volatility above upper band — correction likely",
        predicate=_above_upper_band,
    ),
    Rule(
        name="lower_band_breakout",
        action=Action.BUY,
        rationale="high volatility below lower band — correction likely",
        predicate=_below_lower_band,
    ),
    Rule(
        name="fallback",
        action=Action.HOLD,
        rationale="uncertain trend",
        predicate=_always,
    ),
)


def first_match(rules: tuple[Rule, ...], snapshot: IndicatorSnapshot) -> Rule | None:
    """Return the first rule whose predicate holds, or None."""
    for rule in rules:
        if rule.matches(snapshot):
            return rule
    return None
