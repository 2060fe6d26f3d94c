"""Decision engine turning price windows into recommendations.

This module is pure business logic with no I/O dependencies. Each cycle
rebuilds the full symbol -> Recommendation mapping; there is no memory
of earlier actions.
"""

import logging
from datetime import datetime, timedelta
from typing import Sequence

from core.indicators import IndicatorCalculator, IndicatorSnapshot
from core.models import Recommendation
from core.price_window import SlidingPriceWindow
from core.strategy.rules import DEFAULT_RULES, RULE_TABLE_VERSION, Rule, first_match

logger = logging.getLogger(__name__)

# Fewest prices a symbol needs before it gets a recommendation
MIN_SAMPLES = 30


class DecisionEngine:
    """Classifies each symbol with an ordered, first-match-wins rule table."""

    def __init__(
        self,
        rules: Sequence[Rule] = DEFAULT_RULES,
        calculator: IndicatorCalculator | None = None,
        analysis_horizon: timedelta = timedelta(hours=3),
        min_samples: int = MIN_SAMPLES,
    ):
        """
        Args:
            rules: Ordered rule table; the last rule should always match
            calculator: Indicator calculator (default periods if None)
            analysis_horizon: Maximum age of prices considered per cycle
            min_samples: Minimum prices required to classify a symbol
        """
        self.rules = tuple(rules)
        self.calculator = calculator or IndicatorCalculator()
        self.analysis_horizon = analysis_horizon
        self.min_samples = max(min_samples, self.calculator.min_samples)
        self.rule_table_version = RULE_TABLE_VERSION

    def snapshot(self, prices: Sequence[float]) -> IndicatorSnapshot | None:
        """Indicator snapshot for ``prices``, or None below the sample minimum."""
        if len(prices) < self.min_samples:
            return None
        return self.calculator.calculate_latest(prices)

    def evaluate(self, symbol: str, prices: Sequence[float]) -> Recommendation | None:
        """
        Classify one symbol's prices.

        Args:
            symbol: Trading symbol (e.g., "BTC-USD")
            prices: Ordered prices, most recent last

        Returns:
            Recommendation from the first matching rule, or None if there
            is not enough data or no rule matched
        """
        snapshot = self.snapshot(prices)
        if snapshot is None:
            return None

        rule = first_match(self.rules, snapshot)
        if rule is None:
            return None

        return Recommendation(
            symbol=symbol,
            action=rule.action,
            rationale=rule.rationale,
        )

    def analyze(
        self,
        window: SlidingPriceWindow,
        symbols: Sequence[str],
        now: datetime,
    ) -> dict[str, Recommendation]:
        """
        Build the recommendation mapping for every symbol.

        Symbols without enough recent prices are left out. An unexpected
        failure for one symbol is logged and only that symbol is skipped.

        Args:
            window: Price window to read from
            symbols: Symbols to classify
            now: Reference time for the analysis horizon

        Returns:
            Mapping of symbol to Recommendation
        """
        since = now - self.analysis_horizon
        recommendations: dict[str, Recommendation] = {}

        for symbol in symbols:
            prices = window.view(symbol, since)
            try:
                recommendation = self.evaluate(symbol, prices)
            except Exception as e:
                logger.error(f"Recommendation failed for {symbol}: {e}")
                continue

            if recommendation is None:
                logger.debug(
                    f"{symbol}: {len(prices)} prices in horizon, "
                    f"need {self.min_samples}, skipping"
                )
                continue

            recommendations[symbol] = recommendation

        return recommendations
