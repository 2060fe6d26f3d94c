"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    RSI_PERIOD,
    BollingerBands,
    IndicatorCalculator,
    IndicatorSnapshot,
    bollinger_bands,
    exponential_moving_average,
    moving_average,
    rsi,
    standard_deviation,
)

__all__ = [
    "RSI_PERIOD",
    "BollingerBands",
    "IndicatorCalculator",
    "IndicatorSnapshot",
    "bollinger_bands",
    "exponential_moving_average",
    "moving_average",
    "rsi",
    "standard_deviation",
]
