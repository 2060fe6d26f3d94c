"""Technical indicators for recommendation generation.

All functions take an ordered sequence of prices (most recent last) and
return plain floats. Calculations run on NumPy float64 arrays with floating
point errors silenced, so a division by zero surfaces as ``inf``/``nan``
instead of raising. ``None`` means "not enough samples".
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

# Sample count used by rsi()
RSI_PERIOD = 14


@dataclass(frozen=True, slots=True)
class BollingerBands:
    """Moving average envelope at +/- 2 standard deviations."""

    upper: float
    middle: float
    lower: float


@dataclass(frozen=True, slots=True)
class IndicatorSnapshot:
    """All indicator values the rule table looks at for one symbol."""

    latest: float
    short_term_avg: float
    long_term_avg: float
    ema_short: float
    rsi: float
    volatility: float
    upper_band: float
    lower_band: float
    threshold: float

    def as_dict(self) -> dict[str, float]:
        return {
            "latest": self.latest,
            "short_term_avg": self.short_term_avg,
            "long_term_avg": self.long_term_avg,
            "ema_short": self.ema_short,
            "rsi": self.rsi,
            "volatility": self.volatility,
            "upper_band": self.upper_band,
            "lower_band": self.lower_band,
            "threshold": self.threshold,
        }


def _to_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def moving_average(values: Sequence[float], period: int) -> float | None:
    """
    Calculate the simple moving average of the last ``period`` values.

    Args:
        values: Sequence of price values
        period: Number of trailing values to average

    Returns:
        Arithmetic mean, or None if fewer than ``period`` values
    """
    if period <= 0 or len(values) < period:
        return None

    arr = _to_array(values)
    return float(np.mean(arr[-period:]))


def exponential_moving_average(values: Sequence[float], period: int) -> float | None:
    """
    Calculate the Exponential Moving Average at the last value.

    The seed is the simple average of the first ``period`` values; the
    remaining values are folded in left to right with
    ``k = 2 / (period + 1)``.

    Args:
        values: Sequence of price values
        period: EMA period

    Returns:
        Final EMA value, or None if fewer than ``period`` values
    """
    if period <= 0 or len(values) < period:
        return None

    arr = _to_array(values)
    multiplier = 2.0 / (period + 1)

    result = float(np.mean(arr[:period]))
    for price in arr[period:]:
        result = float(price) * multiplier + result * (1 - multiplier)

    return result


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation (divides by N). NaN for empty input."""
    if len(values) == 0:
        return math.nan

    return float(np.std(_to_array(values)))


def bollinger_bands(values: Sequence[float], period: int = 20) -> BollingerBands | None:
    """
    Calculate Bollinger Bands over the last ``period`` values.

    upper = SMA(period) + 2 * stddev(last period)
    lower = SMA(period) - 2 * stddev(last period)

    Args:
        values: Sequence of price values
        period: Lookback period

    Returns:
        BollingerBands, or None if fewer than ``period`` values
    """
    middle = moving_average(values, period)
    if middle is None:
        return None

    std_dev = standard_deviation(values[-period:])
    return BollingerBands(
        upper=middle + 2 * std_dev,
        middle=middle,
        lower=middle - 2 * std_dev,
    )


def rsi(values: Sequence[float]) -> float | None:
    """
    Calculate the Relative Strength Index from the leading samples.

    Gains and losses are summed over ``values[i] - values[i - 1]`` for
    i in 1..13, i.e. the first 14 samples of whatever slice is passed,
    and averaged over 14. Later samples are ignored.

    avg_loss == 0 yields 100.0 when there were gains and NaN when the
    leading samples are flat.

    Args:
        values: Sequence of price values

    Returns:
        RSI in [0, 100] (or NaN), or None if fewer than 14 values
    """
    if len(values) < RSI_PERIOD:
        return None

    arr = _to_array(values[:RSI_PERIOD])
    deltas = np.diff(arr)

    gains = np.sum(deltas[deltas > 0])
    losses = -np.sum(deltas[deltas < 0])

    with np.errstate(divide="ignore", invalid="ignore"):
        avg_gain = gains / RSI_PERIOD
        avg_loss = losses / RSI_PERIOD
        rs = np.float64(avg_gain) / np.float64(avg_loss)
        value = 100.0 - 100.0 / (1.0 + rs)

    return float(value)


# =============================================================================
# IndicatorCalculator class
# =============================================================================

class IndicatorCalculator:
    """Calculator for every indicator the recommendation rules consult."""

    def __init__(
        self,
        short_period: int = 5,
        long_period: int = 30,
        band_period: int = 20,
        volatility_window: int = 5,
        threshold_ratio: float = 0.0002,
    ):
        self.short_period = short_period
        self.long_period = long_period
        self.band_period = band_period
        self.volatility_window = volatility_window
        self.threshold_ratio = threshold_ratio

    @property
    def min_samples(self) -> int:
        return max(
            self.short_period,
            self.long_period,
            self.band_period,
            self.volatility_window,
            RSI_PERIOD,
        )

    def calculate_latest(self, prices: Sequence[float]) -> IndicatorSnapshot | None:
        """
        Calculate indicators for the most recent price.

        Args:
            prices: Ordered prices for one symbol (need enough history)

        Returns:
            IndicatorSnapshot, or None if not enough data
        """
        if len(prices) < self.min_samples:
            return None

        latest = float(prices[-1])
        bands = bollinger_bands(prices, self.band_period)

        return IndicatorSnapshot(
            latest=latest,
            short_term_avg=moving_average(prices, self.short_period),
            long_term_avg=moving_average(prices, self.long_period),
            ema_short=exponential_moving_average(prices, self.short_period),
            rsi=rsi(prices),
            volatility=standard_deviation(prices[-self.volatility_window:]),
            upper_band=bands.upper,
            lower_band=bands.lower,
            threshold=self.threshold_ratio * latest,
        )
