"""Series indicators — SMA, trend, support/resistance, normalisation. Pure functions, no I/O."""

from collections.abc import Sequence

import numpy as np

from riskscope.patterns.models import Direction, PatternSample


def calculate_sma(prices: Sequence[float], period: int = 20) -> list[float]:
    """Calculate a Simple Moving Average series.

    Returns one value per full window, so the result has
    ``len(prices) - period + 1`` entries (empty if there are fewer than
    *period* prices).

    Raises ``ValueError`` if *period* is not positive.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(prices) < period:
        return []
    window = np.ones(period) / period
    return np.convolve(np.asarray(prices, dtype=float), window, mode="valid").tolist()


def detect_trend(
    sma: Sequence[float], lookback: int = 5, threshold_pct: float = 2.0
) -> Direction:
    """Classify the direction of the last *lookback* SMA values.

    ``up`` when the last value is more than *threshold_pct* above the first,
    ``down`` when it is more than *threshold_pct* below, else ``neutral``.
    """
    recent = list(sma)[-lookback:]
    if len(recent) < 2:
        return "neutral"
    first, last = recent[0], recent[-1]
    factor = threshold_pct / 100.0
    if last > first * (1 + factor):
        return "up"
    if last < first * (1 - factor):
        return "down"
    return "neutral"


def find_support_resistance(
    prices: Sequence[float],
    support_pct: float = 0.1,
    resistance_pct: float = 0.9,
) -> tuple[float, float]:
    """Return ``(support, resistance)`` as index-based percentiles.

    The sorted prices are indexed at ``floor(n × pct)``; no interpolation.

    Raises ``ValueError`` on an empty series.
    """
    if not prices:
        raise ValueError("Need at least one price for support/resistance")
    ordered = sorted(prices)
    n = len(ordered)
    support = ordered[min(int(n * support_pct), n - 1)]
    resistance = ordered[min(int(n * resistance_pct), n - 1)]
    return support, resistance


def _min_max(values: np.ndarray) -> np.ndarray:
    lo = values.min()
    span = values.max() - lo
    if span == 0:
        return np.zeros_like(values)
    return (values - lo) / span


def normalize_series(samples: Sequence[PatternSample]) -> np.ndarray:
    """Min-max scale price and volume into ``[0, 1]`` channel-wise.

    Returns a ``float32`` array of shape ``(len(samples), 2)`` with columns
    ``(price, volume)``.  A flat channel is mapped to all zeros.
    """
    if not samples:
        return np.zeros((0, 2), dtype=np.float32)
    prices = np.array([s.price for s in samples], dtype=np.float64)
    volumes = np.array([s.volume for s in samples], dtype=np.float64)
    return np.stack([_min_max(prices), _min_max(volumes)], axis=1).astype(np.float32)
