"""Rule-based pattern detection — used when no classifier is loaded.

Looks at the most recent 30 prices only.  Double tops and double bottoms
test independent extrema, so both can fire on the same window.
"""

from collections.abc import Sequence

from riskscope.patterns.indicators import (
    calculate_sma,
    detect_trend,
    find_support_resistance,
)
from riskscope.patterns.models import Direction, Pattern

HEURISTIC_WINDOW = 30
SMA_PERIOD = 20
EXTREMUM_TOLERANCE = 0.02
MIN_EXTREMUM_SPAN = 5
HEURISTIC_CONFIDENCE = 0.75


def _extremum_span(indices: list[int]) -> bool:
    return len(indices) >= 2 and indices[-1] - indices[0] > MIN_EXTREMUM_SPAN


def is_double_top(prices: Sequence[float]) -> bool:
    """Two or more prices within 2 % of the window high, more than 5 bars apart."""
    recent = list(prices)[-HEURISTIC_WINDOW:]
    if not recent:
        return False
    high = max(recent)
    near_high = [i for i, p in enumerate(recent) if p > high * (1 - EXTREMUM_TOLERANCE)]
    return _extremum_span(near_high)


def is_double_bottom(prices: Sequence[float]) -> bool:
    """Two or more prices within 2 % of the window low, more than 5 bars apart."""
    recent = list(prices)[-HEURISTIC_WINDOW:]
    if not recent:
        return False
    low = min(recent)
    near_low = [i for i, p in enumerate(recent) if p < low * (1 + EXTREMUM_TOLERANCE)]
    return _extremum_span(near_low)


def detect_basic_patterns(
    prices: Sequence[float],
) -> tuple[list[Pattern], Direction]:
    """Run the heuristic detectors over *prices*.

    Returns ``(patterns, trend)``.  Fewer than 30 prices → ``([], "neutral")``.
    Pattern indices are offsets into *prices*.
    """
    n = len(prices)
    if n < HEURISTIC_WINDOW:
        return [], "neutral"

    window = list(prices)[-HEURISTIC_WINDOW:]
    trend = detect_trend(calculate_sma(window, SMA_PERIOD))
    support, resistance = find_support_resistance(window)
    start, end = n - HEURISTIC_WINDOW, n - 1

    patterns: list[Pattern] = []
    if is_double_top(window):
        patterns.append(
            Pattern(
                type="double_top",
                confidence=HEURISTIC_CONFIDENCE,
                start_index=start,
                end_index=end,
                predicted_direction="down",
                resistance_level=resistance,
            )
        )
    if is_double_bottom(window):
        patterns.append(
            Pattern(
                type="double_bottom",
                confidence=HEURISTIC_CONFIDENCE,
                start_index=start,
                end_index=end,
                predicted_direction="up",
                support_level=support,
            )
        )
    return patterns, trend
