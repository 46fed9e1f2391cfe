"""Risk scoring engine — pure math, no I/O.

Converts an ``AccountState`` into four component scores, a weighted total,
a letter rank and a set of status tags.  Every component starts at 100,
subtracts penalties per position, and is clamped to ``[0, 100]``.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

from riskscope.risk.models import (
    DEFAULT_METRICS,
    PROTECTED,
    STRENGTHENED,
    VULNERABLE,
    WEAKENED,
    AccountState,
    Rank,
    RiskMetrics,
    TradePosition,
)

DEFAULT_WEIGHTS: dict[str, float] = {
    "position_size": 0.30,
    "stop_loss": 0.25,
    "risk_reward": 0.25,
    "account_risk": 0.20,
}

POSITION_SIZE_THRESHOLD_PCT = 2.0
POSITION_SIZE_PENALTY = 15.0
MISSING_STOP_PENALTY = 40.0
STOP_DISTANCE_THRESHOLD_PCT = 2.0
STOP_DISTANCE_PENALTY = 10.0
UNPROTECTED_RR_PENALTY = 50.0
ACCOUNT_RISK_PENALTY = 5.0
HIGH_LEVERAGE = 2.0
STRENGTHENED_MAX_FRACTION = 0.02

# Inclusive lower bounds, best rank first.
RANK_THRESHOLDS: tuple[tuple[int, Rank], ...] = (
    (90, "S"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
)


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ── Component scores ─────────────────────────────────────────────────────


def position_size_score(positions: Iterable[TradePosition], balance: float) -> float:
    """Penalise leveraged exposure above 2 % of balance.

    Each position loses ``15`` points per percentage point above the
    threshold.  Penalties add up across positions.
    """
    penalties: list[float] = []
    for p in positions:
        size_pct = p.size * p.leverage / balance * 100.0
        if size_pct > POSITION_SIZE_THRESHOLD_PCT:
            penalties.append(
                (size_pct - POSITION_SIZE_THRESHOLD_PCT) * POSITION_SIZE_PENALTY
            )
    # Summed in sorted order so the result does not depend on position order.
    return _clamp(100.0 - sum(sorted(penalties)))


def stop_loss_score(positions: Iterable[TradePosition]) -> float:
    """Penalise missing stops (−40) and stops wider than 2 % from entry."""
    penalties: list[float] = []
    for p in positions:
        if not p.has_stop_loss:
            penalties.append(MISSING_STOP_PENALTY)
            continue
        stop_pct = abs((p.stop_loss - p.entry_price) / p.entry_price * 100.0)
        if stop_pct > STOP_DISTANCE_THRESHOLD_PCT:
            penalties.append(
                (stop_pct - STOP_DISTANCE_THRESHOLD_PCT) * STOP_DISTANCE_PENALTY
            )
    return _clamp(100.0 - sum(sorted(penalties)))


def risk_reward_score(positions: Iterable[TradePosition]) -> float:
    """Flat −50 for every position without a stop loss."""
    unprotected = sum(1 for p in positions if not p.has_stop_loss)
    return _clamp(100.0 - unprotected * UNPROTECTED_RR_PENALTY)


def account_risk_score(positions: Iterable[TradePosition], balance: float) -> float:
    """Penalise total capital at risk, 5 points per percent of balance.

    Risk per position is ``|entry − stop| × size``; a position without a
    stop counts its full ``size`` as at risk.
    """
    exposure = sum(sorted(
        abs(p.entry_price - p.stop_loss) * p.size if p.has_stop_loss else p.size
        for p in positions
    ))
    risk_pct = exposure / balance * 100.0
    return _clamp(100.0 - risk_pct * ACCOUNT_RISK_PENALTY)


def total_score(
    position_size: float,
    stop_loss: float,
    risk_reward: float,
    account_risk: float,
    weights: Optional[dict[str, float]] = None,
) -> int:
    """Weighted sum of the four components, rounded half-up."""
    w = weights or DEFAULT_WEIGHTS
    weighted = (
        position_size * w["position_size"]
        + stop_loss * w["stop_loss"]
        + risk_reward * w["risk_reward"]
        + account_risk * w["account_risk"]
    )
    return int(_clamp(_round_half_up(weighted)))


def determine_rank(score: float) -> Rank:
    """Map a total score to ``S``/``A``/``B``/``C``/``D``."""
    for lower_bound, rank in RANK_THRESHOLDS:
        if score >= lower_bound:
            return rank
    return "D"


def determine_status_effects(
    positions: tuple[TradePosition, ...], balance: float
) -> tuple[str, ...]:
    """Derive the qualitative tags for a non-empty position set.

    Exactly one of ``Protected`` / ``Vulnerable`` is always present.
    ``Strengthened`` requires a positive balance.
    """
    effects: list[str] = []
    if all(p.has_stop_loss for p in positions):
        effects.append(PROTECTED)
    else:
        effects.append(VULNERABLE)

    if any(p.leverage > HIGH_LEVERAGE for p in positions):
        effects.append(WEAKENED)

    if balance > 0 and all(
        p.size * p.leverage / balance <= STRENGTHENED_MAX_FRACTION
        for p in positions
    ):
        effects.append(STRENGTHENED)

    return tuple(effects)


# ── Engine ───────────────────────────────────────────────────────────────


class RiskCalculator:
    """Stateless scorer.  Construct once and pass it to whoever needs it.

    Args:
        weights: Component weights; must contain the four keys of
                 ``DEFAULT_WEIGHTS`` and sum to 1.0.
    """

    def __init__(self, weights: Optional[dict[str, float]] = None) -> None:
        weights = dict(weights or DEFAULT_WEIGHTS)
        missing = set(DEFAULT_WEIGHTS) - set(weights)
        if missing:
            raise ValueError(f"Missing weight(s): {', '.join(sorted(missing))}")
        if not math.isclose(sum(weights.values()), 1.0):
            raise ValueError(f"weights must sum to 1.0, got {sum(weights.values())}")
        self._weights = weights

    @property
    def weights(self) -> dict[str, float]:
        return dict(self._weights)

    def calculate_risk_metrics(self, account: AccountState) -> RiskMetrics:
        """Score *account*.

        No positions → ``DEFAULT_METRICS``.  A non-positive balance with
        open positions is maximal risk: every score is 0 and the rank is D.
        """
        positions = account.positions
        if not positions:
            return DEFAULT_METRICS

        balance = account.balance
        effects = determine_status_effects(positions, balance)

        if balance <= 0:
            return RiskMetrics(
                position_size_score=0.0,
                stop_loss_score=0.0,
                risk_reward_score=0.0,
                account_risk_score=0.0,
                total_risk_score=0,
                health_level=0,
                rank="D",
                status_effects=effects,
            )

        ps = position_size_score(positions, balance)
        sl = stop_loss_score(positions)
        rr = risk_reward_score(positions)
        ar = account_risk_score(positions, balance)
        total = total_score(ps, sl, rr, ar, self._weights)

        return RiskMetrics(
            position_size_score=ps,
            stop_loss_score=sl,
            risk_reward_score=rr,
            account_risk_score=ar,
            total_risk_score=total,
            health_level=total,
            rank=determine_rank(total),
            status_effects=effects,
        )


def calculate_risk_metrics(
    account: AccountState, calculator: Optional[RiskCalculator] = None
) -> RiskMetrics:
    """Score *account* with *calculator* (or a default-weighted one)."""
    return (calculator or RiskCalculator()).calculate_risk_metrics(account)
