"""Risk data models — account snapshot in, risk metrics out."""

import math
from dataclasses import asdict, dataclass, field
from typing import Literal, Optional

Rank = Literal["S", "A", "B", "C", "D"]

# ── Status effect tags ───────────────────────────────────────────────────

PROTECTED = "Protected"
VULNERABLE = "Vulnerable"
WEAKENED = "Weakened"
STRENGTHENED = "Strengthened"


@dataclass(frozen=True)
class TradePosition:
    """One open position.

    ``size`` is notional in account currency.  ``leverage`` is assumed to be
    at least 1; only its finiteness is checked here.
    """

    size: float
    entry_price: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    leverage: float = 1.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.size) or self.size < 0:
            raise ValueError(f"size must be non-negative, got {self.size}")
        if not math.isfinite(self.entry_price) or self.entry_price <= 0:
            raise ValueError(
                f"entry_price must be positive, got {self.entry_price}"
            )
        if not math.isfinite(self.leverage):
            raise ValueError(f"leverage must be finite, got {self.leverage}")
        for name in ("stop_loss", "take_profit"):
            value = getattr(self, name)
            if value is not None and not math.isfinite(value):
                raise ValueError(f"{name} must be finite, got {value}")

    @property
    def has_stop_loss(self) -> bool:
        return self.stop_loss is not None


@dataclass(frozen=True)
class AccountState:
    """Engine input: free balance plus the open positions."""

    balance: float
    positions: tuple[TradePosition, ...] = ()
    total_equity: float = 0.0  # informational, not scored

    def __post_init__(self) -> None:
        if not math.isfinite(self.balance):
            raise ValueError(f"balance must be finite, got {self.balance}")
        # Accept any sequence, store an immutable tuple.
        object.__setattr__(self, "positions", tuple(self.positions))


@dataclass(frozen=True)
class RiskMetrics:
    """Engine output: component scores, aggregate, rank and status tags."""

    position_size_score: float
    stop_loss_score: float
    risk_reward_score: float
    account_risk_score: float
    total_risk_score: int
    health_level: int
    rank: Rank
    status_effects: tuple[str, ...] = field(default=())

    def to_dict(self) -> dict:
        """Return a JSON-ready dict (``status_effects`` as a list)."""
        data = asdict(self)
        data["status_effects"] = list(self.status_effects)
        return data


@dataclass(frozen=True)
class RiskAlert:
    """A per-position warning raised alongside the score."""

    level: str  # "danger" or "warning"
    message: str
    position_index: Optional[int] = None


DEFAULT_METRICS = RiskMetrics(
    position_size_score=100,
    stop_loss_score=100,
    risk_reward_score=100,
    account_risk_score=100,
    total_risk_score=100,
    health_level=100,
    rank="S",
    status_effects=(PROTECTED,),
)
