"""Pattern data models — series samples in, detected formations out."""

from dataclasses import asdict, dataclass
from typing import Literal, Optional

PatternType = Literal[
    "double_top", "double_bottom", "head_shoulders", "triangle", "channel"
]
Direction = Literal["up", "down", "neutral"]

# Order matters: it is the row order of the classifier output.
PATTERN_TYPES: tuple[str, ...] = (
    "double_top",
    "double_bottom",
    "head_shoulders",
    "triangle",
    "channel",
)
DIRECTIONS: tuple[str, ...] = ("up", "down", "neutral")


@dataclass(frozen=True)
class PatternSample:
    """A single point of the price/volume series."""

    timestamp: int  # epoch milliseconds
    price: float
    volume: float


@dataclass(frozen=True)
class Pattern:
    """A detected chart formation."""

    type: PatternType
    confidence: float
    start_index: int
    end_index: int
    predicted_direction: Direction
    support_level: Optional[float] = None
    resistance_level: Optional[float] = None


@dataclass(frozen=True)
class PatternAnalysis:
    """Result of one analysis call.  Never mutated after return."""

    patterns: tuple[Pattern, ...]
    timestamp: int  # epoch milliseconds
    trend: Optional[Direction] = None
    source: str = "heuristic"  # "model", "heuristic" or "none"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["patterns"] = [asdict(p) for p in self.patterns]
        return data


@dataclass(frozen=True)
class ModelLoadResult:
    """Outcome of ``PatternRecognitionService.initialize()``."""

    loaded: bool
    model_path: Optional[str] = None
    error: Optional[str] = None
