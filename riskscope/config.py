"""RiskScope — application configuration.

Loads .env variables into a typed config object.
Validates numeric variables on startup.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


_DEFAULT_INTERVALS = {
    "development": 30,
    "production": 60,
}

# Shortest series either detection path accepts.
_MIN_SERIES_LENGTH = 30


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    environment: str  # "development" or "production"
    pattern_model_path: Optional[str]
    pattern_window_size: int
    pattern_confidence_threshold: float
    series_capacity: int
    analysis_interval_seconds: int
    alert_threshold_pct: float
    log_level: str
    api_port: int

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def _parse(name: str, default: str, cast):
    raw = os.environ.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the variable when a value
    cannot be parsed or is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    environment = os.environ.get("RISKSCOPE_ENV", "development")
    if environment not in _DEFAULT_INTERVALS:
        raise ValueError(
            f"Invalid value for RISKSCOPE_ENV: {environment!r} "
            f"(expected one of {', '.join(_DEFAULT_INTERVALS)})"
        )

    threshold = _parse("PATTERN_CONFIDENCE_THRESHOLD", "0.5", float)
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(
            f"Invalid value for PATTERN_CONFIDENCE_THRESHOLD: {threshold} (expected 0..1)"
        )

    window_size = _parse("PATTERN_WINDOW_SIZE", "50", int)
    if window_size < _MIN_SERIES_LENGTH:
        raise ValueError(
            f"Invalid value for PATTERN_WINDOW_SIZE: {window_size} "
            f"(expected at least {_MIN_SERIES_LENGTH})"
        )

    capacity = _parse("SERIES_CAPACITY", "100", int)
    if capacity < _MIN_SERIES_LENGTH:
        raise ValueError(
            f"Invalid value for SERIES_CAPACITY: {capacity} "
            f"(expected at least {_MIN_SERIES_LENGTH})"
        )

    interval = _parse(
        "ANALYSIS_INTERVAL_SECONDS", str(_DEFAULT_INTERVALS[environment]), int
    )
    if interval < 1:
        raise ValueError(
            f"Invalid value for ANALYSIS_INTERVAL_SECONDS: {interval} (expected at least 1)"
        )

    return Config(
        environment=environment,
        pattern_model_path=os.environ.get("PATTERN_MODEL_PATH") or None,
        pattern_window_size=window_size,
        pattern_confidence_threshold=threshold,
        series_capacity=capacity,
        analysis_interval_seconds=interval,
        alert_threshold_pct=_parse("ALERT_THRESHOLD_PCT", "10.0", float),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_parse("API_PORT", "8080", int),
    )
