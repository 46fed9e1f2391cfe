"""Pattern recognition service — classifier path with a heuristic fallback.

The classifier is an optional resource owned by the service instance.  It
is loaded by an explicit ``await service.initialize()``; if loading fails
the instance uses the heuristic detectors for the rest of its life.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Optional

from riskscope.patterns.heuristics import (
    HEURISTIC_WINDOW,
    SMA_PERIOD,
    detect_basic_patterns,
)
from riskscope.patterns.indicators import (
    calculate_sma,
    detect_trend,
    find_support_resistance,
    normalize_series,
)
from riskscope.patterns.models import ModelLoadResult, PatternAnalysis, PatternSample
from riskscope.patterns.network import (
    PatternNet,
    decode_output,
    load_pattern_model,
    predict,
)

logger = logging.getLogger("riskscope.patterns")

MIN_SAMPLES = HEURISTIC_WINDOW


def _now_ms() -> int:
    return int(time.time() * 1000)


class PatternRecognitionService:
    """Detects chart formations in a price/volume series.

    Args:
        model_path: Path to a ``PatternNet`` state dict, or ``None`` to run
                    heuristics only.
        window_size: Number of most-recent samples fed to the classifier.
        confidence_threshold: Minimum classifier confidence to report.
        clock: Returns the current time in epoch milliseconds.
    """

    def __init__(
        self,
        model_path: Optional[str | Path] = None,
        *,
        window_size: int = 50,
        confidence_threshold: float = 0.5,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        if window_size < MIN_SAMPLES:
            raise ValueError(
                f"window_size must be at least {MIN_SAMPLES}, got {window_size}"
            )
        if not 0.0 <= confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be in [0, 1], got {confidence_threshold}"
            )
        self._model_path = str(model_path) if model_path is not None else None
        self._window_size = window_size
        self._threshold = confidence_threshold
        self._clock = clock or _now_ms
        self._model: Optional[PatternNet] = None
        self._load_result: Optional[ModelLoadResult] = None
        self._fallback_logged = False

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def initialize(self) -> ModelLoadResult:
        """Load the classifier once.

        Safe to call repeatedly: the first outcome is cached and returned,
        so a failed load is never retried.
        """
        if self._load_result is not None:
            return self._load_result

        if self._model_path is None:
            logger.info("No pattern model configured — using heuristic detection.")
            self._fallback_logged = True
            self._load_result = ModelLoadResult(loaded=False, error="no model path configured")
            return self._load_result

        try:
            self._model = await asyncio.to_thread(load_pattern_model, self._model_path)
        except Exception as exc:
            logger.warning(
                "Pattern model failed to load from %s: %s — falling back to heuristics.",
                self._model_path,
                exc,
            )
            self._model = None
            self._fallback_logged = True
            self._load_result = ModelLoadResult(
                loaded=False, model_path=self._model_path, error=str(exc)
            )
            return self._load_result

        logger.info("Pattern model loaded from %s (threshold=%.2f)",
                    self._model_path, self._threshold)
        self._load_result = ModelLoadResult(loaded=True, model_path=self._model_path)
        return self._load_result

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def model_loaded(self) -> bool:
        """``True`` when the classifier path is active."""
        return self._model is not None

    @property
    def load_result(self) -> Optional[ModelLoadResult]:
        """Outcome of :meth:`initialize`, or ``None`` before it ran."""
        return self._load_result

    # ── Analysis ─────────────────────────────────────────────────────────

    async def analyze_patterns(
        self, series: Sequence[PatternSample]
    ) -> PatternAnalysis:
        """Detect patterns in *series*.

        Too-short input yields an empty analysis.  Classifier errors are
        logged and also yield an empty analysis; they never propagate.
        """
        samples = tuple(series)
        if len(samples) < MIN_SAMPLES:
            return PatternAnalysis(patterns=(), timestamp=self._clock(), source="none")

        if self._model is not None:
            try:
                return await self._analyze_with_model(samples)
            except Exception as exc:
                logger.error("Pattern inference failed: %s", exc)
                return PatternAnalysis(patterns=(), timestamp=self._clock(), source="model")

        if not self._fallback_logged:
            logger.info("Pattern classifier unavailable — using heuristic detection.")
            self._fallback_logged = True
        patterns, trend = detect_basic_patterns([s.price for s in samples])
        return PatternAnalysis(
            patterns=tuple(patterns),
            timestamp=self._clock(),
            trend=trend,
            source="heuristic",
        )

    async def _analyze_with_model(
        self, samples: tuple[PatternSample, ...]
    ) -> PatternAnalysis:
        window = samples[-self._window_size:]
        offset = len(samples) - len(window)
        prices = [s.price for s in window]

        raw = await asyncio.to_thread(predict, self._model, normalize_series(window))

        support, resistance = find_support_resistance(prices)
        patterns = decode_output(
            raw,
            threshold=self._threshold,
            start_index=offset,
            end_index=len(samples) - 1,
            support=support,
            resistance=resistance,
        )
        return PatternAnalysis(
            patterns=tuple(patterns),
            timestamp=self._clock(),
            trend=detect_trend(calculate_sma(prices, SMA_PERIOD)),
            source="model",
        )
