"""RiskMonitor — drives scoring and pattern analysis for one account.

Scoring runs synchronously on every account update.  Pattern analysis runs
on a slower interval and is serialised: a tick that finds an analysis still
in flight is skipped rather than queued.
"""

import asyncio
import logging
from typing import Optional

from riskscope.patterns.buffer import PatternSeriesBuffer
from riskscope.patterns.models import PatternAnalysis
from riskscope.patterns.service import PatternRecognitionService
from riskscope.risk.models import DEFAULT_METRICS, AccountState, RiskMetrics
from riskscope.risk.scoring import RiskCalculator

logger = logging.getLogger("riskscope.monitor")


class RiskMonitor:
    """Holds the latest results for the presentation layer.

    Args:
        calculator: Risk scoring engine.
        service: Pattern recognition service (already initialised or not).
        buffer: Rolling series owned by the caller.
        interval_seconds: Seconds between pattern analyses in :meth:`run`.
    """

    def __init__(
        self,
        calculator: RiskCalculator,
        service: PatternRecognitionService,
        buffer: PatternSeriesBuffer,
        interval_seconds: int = 30,
    ) -> None:
        if interval_seconds < 1:
            raise ValueError(
                f"interval_seconds must be at least 1, got {interval_seconds}"
            )
        self._calculator = calculator
        self._service = service
        self._buffer = buffer
        self._interval = interval_seconds
        self._latest_metrics: RiskMetrics = DEFAULT_METRICS
        self._latest_analysis: Optional[PatternAnalysis] = None
        self._last_error: Optional[str] = None
        self._in_flight: bool = False
        self._running: bool = False
        self._cycle_count: int = 0

    # ── Scoring ──────────────────────────────────────────────────────────

    def evaluate(self, account: AccountState) -> RiskMetrics:
        """Score *account* and remember the result."""
        self._latest_metrics = self._calculator.calculate_risk_metrics(account)
        return self._latest_metrics

    # ── Pattern analysis ─────────────────────────────────────────────────

    async def analyze_once(self) -> Optional[PatternAnalysis]:
        """Analyse the current buffer snapshot.

        Returns ``None`` without doing any work if a previous analysis has
        not finished yet.
        """
        if self._in_flight:
            logger.debug("Pattern analysis still in flight — skipping tick.")
            return None

        self._in_flight = True
        try:
            analysis = await self._service.analyze_patterns(self._buffer.snapshot())
        except Exception as exc:
            logger.error("Pattern analysis error: %s", exc)
            self._last_error = str(exc)
            return None
        finally:
            self._in_flight = False

        self._latest_analysis = analysis
        self._last_error = None
        return analysis

    async def run(self, max_cycles: int = 0) -> int:
        """Analyse on a fixed interval until :meth:`stop` is called.

        Args:
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            Number of cycles run.
        """
        self._running = True
        cycle = 0
        while self._running:
            cycle += 1
            self._cycle_count += 1
            analysis = await self.analyze_once()
            if analysis is not None:
                logger.info(
                    "Cycle %d: %d pattern(s) via %s",
                    cycle, len(analysis.patterns), analysis.source,
                )

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep — checks _running every second
            for _ in range(self._interval):
                if not self._running:
                    break
                await asyncio.sleep(1)

        self._running = False
        return cycle

    def stop(self) -> None:
        """Signal :meth:`run` to exit after the current cycle."""
        self._running = False

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def buffer(self) -> PatternSeriesBuffer:
        return self._buffer

    @property
    def latest_metrics(self) -> RiskMetrics:
        return self._latest_metrics

    @property
    def latest_analysis(self) -> Optional[PatternAnalysis]:
        return self._latest_analysis

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cycle_count(self) -> int:
        return self._cycle_count
