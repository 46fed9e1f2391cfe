"""Internal API routers — /risk, /patterns and /status endpoints.

No business logic.  Parses request bodies into domain values and delegates
to the injected calculator, pattern service and monitor.
"""

import logging
from typing import TYPE_CHECKING, Optional

from fastapi import APIRouter

from riskscope.patterns.models import PatternSample
from riskscope.patterns.service import PatternRecognitionService
from riskscope.risk.alerts import DEFAULT_ALERT_THRESHOLD_PCT, build_alerts
from riskscope.risk.models import DEFAULT_METRICS, AccountState, TradePosition
from riskscope.risk.scoring import RiskCalculator

if TYPE_CHECKING:
    from riskscope.monitor import RiskMonitor

logger = logging.getLogger("riskscope.api")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_calculator: RiskCalculator = RiskCalculator()
_service: PatternRecognitionService = PatternRecognitionService()
_monitor: Optional["RiskMonitor"] = None  # Set via configure_routers()
_alert_threshold_pct: float = DEFAULT_ALERT_THRESHOLD_PCT


def configure_routers(
    calculator: Optional[RiskCalculator] = None,
    service: Optional[PatternRecognitionService] = None,
    monitor: Optional["RiskMonitor"] = None,
    alert_threshold_pct: Optional[float] = None,
) -> None:
    """Inject dependencies from the application startup.

    Args:
        calculator: Scoring engine used by ``/risk`` endpoints.
        service: Pattern service used by ``/patterns/analyze``.
        monitor: A ``RiskMonitor`` whose latest results ``/status`` reports.
        alert_threshold_pct: Exposure threshold for ``danger`` alerts.
    """
    global _calculator, _service, _monitor, _alert_threshold_pct  # noqa: PLW0603
    if calculator is not None:
        _calculator = calculator
    if service is not None:
        _service = service
    _monitor = monitor
    if alert_threshold_pct is not None:
        _alert_threshold_pct = alert_threshold_pct


# ── Body parsing ─────────────────────────────────────────────────────────


def _optional_float(value) -> Optional[float]:
    return None if value is None else float(value)


def _parse_account(body: dict) -> AccountState:
    """Build an ``AccountState`` from a JSON body.

    Raises ``ValueError`` / ``TypeError`` / ``KeyError`` on malformed input.
    """
    positions = [
        TradePosition(
            size=float(p["size"]),
            entry_price=float(p["entry_price"]),
            stop_loss=_optional_float(p.get("stop_loss")),
            take_profit=_optional_float(p.get("take_profit")),
            leverage=float(p.get("leverage", 1.0)),
        )
        for p in body.get("positions", [])
    ]
    return AccountState(
        balance=float(body["balance"]),
        positions=positions,
        total_equity=float(body.get("total_equity", 0.0)),
    )


def _parse_samples(body: dict) -> list[PatternSample]:
    return [
        PatternSample(
            timestamp=int(s["timestamp"]),
            price=float(s["price"]),
            volume=float(s.get("volume", 0.0)),
        )
        for s in body.get("samples", [])
    ]


def _error(exc: Exception) -> dict:
    logger.warning("Rejected request body: %s", exc)
    return {"status": "error", "errors": [f"{type(exc).__name__}: {exc}"]}


# ── Risk ─────────────────────────────────────────────────────────────────


@router.get("/risk/default")
async def get_default_metrics():
    """Baseline metrics for callers with no account data yet."""
    return DEFAULT_METRICS.to_dict()


@router.post("/risk/metrics")
async def post_risk_metrics(body: dict):
    """Score an account snapshot."""
    try:
        account = _parse_account(body)
    except (KeyError, TypeError, ValueError) as exc:
        return _error(exc)
    metrics = _calculator.calculate_risk_metrics(account)
    return {"status": "ok", **metrics.to_dict()}


@router.post("/risk/alerts")
async def post_risk_alerts(body: dict):
    """List per-position alerts for an account snapshot."""
    try:
        account = _parse_account(body)
    except (KeyError, TypeError, ValueError) as exc:
        return _error(exc)
    alerts = build_alerts(account, _alert_threshold_pct)
    return {
        "status": "ok",
        "alerts": [
            {"level": a.level, "message": a.message, "position_index": a.position_index}
            for a in alerts
        ],
    }


# ── Patterns ─────────────────────────────────────────────────────────────


@router.post("/patterns/analyze")
async def post_analyze_patterns(body: dict):
    """Run pattern analysis over the supplied samples."""
    try:
        samples = _parse_samples(body)
    except (KeyError, TypeError, ValueError) as exc:
        return _error(exc)
    analysis = await _service.analyze_patterns(samples)
    return {"status": "ok", **analysis.to_dict()}


# ── Monitor ──────────────────────────────────────────────────────────────


@router.get("/status")
async def get_status():
    """Latest results held by the monitor."""
    if _monitor is None:
        return {"running": False, "metrics": DEFAULT_METRICS.to_dict(), "analysis": None}
    analysis = _monitor.latest_analysis
    return {
        "running": _monitor.running,
        "cycle_count": _monitor.cycle_count,
        "metrics": _monitor.latest_metrics.to_dict(),
        "analysis": analysis.to_dict() if analysis else None,
        "last_error": _monitor.last_error,
    }


@router.post("/monitor/account")
async def post_monitor_account(body: dict):
    """Push a new account snapshot to the monitor and return its score."""
    if _monitor is None:
        return {"status": "error", "errors": ["monitor not configured"]}
    try:
        account = _parse_account(body)
    except (KeyError, TypeError, ValueError) as exc:
        return _error(exc)
    return {"status": "ok", **_monitor.evaluate(account).to_dict()}


@router.post("/monitor/samples")
async def post_monitor_samples(body: dict):
    """Append samples to the monitor's rolling series."""
    if _monitor is None:
        return {"status": "error", "errors": ["monitor not configured"]}
    try:
        samples = _parse_samples(body)
    except (KeyError, TypeError, ValueError) as exc:
        return _error(exc)
    _monitor.buffer.extend(samples)
    return {"status": "ok", "buffered": len(_monitor.buffer)}
