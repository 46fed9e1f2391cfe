"""RiskScope — application entry point.

Boots the FastAPI internal server and provides the CLI entry point for
serve, score, and analyze modes.
"""

import json
import logging

from fastapi import FastAPI

from riskscope.api.routers import router

app = FastAPI(title="RiskScope Internal API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("riskscope")


@app.get("/health")
async def health():
    """Liveness probe."""
    return {"status": "ok"}


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli() -> None:
    """Parse CLI arguments and dispatch to the appropriate mode."""
    import argparse
    import asyncio

    from riskscope.config import load_config

    parser = argparse.ArgumentParser(description="RiskScope risk analytics")
    parser.add_argument(
        "--mode",
        choices=["serve", "score", "analyze"],
        default="serve",
        help="Run mode (default: serve)",
    )
    parser.add_argument(
        "--input",
        help="JSON file: an account snapshot (score) or {\"samples\": [...]} (analyze)",
    )
    args = parser.parse_args()

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if args.mode == "serve":
        asyncio.run(_serve(config))
        return

    if not args.input:
        parser.error(f"--input is required in {args.mode} mode")
    with open(args.input, "r", encoding="utf-8") as f:
        body = json.load(f)

    if args.mode == "score":
        print(json.dumps(_score(body, config), indent=2))
    else:
        print(json.dumps(asyncio.run(_analyze(body, config)), indent=2))


def _score(body: dict, config) -> dict:
    from riskscope.api.routers import _parse_account
    from riskscope.risk.alerts import build_alerts
    from riskscope.risk.scoring import RiskCalculator

    account = _parse_account(body)
    metrics = RiskCalculator().calculate_risk_metrics(account)
    alerts = build_alerts(account, config.alert_threshold_pct)
    return {
        **metrics.to_dict(),
        "alerts": [{"level": a.level, "message": a.message} for a in alerts],
    }


async def _analyze(body: dict, config) -> dict:
    from riskscope.api.routers import _parse_samples
    from riskscope.patterns.service import PatternRecognitionService

    service = PatternRecognitionService(
        config.pattern_model_path,
        window_size=config.pattern_window_size,
        confidence_threshold=config.pattern_confidence_threshold,
    )
    await service.initialize()
    analysis = await service.analyze_patterns(_parse_samples(body))
    return analysis.to_dict()


async def _serve(config) -> None:
    """Start the API server and the pattern monitor concurrently."""
    import asyncio

    import uvicorn

    from riskscope.api.routers import configure_routers
    from riskscope.monitor import RiskMonitor
    from riskscope.patterns.buffer import PatternSeriesBuffer
    from riskscope.patterns.service import PatternRecognitionService
    from riskscope.risk.scoring import RiskCalculator

    calculator = RiskCalculator()
    service = PatternRecognitionService(
        config.pattern_model_path,
        window_size=config.pattern_window_size,
        confidence_threshold=config.pattern_confidence_threshold,
    )
    result = await service.initialize()
    logger.info("Pattern model loaded: %s", result.loaded)

    monitor = RiskMonitor(
        calculator,
        service,
        PatternSeriesBuffer(config.series_capacity),
        interval_seconds=config.analysis_interval_seconds,
    )
    configure_routers(
        calculator=calculator,
        service=service,
        monitor=monitor,
        alert_threshold_pct=config.alert_threshold_pct,
    )

    server = uvicorn.Server(
        uvicorn.Config(app, host="0.0.0.0", port=config.api_port, log_level="info")
    )
    logger.info("Starting RiskScope (%s) on port %d", config.environment, config.api_port)
    monitor_task = asyncio.create_task(monitor.run())
    try:
        await server.serve()
    finally:
        monitor.stop()
        cycles = await monitor_task
    logger.info("RiskScope stopped after %d analysis cycle(s).", cycles)


if __name__ == "__main__":
    _run_cli()
