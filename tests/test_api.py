"""Tests for the internal API — /risk, /patterns, /status and /monitor endpoints."""

from typing import Optional, get_type_hints

import pytest
from fastapi.testclient import TestClient

from riskscope.api import routers
from riskscope.api.routers import configure_routers
from riskscope.main import app
from riskscope.monitor import RiskMonitor
from riskscope.patterns.buffer import PatternSeriesBuffer
from riskscope.patterns.service import PatternRecognitionService
from riskscope.risk.scoring import RiskCalculator

client = TestClient(app)


# ── Helpers ──────────────────────────────────────────────────────────────


def _account_body(**overrides) -> dict:
    body = {
        "balance": 10_000,
        "total_equity": 10_000,
        "positions": [
            {"size": 1_000, "entry_price": 100, "stop_loss": 98, "leverage": 1},
        ],
    }
    body.update(overrides)
    return body


def _samples_body(prices: list[float]) -> dict:
    return {
        "samples": [
            {"timestamp": 1_700_000_000_000 + i, "price": p, "volume": 10}
            for i, p in enumerate(prices)
        ]
    }


def _double_top_prices() -> list[float]:
    prices = [100.0 + i * 0.5 for i in range(30)]
    prices[10] = 130.0
    prices[25] = 130.0
    return prices


@pytest.fixture
def monitor():
    m = RiskMonitor(
        RiskCalculator(), PatternRecognitionService(), PatternSeriesBuffer(50),
        interval_seconds=1,
    )
    configure_routers(
        calculator=RiskCalculator(),
        service=PatternRecognitionService(),
        monitor=m,
    )
    yield m
    configure_routers(monitor=None)


# ── Tests ────────────────────────────────────────────────────────────────


class TestHealth:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestRiskEndpoints:
    def test_default_metrics(self):
        data = client.get("/risk/default").json()
        assert data["rank"] == "S"
        assert data["status_effects"] == ["Protected"]

    def test_metrics(self):
        data = client.post("/risk/metrics", json=_account_body()).json()
        assert data["status"] == "ok"
        assert data["total_risk_score"] == 50
        assert data["rank"] == "D"

    def test_metrics_no_positions(self):
        data = client.post("/risk/metrics", json=_account_body(positions=[])).json()
        assert data["total_risk_score"] == 100
        assert data["rank"] == "S"

    def test_metrics_missing_balance(self):
        resp = client.post("/risk/metrics", json={"positions": []})
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "error"
        assert "balance" in data["errors"][0]

    def test_metrics_invalid_position(self):
        body = _account_body(positions=[{"size": -5, "entry_price": 100}])
        data = client.post("/risk/metrics", json=body).json()
        assert data["status"] == "error"

    def test_metrics_nan_position(self):
        body = _account_body(
            positions=[{"size": "nan", "entry_price": 100, "stop_loss": "nan"}]
        )
        data = client.post("/risk/metrics", json=body).json()
        assert data["status"] == "error"
        assert "size" in data["errors"][0]

    def test_alerts(self):
        body = _account_body(positions=[{"size": 2_000, "entry_price": 100}])
        data = client.post("/risk/alerts", json=body).json()
        assert [a["level"] for a in data["alerts"]] == ["danger", "warning"]


class TestPatternEndpoint:
    def test_double_top(self):
        data = client.post("/patterns/analyze", json=_samples_body(_double_top_prices())).json()
        assert data["status"] == "ok"
        types = [p["type"] for p in data["patterns"]]
        assert "double_top" in types

    def test_short_series(self):
        data = client.post("/patterns/analyze", json=_samples_body([100.0] * 5)).json()
        assert data["patterns"] == []

    def test_bad_sample(self):
        data = client.post("/patterns/analyze", json={"samples": [{"price": 1}]}).json()
        assert data["status"] == "error"


class TestMonitorEndpoints:
    def test_status_without_monitor(self):
        configure_routers(monitor=None)
        data = client.get("/status").json()
        assert data["running"] is False
        assert data["analysis"] is None

    def test_push_account_updates_status(self, monitor):
        client.post("/monitor/account", json=_account_body())
        data = client.get("/status").json()
        assert data["metrics"]["total_risk_score"] == 50

    def test_push_samples_fills_buffer(self, monitor):
        data = client.post("/monitor/samples", json=_samples_body([1.0, 2.0, 3.0])).json()
        assert data["buffered"] == 3
        assert len(monitor.buffer) == 3

    def test_monitor_injection_is_typed(self):
        hints = get_type_hints(configure_routers, localns={"RiskMonitor": RiskMonitor})
        assert hints["monitor"] == Optional[RiskMonitor]
        module_hints = get_type_hints(routers, localns={"RiskMonitor": RiskMonitor})
        assert module_hints["_monitor"] == Optional[RiskMonitor]
