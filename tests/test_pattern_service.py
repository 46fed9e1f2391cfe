"""Tests for riskscope.patterns.service — model lifecycle and fallback."""

import logging
from unittest.mock import patch

import numpy as np
import pytest

from riskscope.patterns.models import PatternSample
from riskscope.patterns.network import PatternNet, save_pattern_model
from riskscope.patterns.service import PatternRecognitionService


# ── Helpers ──────────────────────────────────────────────────────────────


def _series(prices: list[float]) -> list[PatternSample]:
    return [
        PatternSample(timestamp=1_700_000_000_000 + i * 60_000, price=p, volume=1_000 + i)
        for i, p in enumerate(prices)
    ]


def _double_top_series() -> list[PatternSample]:
    prices = [100.0 + i * 0.5 for i in range(30)]
    prices[10] = 130.0
    prices[25] = 130.0
    return _series(prices)


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "pattern.pt"
    save_pattern_model(PatternNet(), path)
    return path


# ── Initialisation ───────────────────────────────────────────────────────


class TestInitialize:
    @pytest.mark.asyncio
    async def test_no_model_path(self):
        service = PatternRecognitionService()
        result = await service.initialize()
        assert result.loaded is False
        assert service.model_loaded is False

    @pytest.mark.asyncio
    async def test_missing_model_falls_back(self, tmp_path):
        service = PatternRecognitionService(tmp_path / "missing.pt")
        result = await service.initialize()
        assert result.loaded is False
        assert "not found" in result.error
        assert service.model_loaded is False

    @pytest.mark.asyncio
    async def test_failed_load_is_not_retried(self, tmp_path):
        with patch(
            "riskscope.patterns.service.load_pattern_model",
            side_effect=OSError("disk gone"),
        ) as mock_load:
            service = PatternRecognitionService(tmp_path / "model.pt")
            first = await service.initialize()
            second = await service.initialize()
        assert mock_load.call_count == 1
        assert first is second
        assert service.load_result is first

    @pytest.mark.asyncio
    async def test_load_failure_logged_once(self, tmp_path, caplog):
        service = PatternRecognitionService(tmp_path / "missing.pt")
        with caplog.at_level(logging.WARNING, logger="riskscope.patterns"):
            await service.initialize()
            await service.initialize()
            await service.analyze_patterns(_double_top_series())
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1

    @pytest.mark.asyncio
    async def test_loads_saved_model(self, model_file):
        service = PatternRecognitionService(model_file)
        result = await service.initialize()
        assert result.loaded is True
        assert result.model_path == str(model_file)
        assert service.model_loaded is True

    def test_rejects_small_window(self):
        with pytest.raises(ValueError, match="window_size"):
            PatternRecognitionService(window_size=10)

    def test_rejects_bad_threshold(self):
        with pytest.raises(ValueError, match="confidence_threshold"):
            PatternRecognitionService(confidence_threshold=1.5)


# ── Heuristic path ───────────────────────────────────────────────────────


class TestHeuristicAnalysis:
    @pytest.mark.asyncio
    async def test_empty_series(self):
        service = PatternRecognitionService(clock=lambda: 42)
        analysis = await service.analyze_patterns([])
        assert analysis.patterns == ()
        assert analysis.timestamp == 42

    @pytest.mark.asyncio
    async def test_short_series_returns_no_patterns(self):
        service = PatternRecognitionService()
        await service.initialize()
        analysis = await service.analyze_patterns(_double_top_series()[:29])
        assert analysis.patterns == ()

    @pytest.mark.asyncio
    async def test_double_top_detected(self):
        service = PatternRecognitionService()
        await service.initialize()
        analysis = await service.analyze_patterns(_double_top_series())
        tops = [p for p in analysis.patterns if p.type == "double_top"]
        assert tops
        assert tops[0].confidence == 0.75
        assert tops[0].predicted_direction == "down"
        assert analysis.source == "heuristic"

    @pytest.mark.asyncio
    async def test_works_without_initialize(self):
        service = PatternRecognitionService()
        analysis = await service.analyze_patterns(_double_top_series())
        assert analysis.source == "heuristic"

    @pytest.mark.asyncio
    async def test_input_not_mutated(self):
        series = _double_top_series()
        before = list(series)
        await PatternRecognitionService().analyze_patterns(series)
        assert series == before

    @pytest.mark.asyncio
    async def test_fallback_logged_once(self, caplog):
        service = PatternRecognitionService()
        with caplog.at_level(logging.INFO, logger="riskscope.patterns"):
            for _ in range(3):
                await service.analyze_patterns(_double_top_series())
        fallback = [r for r in caplog.records if "heuristic" in r.getMessage()]
        assert len(fallback) == 1

    @pytest.mark.asyncio
    async def test_fallback_reported_once_after_initialize(self, caplog):
        service = PatternRecognitionService()
        with caplog.at_level(logging.INFO, logger="riskscope.patterns"):
            await service.initialize()
            for _ in range(3):
                await service.analyze_patterns(_double_top_series())
        fallback = [r for r in caplog.records if "heuristic" in r.getMessage()]
        assert len(fallback) == 1

    @pytest.mark.asyncio
    async def test_fallback_reported_once_after_failed_load(self, tmp_path, caplog):
        service = PatternRecognitionService(tmp_path / "missing.pt")
        with caplog.at_level(logging.INFO, logger="riskscope.patterns"):
            await service.initialize()
            await service.analyze_patterns(_double_top_series())
        fallback = [r for r in caplog.records if "heuristic" in r.getMessage()]
        assert len(fallback) == 1
        assert fallback[0].levelno == logging.WARNING


# ── Model path ───────────────────────────────────────────────────────────


class TestModelAnalysis:
    @pytest.mark.asyncio
    async def test_model_path_used(self, model_file):
        service = PatternRecognitionService(model_file, confidence_threshold=0.0)
        await service.initialize()
        series = _series([100.0 + (i % 7) for i in range(60)])
        analysis = await service.analyze_patterns(series)
        assert analysis.source == "model"
        assert len(analysis.patterns) == 5
        for p in analysis.patterns:
            assert 0.0 <= p.confidence <= 1.0
            # window_size 50 over a 60-sample series
            assert p.start_index == 10
            assert p.end_index == 59
            assert p.support_level is not None
            assert p.resistance_level is not None

    @pytest.mark.asyncio
    async def test_model_short_series_returns_no_patterns(self, model_file):
        service = PatternRecognitionService(model_file, confidence_threshold=0.0)
        await service.initialize()
        analysis = await service.analyze_patterns(_series([100.0] * 10))
        assert analysis.patterns == ()

    @pytest.mark.asyncio
    async def test_malformed_output_yields_empty_analysis(self, model_file):
        service = PatternRecognitionService(model_file)
        await service.initialize()
        with patch(
            "riskscope.patterns.service.predict", return_value=np.zeros(3)
        ):
            analysis = await service.analyze_patterns(_double_top_series())
        assert analysis.patterns == ()
        assert analysis.source == "model"

    @pytest.mark.asyncio
    async def test_inference_exception_yields_empty_analysis(self, model_file, caplog):
        service = PatternRecognitionService(model_file)
        await service.initialize()
        with patch(
            "riskscope.patterns.service.predict", side_effect=RuntimeError("boom")
        ), caplog.at_level(logging.ERROR, logger="riskscope.patterns"):
            analysis = await service.analyze_patterns(_double_top_series())
        assert analysis.patterns == ()
        assert any("boom" in r.getMessage() for r in caplog.records)
