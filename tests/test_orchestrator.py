"""Tests for scan orchestration."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from readlabel.ai.client import AIAnalysisClient
from readlabel.db import MemoryKeyValueStore
from readlabel.errors import ExtractionError
from readlabel.ingredients import IngredientDatabase
from readlabel.models import ExtractedText
from readlabel.orchestrator import (
    GENERIC_ERROR,
    NO_IMAGE_ERROR,
    AnalysisOrchestrator,
    ScanStage,
)
from readlabel.quota import QuotaTracker
from readlabel.scoring import OfflineRiskScorer

TEXT = ExtractedText(
    raw="INGREDIENTS: Water,\nSugar, Trans Fat, Salt",
    clean="INGREDIENTS: Water, Sugar, Trans Fat, Salt",
)


@pytest.fixture
def extractor():
    mock = MagicMock()
    mock.extract = AsyncMock(return_value=TEXT)
    return mock


@pytest.fixture
def analyzer():
    db = IngredientDatabase()
    quota = QuotaTracker(MemoryKeyValueStore())
    return AIAnalysisClient(None, quota, OfflineRiskScorer(db), db)


class Recorder:
    def __init__(self):
        self.events = []

    def __call__(self, stage, progress):
        self.events.append((stage, progress))


@pytest.mark.asyncio
async def test_successful_scan(extractor, analyzer):
    recorder = Recorder()
    orch = AnalysisOrchestrator(extractor, analyzer, recorder)
    result = await orch.run(b"jpeg-bytes")

    assert result.ok
    assert result.progress == 100
    assert result.text == TEXT
    assert result.report.categories.high_concern == ("Trans Fat",)
    assert result.report.source == "offline"
    assert recorder.events == [
        (ScanStage.CAPTURING, 0),
        (ScanStage.EXTRACTING, 10),
        (ScanStage.EXTRACTING, 50),
        (ScanStage.ANALYZING, 60),
        (ScanStage.ANALYZING, 90),
        (ScanStage.COMPLETE, 100),
    ]
    assert orch.stage is ScanStage.COMPLETE
    assert not orch.active


@pytest.mark.asyncio
async def test_progress_is_monotonic(extractor, analyzer):
    recorder = Recorder()
    await AnalysisOrchestrator(extractor, analyzer, recorder).run(b"img")
    values = [p for _, p in recorder.events]
    assert values == sorted(values)


@pytest.mark.asyncio
async def test_missing_image(extractor, analyzer):
    result = await AnalysisOrchestrator(extractor, analyzer).run(None)
    assert result.stage is ScanStage.FAILED
    assert result.error == NO_IMAGE_ERROR
    extractor.extract.assert_not_awaited()


@pytest.mark.asyncio
async def test_extraction_failure_is_fatal(extractor):
    extractor.extract.side_effect = ExtractionError("Could not extract readable text")
    analyzer = MagicMock()
    analyzer.analyze = AsyncMock()

    orch = AnalysisOrchestrator(extractor, analyzer)
    result = await orch.run(b"img")

    assert not result.ok
    assert result.stage is ScanStage.FAILED
    assert result.error == "Could not extract readable text"
    assert result.progress == 10
    assert result.report is None
    analyzer.analyze.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_extraction_error(extractor, analyzer):
    extractor.extract.side_effect = OSError("camera unplugged")
    result = await AnalysisOrchestrator(extractor, analyzer).run(b"img")
    assert result.error == GENERIC_ERROR


@pytest.mark.asyncio
async def test_unexpected_analysis_error(extractor):
    analyzer = MagicMock()
    analyzer.analyze = AsyncMock(side_effect=RuntimeError("boom"))
    result = await AnalysisOrchestrator(extractor, analyzer).run(b"img")
    assert result.stage is ScanStage.FAILED
    assert result.error == GENERIC_ERROR
    assert result.text == TEXT


@pytest.mark.asyncio
async def test_abandoned_scan_returns_none(extractor, analyzer):
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_extract(_):
        started.set()
        await release.wait()
        return TEXT

    extractor.extract.side_effect = slow_extract
    recorder = Recorder()
    orch = AnalysisOrchestrator(extractor, analyzer, recorder)

    task = asyncio.create_task(orch.run(b"img"))
    await started.wait()
    orch.abandon()
    release.set()

    assert await task is None
    assert (ScanStage.COMPLETE, 100) not in recorder.events
    assert not orch.active


@pytest.mark.asyncio
async def test_concurrent_run_rejected(extractor, analyzer):
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_extract(_):
        started.set()
        await release.wait()
        return TEXT

    extractor.extract.side_effect = slow_extract
    orch = AnalysisOrchestrator(extractor, analyzer)
    task = asyncio.create_task(orch.run(b"img"))
    await started.wait()

    with pytest.raises(RuntimeError, match="already in progress"):
        await orch.run(b"img2")

    release.set()
    result = await task
    assert result.ok


@pytest.mark.asyncio
async def test_orchestrator_reusable_after_abandon(extractor, analyzer):
    orch = AnalysisOrchestrator(extractor, analyzer)
    orch.abandon()
    result = await orch.run(b"img")
    assert result.ok
