"""Tests for the quota-gated AI analysis client."""

import asyncio
import json
from unittest.mock import MagicMock

import pytest

from readlabel.ai import CompletionBackend
from readlabel.ai.client import AIAnalysisClient
from readlabel.db import MemoryKeyValueStore, SQLiteKeyValueStore
from readlabel.errors import ConfigurationError, MalformedResponse, NetworkError
from readlabel.ingredients import IngredientDatabase
from readlabel.quota import QuotaTracker
from readlabel.scoring import OfflineRiskScorer

LABEL = "INGREDIENTS: Water, Sugar, Trans Fat, Salt"

AI_REPLY = json.dumps({
    "healthScore": 4,
    "totalIngredients": 4,
    "categories": {
        "safe": ["Water", "Sugar", "Salt"],
        "moderate": [],
        "highConcern": ["Trans Fat"],
    },
    "advice": "Avoid regular consumption.",
    "warnings": ["Trans fats raise LDL cholesterol"],
    "details": {},
})


class FakeBackend(CompletionBackend):
    name = "fake"

    def __init__(self, reply=AI_REPLY, error=None, delay=0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts = []
        self.connects = 0

    async def connect(self):
        self.connects += 1

    async def complete(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeTime:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []

    def clock(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture(scope="module")
def db():
    return IngredientDatabase()


@pytest.fixture
def quota():
    return QuotaTracker(MemoryKeyValueStore())


def make_client(backend, quota, db, **kwargs):
    return AIAnalysisClient(backend, quota, OfflineRiskScorer(db), db, **kwargs)


@pytest.mark.asyncio
async def test_ai_success(quota, db):
    backend = FakeBackend()
    client = make_client(backend, quota, db)
    report = await client.analyze(LABEL)

    assert report.source == "ai"
    assert report.fallback_reason is None
    assert report.health_score == 4
    assert quota.count() == 1
    assert "Water, Sugar, Trans Fat, Salt" in backend.prompts[0]


@pytest.mark.asyncio
async def test_no_backend_uses_offline(quota, db):
    report = await make_client(None, quota, db).analyze(LABEL)
    assert report.source == "offline"
    assert report.fallback_reason == "configuration"
    assert report.categories.high_concern == ("Trans Fat",)
    assert report.health_score == 8
    assert quota.count() == 0


@pytest.mark.asyncio
async def test_quota_denial_skips_backend(db):
    quota = QuotaTracker(MemoryKeyValueStore(), daily_limit=1)
    quota.record()
    backend = FakeBackend()
    report = await make_client(backend, quota, db).analyze(LABEL)

    assert report.source == "offline"
    assert report.fallback_reason == "quota_exceeded"
    assert backend.prompts == []
    assert backend.connects == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,reason",
    [
        (NetworkError("unreachable"), "network"),
        (MalformedResponse("empty"), "malformed_response"),
        (ConfigurationError("bad key"), "configuration"),
        (KeyError("surprise"), "error"),
    ],
)
async def test_backend_errors_fall_back(quota, db, error, reason):
    report = await make_client(FakeBackend(error=error), quota, db).analyze(LABEL)
    assert report.source == "offline"
    assert report.fallback_reason == reason
    assert report.health_score == 8


@pytest.mark.asyncio
async def test_failed_requests_not_counted(quota, db):
    await make_client(FakeBackend(error=NetworkError("down")), quota, db).analyze(LABEL)
    assert quota.count() == 0


@pytest.mark.asyncio
async def test_timeout_falls_back(quota, db):
    client = make_client(FakeBackend(delay=1.0), quota, db, timeout=0.01)
    report = await client.analyze(LABEL)
    assert report.source == "offline"
    assert report.fallback_reason == "network"


@pytest.mark.asyncio
async def test_unparseable_reply_uses_text_parser(quota, db):
    backend = FakeBackend(reply="Health score: 3. Caution: trans fat present.")
    report = await make_client(backend, quota, db).analyze(LABEL)
    assert report.source == "ai"
    assert report.health_score == 3
    assert report.warnings == ("trans fat present.",)
    assert report.categories.high_concern == ("Trans Fat",)


@pytest.mark.asyncio
async def test_requests_are_spaced(quota, db):
    fake = FakeTime()
    client = make_client(
        FakeBackend(), quota, db,
        min_request_interval=2.0, clock=fake.clock, sleep=fake.sleep,
    )
    await client.analyze(LABEL)
    assert fake.sleeps == []

    fake.now += 0.5
    await client.analyze(LABEL)
    assert fake.sleeps == [pytest.approx(1.5)]

    fake.now += 5.0
    await client.analyze(LABEL)
    assert len(fake.sleeps) == 1


@pytest.mark.asyncio
async def test_repeated_offline_analysis_is_deterministic(quota, db):
    client = make_client(None, quota, db)
    first = await client.analyze(LABEL)
    second = await client.analyze(LABEL)
    assert first == second


def test_usage_stats(quota, db):
    quota.record()
    stats = make_client(None, quota, db).usage_stats()
    assert stats == {
        "requests_today": 1,
        "remaining_requests": 1499,
        "can_make_request": True,
    }


@pytest.mark.asyncio
async def test_unreadable_quota_database_still_reports(tmp_path, db):
    path = tmp_path / "readlabel.db"
    path.write_bytes(b"\x00garbage" * 512)
    quota = QuotaTracker(SQLiteKeyValueStore(path))

    report = await make_client(None, quota, db).analyze(
        "INGREDIENTS: Water, Partially Hydrogenated Oil, Salt"
    )
    assert report.source == "offline"
    assert "Partially Hydrogenated Oil" in report.categories.high_concern
    assert report.health_score == 8


@pytest.mark.asyncio
async def test_failing_admission_check_falls_back(db):
    quota = MagicMock()
    quota.can_proceed.side_effect = RuntimeError("store exploded")
    backend = FakeBackend()
    report = await make_client(backend, quota, db).analyze(LABEL)

    assert report.source == "offline"
    assert report.fallback_reason == "error"
    assert backend.prompts == []


@pytest.mark.asyncio
async def test_concurrent_requests_share_spacing(quota, db):
    fake = FakeTime()
    backend = FakeBackend()
    client = make_client(
        backend, quota, db,
        min_request_interval=2.0, clock=fake.clock, sleep=fake.sleep,
    )
    await client.analyze(LABEL)
    fake.now += 0.5

    reports = await asyncio.gather(client.analyze(LABEL), client.analyze(LABEL))

    assert [r.source for r in reports] == ["ai", "ai"]
    # The second waiter starts its interval after the first one dispatched
    assert fake.sleeps == [pytest.approx(1.5), pytest.approx(2.0)]
    assert quota.count() == 3
