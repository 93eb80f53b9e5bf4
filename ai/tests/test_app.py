"""Route tests for the wellness API (in-memory store, no network)."""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from stress_engine.samples import build_sample_completions, build_sample_week
from wellness_api.api_nudges import get_nudge_store
from wellness_api.app import app, get_entry_store, get_insights_client, get_text_analyzer
from wellness_api.entries_store import EntryStoreError
from wellness_api.nudge_store import NudgeStore

WEEK = date(2025, 10, 6)


class FakeEntryStore:
    def __init__(self, entries=(), completions=(), history=(), fail=False):
        self.entries = list(entries)
        self.completions = list(completions)
        self.history = list(history)
        self.fail = fail
        self.calls = []

    async def fetch_entries(self, user_id, start, end):
        self.calls.append(("entries", user_id, start, end))
        if self.fail:
            raise EntryStoreError("boom")
        return [e for e in self.entries if start <= e.date <= end]

    async def fetch_recent_entries(self, user_id, before, limit):
        self.calls.append(("recent", user_id, before, limit))
        return self.history[:limit]

    async def fetch_completions(self, user_id, start, end):
        self.calls.append(("completions", user_id, start, end))
        return [c for c in self.completions if start <= c.date <= end]


@pytest.fixture
def nudges():
    return NudgeStore()


@pytest.fixture
def client(nudges):
    app.dependency_overrides[get_text_analyzer] = lambda: None
    app.dependency_overrides[get_insights_client] = lambda: None
    app.dependency_overrides[get_nudge_store] = lambda: nudges
    app.dependency_overrides[get_entry_store] = lambda: FakeEntryStore()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_classify_basic_entry(client):
    r = client.post("/stress/classify", json={"entry": {"date": "2025-10-06", "emotionalState": "negative"}})
    assert r.status_code == 200
    body = r.json()
    assert body["assessment"]["stress_level"] == 4
    assert body["assessment"]["stress_type"] == "acute"
    assert body["severity"] == "High"
    assert body["stress_type_description"]
    assert body["nudge"] is None


def test_classify_with_history_and_text_stub(client):
    app.dependency_overrides[get_text_analyzer] = lambda: _negative_analyzer
    r = client.post("/stress/classify", json={
        "entry": {"date": "2025-10-08", "primary_emotion": "calm", "energy_level": 4, "notes": "bad news"},
        "recent_entries": [{"date": "2025-10-07", "emotional_state": "negative"}],
    })
    body = r.json()
    assert body["assessment"]["stress_level"] == 3
    assert body["assessment"]["confidence"] == "high"
    assert body["assessment"]["stress_type"] == "chronic"


async def _negative_analyzer(_notes):
    return {"sentiment": "negative", "topics": [], "confidence": 0.9}


def test_classify_rejects_entry_without_date(client):
    r = client.post("/stress/classify", json={"entry": {"emotional_state": "neutral"}})
    assert r.status_code == 422


def test_nudge_lifecycle(client, nudges):
    r = client.post("/stress/classify", json={
        "entry": {"date": "2025-10-06", "primary_emotion": "stressed", "primary_intensity": 5},
        "user_id": "u1",
    })
    nudge = r.json()["nudge"]
    assert nudge["type"] == "breathing"
    assert nudge["priority"] == "high"

    listed = client.get("/users/u1/nudges").json()["nudges"]
    assert [n["nudge_id"] for n in listed] == [nudge["nudge_id"]]

    base = f"/users/u1/nudges/{nudge['nudge_id']}"
    assert client.post(f"{base}/viewed").json()["nudge"]["viewed"] is True
    assert client.post(f"{base}/feedback").status_code == 422
    assert client.post(f"{base}/feedback", json={"rating": 4}).json()["nudge"]["feedback_rating"] == 4
    assert client.post(f"{base}/liked").status_code == 422
    assert client.post(f"{base}/dismissed").status_code == 200
    assert client.get("/users/u1/nudges").json()["nudges"] == []
    assert client.post(f"{base}/viewed").status_code == 404


def test_calm_entry_creates_no_nudge(client, nudges):
    r = client.post("/stress/classify", json={
        "entry": {"date": "2025-10-06", "primary_emotion": "calm", "energy_level": 4},
        "user_id": "u1",
    })
    assert r.json()["nudge"] is None
    assert nudges.get_active("u1") == []


def test_weekly_report_from_body(client):
    r = client.post("/reports/weekly", json={
        "entries": [
            {"date": "2025-10-07", "emotionalState": "negative"},
            {"date": "2025-10-06", "emotionalState": "positive"},
        ],
        "completions": [{"completion_date": "2025-10-06", "activity_id": "walk", "rating": 4}],
        "week_start": "2025-10-06",
        "include_insights": True,
    })
    assert r.status_code == 200
    body = r.json()
    assert body["report"]["week_start"] == "2025-10-06"
    assert body["report"]["progress_metrics"]["check_in_rate"] == 29
    assert body["report"]["progress_metrics"]["activity_completion_rate"] == 14
    # entries are sorted before classification: the negative day follows a calm one
    assert [a["stress_level"] for a in body["assessments"]] == [0, 4]
    assert body["insights"]["source"] == "fallback"


def test_weekly_report_rejects_bad_completion(client):
    r = client.post("/reports/weekly", json={"completions": [{"activity_id": "walk"}]})
    assert r.status_code == 422


def test_user_weekly_report_reads_store(client):
    store = FakeEntryStore(
        entries=build_sample_week(WEEK),
        completions=build_sample_completions(WEEK),
        history=build_sample_week(WEEK - timedelta(days=7), days=(6, 5)),
    )
    app.dependency_overrides[get_entry_store] = lambda: store
    r = client.get("/users/u1/reports/weekly", params={"week_start": "2025-10-06"})
    assert r.status_code == 200
    m = r.json()["report"]["progress_metrics"]
    assert m["check_in_rate"] == 100
    assert m["activity_completion_rate"] == 71
    assert ("entries", "u1", WEEK, WEEK + timedelta(days=6)) in store.calls
    assert ("recent", "u1", WEEK, 5) in store.calls


def test_user_weekly_report_store_failure_is_502(client):
    app.dependency_overrides[get_entry_store] = lambda: FakeEntryStore(fail=True)
    r = client.get("/users/u1/reports/weekly", params={"week_start": "2025-10-06"})
    assert r.status_code == 502
