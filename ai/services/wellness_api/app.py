# -*- coding: utf-8 -*-
"""
Resilify Wellness API
---------------------
- GET  /healthz                                   : health check
- POST /stress/classify                           : classify one daily entry (+ optional nudge)
- POST /reports/weekly                            : weekly report from entries in the body
- GET  /users/{user_id}/reports/weekly            : weekly report from the record store
- GET  /users/{user_id}/nudges                    : active nudges (see api_nudges.py)
- POST /users/{user_id}/nudges/{nudge_id}/{interaction}
Notes:
- The stress engine is pure; this module only wires stores, the text analyzer
  and the insights client around it.
- Notes and triggers are never logged; events carry ids, counts and timings.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from stress_engine import (
    ActivityCompletion, DailyEntry, StressAssessment, WeeklyReport, aggregate_week, classify_async,
    entry_from_dict, stress_severity, stress_type_description,
)

from . import settings
from .api_nudges import get_nudge_store, register_nudge_routes
from .delivery import deliver_nudge, send_weekly_digest
from .entries_store import EntryStore, EntryStoreError, SupabaseEntryStore
from .insights import build_default_insights_client, generate_insights
from .nudge_store import NudgeStore, nudge_for_entry, should_nudge
from .observability import elapsed_ms, log_event, monotonic_ms, new_run_id
from .supabase_client import aclose_async_client
from .text_analysis import build_default_analyzer

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("wellness_api")


# ---------- Collaborators (overridable in tests via app.dependency_overrides) ----------
_entry_store: Optional[EntryStore] = None
_text_analyzer = None
_text_analyzer_built = False
_insights_client = None
_insights_client_built = False


def get_entry_store() -> EntryStore:
    global _entry_store
    if _entry_store is None:
        _entry_store = SupabaseEntryStore()
    return _entry_store


def get_text_analyzer():
    global _text_analyzer, _text_analyzer_built
    if not _text_analyzer_built:
        _text_analyzer = build_default_analyzer()
        _text_analyzer_built = True
    return _text_analyzer


def get_insights_client():
    global _insights_client, _insights_client_built
    if not _insights_client_built:
        _insights_client = build_default_insights_client()
        _insights_client_built = True
    return _insights_client


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    await aclose_async_client()


# ---------- App ----------
app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_nudge_routes(app)


# ---------- Models ----------
class ClassifyRequest(BaseModel):
    entry: Dict[str, Any] = Field(..., description="daily entry (basic or enhanced; snake or camel case keys)")
    recent_entries: List[Dict[str, Any]] = Field(default_factory=list, description="prior entries, most recent first")
    user_id: Optional[str] = Field(default=None, description="when set, a contextual nudge may be created")
    deliver_to: Literal["app", "slack"] = Field(default="app")


class ClassifyResponse(BaseModel):
    assessment: Dict[str, Any]
    severity: str
    stress_type_description: str = ""
    nudge: Optional[Dict[str, Any]] = None


class WeeklyReportRequest(BaseModel):
    entries: List[Dict[str, Any]] = Field(default_factory=list)
    completions: List[Dict[str, Any]] = Field(default_factory=list)
    week_start: Optional[date] = None
    include_insights: bool = False


class WeeklyReportResponse(BaseModel):
    report: Dict[str, Any]
    assessments: List[Dict[str, Any]] = Field(default_factory=list)
    insights: Optional[Dict[str, Any]] = None


# ---------- Helpers ----------
def _parse_entries(rows: Sequence[Dict[str, Any]], field_name: str) -> List[DailyEntry]:
    out: List[DailyEntry] = []
    for i, row in enumerate(rows):
        try:
            out.append(entry_from_dict(row))
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=f"{field_name}[{i}]: {exc}")
    return out


def _parse_completions(rows: Sequence[Dict[str, Any]]) -> List[ActivityCompletion]:
    out: List[ActivityCompletion] = []
    for i, row in enumerate(rows):
        try:
            out.append(ActivityCompletion.from_dict(row))
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=f"completions[{i}]: {exc}")
    return out


async def assess_entries(
    entries: Sequence[DailyEntry],
    history: Sequence[DailyEntry] = (),
    analyze_text=None,
    recent_limit: int = settings.RECENT_ENTRIES_LIMIT,
) -> List[StressAssessment]:
    """Classify each entry against the entries before it (most recent first).

    entries must be chronological; history holds older entries, most recent first.
    """
    timeline = list(reversed(list(history))) + list(entries)
    offset = len(history)
    jobs = []
    for i, entry in enumerate(entries):
        pos = offset + i
        recent = list(reversed(timeline[max(0, pos - recent_limit):pos])) if recent_limit > 0 else []
        jobs.append(classify_async(entry, recent, analyze_text))
    return list(await asyncio.gather(*jobs))


async def build_weekly(
    entries: List[DailyEntry],
    completions: List[ActivityCompletion],
    week_start: Optional[date],
    history: Sequence[DailyEntry],
    analyze_text,
) -> Tuple[WeeklyReport, List[StressAssessment]]:
    entries = sorted(entries, key=lambda e: e.date)
    assessments = await assess_entries(entries, history, analyze_text)
    return aggregate_week(entries, assessments, completions, week_start=week_start), assessments


async def _weekly_response(
    report: WeeklyReport,
    assessments: List[StressAssessment],
    insights_client,
    include_insights: bool,
) -> WeeklyReportResponse:
    insights = None
    if include_insights:
        insights = (await generate_insights(report, insights_client)).to_dict()
    return WeeklyReportResponse(
        report=report.to_dict(),
        assessments=[a.to_dict() for a in assessments],
        insights=insights,
    )


# ---------- Routes ----------
@app.get("/healthz")
def healthz():
    return {"status": "ok", "app": settings.APP_NAME}


@app.post("/stress/classify", response_model=ClassifyResponse)
async def stress_classify(
    req: ClassifyRequest,
    analyze_text=Depends(get_text_analyzer),
    nudges: NudgeStore = Depends(get_nudge_store),
) -> ClassifyResponse:
    run_id = new_run_id("classify")
    t0 = monotonic_ms()

    entry = _parse_entries([req.entry], "entry")[0]
    recent = _parse_entries(req.recent_entries, "recent_entries")
    assessment = await classify_async(entry, recent, analyze_text)

    nudge_payload = None
    if req.user_id and should_nudge(assessment, entry):
        nudge = nudges.insert(nudge_for_entry(req.user_id, entry, assessment))
        await deliver_nudge(nudge, req.deliver_to)
        nudge_payload = nudge.to_dict()

    log_event(
        logger, "stress_classified",
        run_id=run_id,
        kind=entry.kind,
        stress_level=assessment.stress_level,
        stress_type=assessment.stress_type.value if assessment.stress_type else None,
        recent=len(recent),
        nudged=nudge_payload is not None,
        elapsed_ms=elapsed_ms(t0),
    )
    return ClassifyResponse(
        assessment=assessment.to_dict(),
        severity=stress_severity(assessment.stress_level),
        stress_type_description=stress_type_description(assessment.stress_type),
        nudge=nudge_payload,
    )


@app.post("/reports/weekly", response_model=WeeklyReportResponse)
async def weekly_report(
    req: WeeklyReportRequest,
    analyze_text=Depends(get_text_analyzer),
    insights_client=Depends(get_insights_client),
) -> WeeklyReportResponse:
    run_id = new_run_id("weekly")
    t0 = monotonic_ms()
    entries = _parse_entries(req.entries, "entries")
    completions = _parse_completions(req.completions)
    report, assessments = await build_weekly(entries, completions, req.week_start, (), analyze_text)
    resp = await _weekly_response(report, assessments, insights_client, req.include_insights)
    log_event(
        logger, "weekly_report_built",
        run_id=run_id, source="body", entries=len(entries), completions=len(completions),
        elapsed_ms=elapsed_ms(t0),
    )
    return resp


@app.get("/users/{user_id}/reports/weekly", response_model=WeeklyReportResponse)
async def user_weekly_report(
    user_id: str,
    week_start: Optional[date] = Query(default=None, description="YYYY-MM-DD; defaults to the last 7 days"),
    include_insights: bool = Query(default=False),
    send_digest: bool = Query(default=False),
    store: EntryStore = Depends(get_entry_store),
    analyze_text=Depends(get_text_analyzer),
    insights_client=Depends(get_insights_client),
) -> WeeklyReportResponse:
    run_id = new_run_id("weekly")
    t0 = monotonic_ms()
    start = week_start or (date.today() - timedelta(days=6))
    end = start + timedelta(days=6)

    try:
        entries = await store.fetch_entries(user_id, start, end)
        completions = await store.fetch_completions(user_id, start, end)
        history = await store.fetch_recent_entries(user_id, start, settings.RECENT_ENTRIES_LIMIT)
    except EntryStoreError as exc:
        logger.error("record store read failed run_id=%s: %s", run_id, exc)
        raise HTTPException(status_code=502, detail="Record store is unavailable")

    report, assessments = await build_weekly(entries, completions, start, history, analyze_text)
    resp = await _weekly_response(report, assessments, insights_client, include_insights)
    if send_digest:
        # best-effort; the report is returned either way
        await send_weekly_digest(user_id, report)

    log_event(
        logger, "weekly_report_built",
        run_id=run_id, source="store", entries=len(entries), completions=len(completions),
        history=len(history), elapsed_ms=elapsed_ms(t0),
    )
    return resp


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("wellness_api.app:app", host=settings.HOST, port=settings.PORT, log_level="info")
