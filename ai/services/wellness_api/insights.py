# -*- coding: utf-8 -*-
"""insights.py

Weekly insight cards
--------------------

``generate_insights`` turns a WeeklyReport into a few short insight cards.

- When an LLM client is configured, it is asked for cards in JSON mode. Only
  aggregated metrics and narrative text are sent; raw notes never leave the
  service from here.
- Any failure (no client, API error, malformed JSON, empty card list) falls
  back to deterministic cards derived from the report itself, so the endpoint
  always answers.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from stress_engine import NO_DATA, NOT_OBSERVED, WeeklyReport, acall_external

from . import settings
from .observability import log_event

logger = logging.getLogger("insights")

INSIGHT_TYPES = ("pattern", "recommendation", "observation")
CONFIDENCE_LEVELS = ("low", "medium", "high")
TRENDS = ("improving", "stable", "concerning")
MAX_CARDS = 4

INSIGHTS_SYSTEM_PROMPT = (
    "You are an emotional wellness coach. Given one week of aggregated wellness metrics, "
    "write compassionate, non-judgmental insights with concrete next steps. "
    "Respond with strict JSON: "
    '{"insights": [{"title": str, "type": "pattern|recommendation|observation", '
    '"confidence": "low|medium|high", "content": str, "suggestions": [str], "data_points": [str]}], '
    '"overall_trend": "improving|stable|concerning", "key_recommendation": str}'
)

InsightsClient = Callable[[str], Awaitable[Dict[str, Any]]]


@dataclass
class InsightCard:
    title: str
    type: str
    confidence: str
    content: str
    suggestions: List[str] = field(default_factory=list)
    data_points: List[str] = field(default_factory=list)


@dataclass
class InsightBundle:
    insights: List[InsightCard]
    overall_trend: str
    key_recommendation: str
    source: str = "fallback"  # llm / fallback

    def to_dict(self):
        return asdict(self)


def _str_list(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [str(x).strip() for x in raw if str(x).strip()]


def parse_insights(payload: Any) -> InsightBundle:
    """Validate an LLM payload. Raises ValueError when nothing usable is in it."""
    if not isinstance(payload, dict):
        raise ValueError("insights payload must be a JSON object")
    cards: List[InsightCard] = []
    for raw in payload.get("insights") or []:
        if not isinstance(raw, dict):
            continue
        title = str(raw.get("title") or "").strip()
        content = str(raw.get("content") or "").strip()
        if not title or not content:
            continue
        kind = str(raw.get("type") or "").strip().lower()
        conf = str(raw.get("confidence") or "").strip().lower()
        cards.append(InsightCard(
            title=title,
            type=kind if kind in INSIGHT_TYPES else "observation",
            confidence=conf if conf in CONFIDENCE_LEVELS else "medium",
            content=content,
            suggestions=_str_list(raw.get("suggestions")),
            data_points=_str_list(raw.get("data_points") or raw.get("dataPoints")),
        ))
    if not cards:
        raise ValueError("insights payload has no usable cards")
    trend = str(payload.get("overall_trend") or payload.get("overallTrend") or "").strip().lower()
    key = str(payload.get("key_recommendation") or payload.get("keyRecommendation") or "").strip()
    return InsightBundle(
        insights=cards[:MAX_CARDS],
        overall_trend=trend if trend in TRENDS else "stable",
        key_recommendation=key or cards[0].content,
        source="llm",
    )


def overall_trend(report: WeeklyReport) -> str:
    m = report.progress_metrics
    summary = report.stress_summary
    if (summary is not None and summary.average_stress_level >= 4) or m.average_mood_label == "negative":
        return "concerning"
    if m.average_mood_label == "positive" and m.recovery_time != NOT_OBSERVED:
        return "improving"
    return "stable"


def fallback_insights(report: WeeklyReport) -> InsightBundle:
    """Deterministic cards: one observation per narrative, then the top recommendation."""
    m = report.progress_metrics
    cards: List[InsightCard] = []

    if m.average_emotional_state == NO_DATA:
        cards.append(InsightCard(
            title="Keep Building Your Resilience Practice",
            type="observation",
            confidence="medium",
            content="You're actively engaging with emotional wellness tracking, which is a positive step toward building resilience.",
            suggestions=[
                "Continue your daily check-ins to build more complete emotional awareness",
                "Try different activity types to find what works best for you",
            ],
            data_points=["consistent tracking behavior"],
        ))
    else:
        cards.append(InsightCard(
            title="How Your Week Felt",
            type="observation",
            confidence="high" if m.check_in_rate >= 70 else "medium",
            content=report.emotional_trends,
            data_points=[f"check-in rate {m.check_in_rate}%", f"average emotional state {m.average_emotional_state}"],
        ))
        cards.append(InsightCard(
            title="Your Stress Pattern",
            type="pattern",
            confidence="medium",
            content=report.stress_patterns,
            data_points=[f"recovery time {m.recovery_time}"],
        ))

    if report.recommendations:
        top = report.recommendations[0]
        cards.append(InsightCard(
            title=top.title,
            type="recommendation",
            confidence="medium",
            content=top.content,
            suggestions=[r.title for r in report.recommendations[1:]],
            data_points=[f"activity completion rate {m.activity_completion_rate}%"],
        ))

    key = report.recommendations[0].content if report.recommendations else \
        "Focus on consistency in your daily emotional check-ins"
    return InsightBundle(
        insights=cards[:MAX_CARDS],
        overall_trend=overall_trend(report),
        key_recommendation=key,
        source="fallback",
    )


def build_insights_prompt(report: WeeklyReport) -> str:
    d = report.to_dict()
    payload = {
        "week_start": d["week_start"],
        "week_end": d["week_end"],
        "progress_metrics": d["progress_metrics"],
        "mood_distribution": d["mood_distribution"],
        "stress_summary": d["stress_summary"],
        "emotional_trends": d["emotional_trends"],
        "stress_patterns": d["stress_patterns"],
        "activity_effectiveness": d["activity_effectiveness"],
        "recommendations": [r["title"] for r in d["recommendations"]],
    }
    return "Weekly wellness metrics:\n" + json.dumps(payload, ensure_ascii=False, indent=2)


class OpenAIInsightsClient:
    """Async JSON-mode chat completion returning the parsed object."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None) -> None:
        self.api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self.model = model or settings.INSIGHTS_MODEL
        self._client: Optional[AsyncOpenAI] = None

    async def __call__(self, prompt: str) -> Dict[str, Any]:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key)
        completion = await self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": INSIGHTS_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=0.7,
            max_tokens=1500,
            response_format={"type": "json_object"},
        )
        return json.loads(completion.choices[0].message.content or "")


def build_default_insights_client() -> Optional[InsightsClient]:
    if not settings.OPENAI_API_KEY:
        return None
    return OpenAIInsightsClient()


async def generate_insights(report: WeeklyReport, client: Optional[InsightsClient] = None) -> InsightBundle:
    if client is None:
        return fallback_insights(report)

    result = (await acall_external(client, build_insights_prompt(report))).map(parse_insights)
    if not result.ok:
        log_event(logger, "insights_fallback", level="warning", error=type(result.error).__name__)
        return fallback_insights(report)
    return result.value
