from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union

from .taxonomy import (
    EmotionCategory, StressType, parse_emotion, parse_basic_state, parse_intensity,
)

NO_DATA = "no data"
NOT_OBSERVED = "not observed"

Confidence = Literal["low", "medium", "high"]
Sentiment = Literal["positive", "neutral", "negative"]
SENTIMENTS = ("positive", "neutral", "negative")


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def parse_date(raw: Any) -> Optional[date]:
    """Accept date, datetime, 'YYYY-MM-DD' or a full ISO timestamp."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw).strip()
    if len(s) < 10:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


# ---------- DailyEntry (tagged union) ----------

@dataclass(frozen=True)
class SecondaryEmotion:
    emotion: EmotionCategory
    intensity: Optional[int] = None


@dataclass(frozen=True)
class BasicEntry:
    date: date
    emotional_state: Optional[str] = None  # positive / neutral / negative
    notes: str = ""
    kind: Literal["basic"] = field(default="basic", init=False)

    def is_empty(self) -> bool:
        return self.emotional_state is None


@dataclass(frozen=True)
class EnhancedEntry:
    date: date
    primary_emotion: EmotionCategory
    primary_intensity: Optional[int] = None
    secondary_emotions: tuple = ()   # SecondaryEmotion, unique by emotion
    energy_level: Optional[int] = None
    stress_level: Optional[int] = None  # self report, independent of the classifier
    context_tags: tuple = ()         # tag values (str), unique, insertion ordered
    notes: str = ""
    kind: Literal["enhanced"] = field(default="enhanced", init=False)

    def __post_init__(self):
        seen = set()
        sec = []
        for s in self.secondary_emotions:
            if s.emotion in seen:
                continue
            seen.add(s.emotion)
            sec.append(s)
        object.__setattr__(self, "secondary_emotions", tuple(sec))
        tags = (str(getattr(t, "value", t)) for t in self.context_tags)
        object.__setattr__(self, "context_tags", tuple(dict.fromkeys(tags)))

    def is_empty(self) -> bool:
        return False


DailyEntry = Union[BasicEntry, EnhancedEntry]


def _pick(row: Dict[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in row and row[k] is not None:
            return row[k]
    return None


def _tag_list(raw: Any) -> List[str]:
    if not raw:
        return []
    if isinstance(raw, str):
        raw = raw.split(",")
    out = []
    for t in raw:
        s = str(getattr(t, "value", t) or "").strip().lower()
        if s:
            out.append(s)
    return out


def _secondary_list(raw: Any) -> List[SecondaryEmotion]:
    out: List[SecondaryEmotion] = []
    for item in raw or []:
        if isinstance(item, SecondaryEmotion):
            out.append(item)
            continue
        if isinstance(item, dict):
            emo = parse_emotion(item.get("emotion"))
            inten = parse_intensity(item.get("intensity"))
        else:
            emo = parse_emotion(item)
            inten = None
        if emo is not None:
            out.append(SecondaryEmotion(emotion=emo, intensity=inten))
    return out


def entry_from_dict(row: Dict[str, Any]) -> DailyEntry:
    """Build a DailyEntry from a daily_entries row or an API body.

    snake_case and camelCase keys are both accepted. A row is enhanced iff it
    carries a recognised primary emotion.
    """
    d = parse_date(_pick(row, "date", "entry_date"))
    if d is None:
        raise ValueError("entry row has no valid date")
    notes = str(_pick(row, "notes") or "")
    primary = parse_emotion(_pick(row, "primary_emotion", "primaryEmotion"))
    if primary is None:
        return BasicEntry(
            date=d,
            emotional_state=parse_basic_state(_pick(row, "emotional_state", "emotionalState")),
            notes=notes,
        )
    return EnhancedEntry(
        date=d,
        primary_emotion=primary,
        primary_intensity=parse_intensity(_pick(row, "primary_intensity", "primaryIntensity")),
        secondary_emotions=tuple(_secondary_list(_pick(row, "secondary_emotions", "secondaryEmotions"))),
        energy_level=parse_intensity(_pick(row, "energy_level", "energyLevel")),
        stress_level=parse_intensity(_pick(row, "stress_level", "stressLevel")),
        context_tags=tuple(_tag_list(_pick(row, "context_tags", "contextTags", "mood_triggers"))),
        notes=notes,
    )


# ---------- external text analysis ----------

@dataclass(frozen=True)
class TextAnalysis:
    sentiment: str
    topics: tuple = ()
    confidence: float = 0.0

    @classmethod
    def from_payload(cls, payload: Any) -> "TextAnalysis":
        """Validate a raw analyzer payload. Raises ValueError when malformed."""
        if isinstance(payload, TextAnalysis):
            return payload
        if not isinstance(payload, dict):
            raise ValueError(f"text analysis payload must be a mapping, got {type(payload).__name__}")
        sentiment = str(payload.get("sentiment") or "").strip().lower()
        if sentiment not in SENTIMENTS:
            raise ValueError(f"unknown sentiment: {payload.get('sentiment')!r}")
        topics_raw = payload.get("topics") or []
        if not isinstance(topics_raw, (list, tuple)):
            raise ValueError("topics must be a list")
        topics = tuple(dict.fromkeys(str(t).strip().lower() for t in topics_raw if str(t).strip()))
        try:
            confidence = float(payload.get("confidence") or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0
        return cls(sentiment=sentiment, topics=topics, confidence=confidence)


# ---------- StressAssessment ----------

@dataclass
class StressAssessment:
    stress_level: int
    stress_type: Optional[StressType]
    confidence: str
    triggers: List[str] = field(default_factory=list)
    patterns: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    source: str = "basic"
    analyzed_at: str = field(default_factory=_iso_now, compare=False)

    def to_dict(self):
        d = asdict(self)
        d["stress_type"] = self.stress_type.value if self.stress_type else None
        return d


# ---------- weekly aggregation ----------

@dataclass(frozen=True)
class ActivityCompletion:
    date: date
    activity_id: str
    rating: Optional[int] = None

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "ActivityCompletion":
        d = parse_date(_pick(row, "completion_date", "completionDate", "date"))
        if d is None:
            raise ValueError("activity log row has no valid completion date")
        rating = _pick(row, "rating")
        try:
            rating = int(rating) if rating is not None else None
        except (TypeError, ValueError):
            rating = None
        return cls(date=d, activity_id=str(_pick(row, "activity_id", "activityId") or ""), rating=rating)


@dataclass
class ProgressMetrics:
    check_in_rate: int
    activity_completion_rate: int
    average_emotional_state: Union[float, str]  # 1..3 scale or NO_DATA
    average_mood_label: str                     # positive / neutral / negative / NO_DATA
    recovery_time: Union[int, str]              # days or NOT_OBSERVED
    activity_streak: int = 0


@dataclass
class Recommendation:
    title: str
    content: str
    priority: int = 0


@dataclass
class StressPatternSummary:
    average_stress_level: float
    stress_frequency: float
    common_triggers: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class WeeklyReport:
    week_start: Optional[date]
    week_end: Optional[date]
    progress_metrics: ProgressMetrics
    emotional_trends: str
    stress_patterns: str
    activity_effectiveness: str
    recommendations: List[Recommendation] = field(default_factory=list)
    mood_distribution: Dict[str, int] = field(default_factory=dict)
    stress_summary: Optional[StressPatternSummary] = None
    generated_at: str = field(default_factory=_iso_now, compare=False)

    def to_dict(self):
        d = asdict(self)
        d["week_start"] = self.week_start.isoformat() if self.week_start else None
        d["week_end"] = self.week_end.isoformat() if self.week_end else None
        return d
