from __future__ import annotations
import logging
from collections import Counter
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from .external import Result, acall_external, call_external
from .models import DailyEntry, EnhancedEntry, StressAssessment, StressPatternSummary, TextAnalysis
from .taxonomy import (
    CHRONIC_MARKER_EMOTIONS, MODERATE_STRESS_EMOTIONS, PRESSURE_TAGS, STRESSFUL_EMOTIONS, StressType,
)

# Rule-based stress classifier.
# - classify(): one day's entry + most-recent-first history -> StressAssessment
# - Never raises for data problems; text analysis is optional and may fail silently.
# - The only side call is analyze_text(notes); everything else is pure.

logger = logging.getLogger("stress_classifier")

MIN_LEVEL = 0
MAX_LEVEL = 5
CHRONIC_WINDOW = 3

ANTICIPATORY_PHRASES = ("worried about", "anxious about", "upcoming", "future")
REACTIVE_PHRASES = ("because of", "reacting to", "happened")

SUGGEST_BREAKS = "Consider taking breaks throughout the day"
SUGGEST_BREATHING = "Try a breathing exercise when feeling overwhelmed"
SUGGEST_MINDFULNESS = "Regular mindfulness practice may help manage stress"

# stress type -> (pattern, suggestion) appended when the type is inferred from history or notes
_TYPE_NOTES = {
    StressType.CHRONIC: (
        "Persistent stress over multiple days",
        "Consider longer-term stress management strategies",
    ),
    StressType.ACUTE: (
        "Sudden increase in stress levels",
        "Focus on immediate stress reduction techniques",
    ),
    StressType.ANTICIPATORY: (
        "Stress about future events",
        "Try preparation strategies and perspective exercises",
    ),
    StressType.REACTIVE: (
        "Stress in reaction to past events",
        "Practice acceptance and recovery techniques",
    ),
}

_TYPE_DESCRIPTIONS = {
    StressType.ACUTE: "Short-term stress in response to a specific situation",
    StressType.CHRONIC: "Long-term, persistent stress that has been ongoing",
    StressType.ANTICIPATORY: "Stress about future events or situations",
    StressType.REACTIVE: "Stress in reaction to a past event or situation",
    StressType.EUSTRESS: "Positive stress that can motivate and energize",
}

AnalyzeText = Callable[[str], Any]
AnalyzeTextAsync = Callable[[str], Awaitable[Any]]


def _clamp(level: int) -> int:
    return max(MIN_LEVEL, min(MAX_LEVEL, int(level)))


def _notes_of(entry: DailyEntry) -> str:
    # whitespace-only notes count as no notes and are never sent to analyze_text
    return (entry.notes or "").strip()


def _contains_any(text: str, phrases: Sequence[str]) -> bool:
    """Literal, case-sensitive substring match."""
    return any(p in text for p in phrases)


# ---------- history predicates ----------

def is_stressed_entry(entry: DailyEntry) -> bool:
    """A prior day counts towards chronic stress."""
    if entry.kind == "enhanced":
        return (entry.stress_level or 0) >= 3 or entry.primary_emotion in CHRONIC_MARKER_EMOTIONS
    return entry.emotional_state == "negative"


def is_calm_entry(entry: DailyEntry) -> bool:
    """A prior day that makes a spike today read as acute."""
    if entry.kind == "enhanced":
        return entry.stress_level is not None and entry.stress_level <= 2
    return entry.emotional_state == "positive"


# ---------- steps ----------

def _baseline(entry: DailyEntry) -> Tuple[int, str]:
    if entry.kind == "enhanced":
        if entry.primary_emotion in STRESSFUL_EMOTIONS:
            return _clamp(entry.primary_intensity or 4), "high"
        if entry.primary_emotion in MODERATE_STRESS_EMOTIONS:
            if entry.primary_intensity is None:
                return 2, "medium"
            # a zero result falls back to the default as well
            return _clamp(min(entry.primary_intensity - 1, 3) or 2), "medium"
        return 0, "low"
    if entry.emotional_state == "negative":
        return 4, "medium"
    if entry.emotional_state == "neutral":
        return 2, "low"
    return 0, "low"


def _apply_enhanced_signals(entry: EnhancedEntry, level: int, triggers: List[str]) -> int:
    if level < 3 and any(s.emotion in STRESSFUL_EMOTIONS for s in entry.secondary_emotions):
        level = _clamp(level + 1)
    if entry.energy_level is not None and entry.energy_level <= 2:
        level = _clamp(max(level, 2))
    for tag in entry.context_tags:
        if tag not in triggers:
            triggers.append(tag)
    if PRESSURE_TAGS.intersection(entry.context_tags):
        level = _clamp(max(level, 3))
    return level


def _infer_stress_type(entry: DailyEntry, level: int, recent: Sequence[DailyEntry]) -> Tuple[Optional[StressType], bool]:
    """Return (stress type, matched). Default-acute fallbacks are unmatched and carry no pattern."""
    notes = _notes_of(entry)
    if not recent:
        return (StressType.ACUTE if level >= 3 else None), False

    needed = min(CHRONIC_WINDOW, len(recent))
    if sum(1 for e in recent if is_stressed_entry(e)) >= needed:
        return StressType.CHRONIC, True
    if level >= 4 and is_calm_entry(recent[0]):
        return StressType.ACUTE, True
    if notes and _contains_any(notes, ANTICIPATORY_PHRASES):
        return StressType.ANTICIPATORY, True
    if notes and _contains_any(notes, REACTIVE_PHRASES):
        return StressType.REACTIVE, True
    if level >= 3:
        return StressType.ACUTE, False
    return None, False


def _minimal_assessment(entry: DailyEntry) -> StressAssessment:
    return StressAssessment(stress_level=0, stress_type=None, confidence="low", source=entry.kind)


def _assess(entry: DailyEntry, recent: Sequence[DailyEntry], text: Optional[TextAnalysis]) -> StressAssessment:
    level, confidence = _baseline(entry)
    triggers: List[str] = []
    patterns: List[str] = []
    suggestions: List[str] = []

    if entry.kind == "enhanced":
        level = _apply_enhanced_signals(entry, level, triggers)

    if text is not None:
        if text.sentiment == "negative":
            level = _clamp(max(level, 3))
            confidence = "high"
        for topic in text.topics:
            if topic not in triggers:
                triggers.append(topic)

    stress_type, matched = _infer_stress_type(entry, level, recent)
    if matched:
        pattern, suggestion = _TYPE_NOTES[stress_type]
        patterns.append(pattern)
        suggestions.append(suggestion)

    if level >= 4:
        suggestions.append(SUGGEST_BREAKS)
        suggestions.append(SUGGEST_BREATHING)
    elif level == 3:
        suggestions.append(SUGGEST_MINDFULNESS)

    return StressAssessment(
        stress_level=_clamp(level),
        stress_type=stress_type,
        confidence=confidence,
        triggers=triggers,
        patterns=patterns,
        suggestions=suggestions,
        source=entry.kind,
    )


def _text_signal(result: Result) -> Optional[TextAnalysis]:
    parsed = result.map(TextAnalysis.from_payload)
    if not parsed.ok:
        logger.warning("text analysis unavailable, using structured fields only: %s", parsed.error)
        return None
    return parsed.value


# ---------- public API ----------

def classify(
    entry: DailyEntry,
    recent_entries: Optional[Sequence[DailyEntry]] = None,
    analyze_text: Optional[AnalyzeText] = None,
) -> StressAssessment:
    """Derive a stress assessment for one day's entry.

    recent_entries are the prior entries, most recent first. analyze_text is
    called once with the notes when they are non-empty; any failure or
    malformed payload is treated as "no text analysis".
    """
    if entry.is_empty():
        return _minimal_assessment(entry)
    recent = list(recent_entries or [])
    notes = _notes_of(entry)
    text = None
    if notes and analyze_text is not None:
        text = _text_signal(call_external(analyze_text, notes))
    logger.debug("classified entry date=%s kind=%s recent=%d", entry.date, entry.kind, len(recent))
    return _assess(entry, recent, text)


async def classify_async(
    entry: DailyEntry,
    recent_entries: Optional[Sequence[DailyEntry]] = None,
    analyze_text: Optional[AnalyzeTextAsync] = None,
) -> StressAssessment:
    """Async variant of classify(): analyze_text is awaited once.

    No timeout is imposed here; wrap analyze_text to bound it. A raised error,
    timeout or cancelled inner call means "no text analysis".
    """
    if entry.is_empty():
        return _minimal_assessment(entry)
    recent = list(recent_entries or [])
    notes = _notes_of(entry)
    text = None
    if notes and analyze_text is not None:
        text = _text_signal(await acall_external(analyze_text, notes))
    return _assess(entry, recent, text)


def stress_type_description(stress_type: Optional[StressType]) -> str:
    if stress_type is None:
        return ""
    return _TYPE_DESCRIPTIONS.get(stress_type, "")


def stress_severity(level: int) -> str:
    if level <= 1:
        return "Minimal"
    if level == 2:
        return "Mild"
    if level == 3:
        return "Moderate"
    if level == 4:
        return "High"
    return "Severe"


# ---------- multi-day patterns ----------

def analyze_stress_patterns(assessments: Sequence[StressAssessment]) -> StressPatternSummary:
    if not assessments:
        return StressPatternSummary(average_stress_level=0.0, stress_frequency=0.0)

    levels = [a.stress_level for a in assessments if a.stress_level]
    average = round(sum(levels) / len(levels), 2) if levels else 0.0
    high_days = sum(1 for a in assessments if a.stress_level >= 3)
    frequency = round(high_days / len(assessments) * 100, 1)

    counts: Counter = Counter()
    for a in assessments:
        for t in dict.fromkeys(a.triggers):
            counts[t] += 1
    # ties keep first-seen order
    common = [t for t, _ in counts.most_common(3)]

    recs: List[str] = []
    if average >= 4:
        recs.append("Your stress levels are consistently high. Consider speaking with a healthcare professional.")
    elif average >= 3:
        recs.append("Regular stress management practices would be beneficial for your overall well-being.")
    if frequency >= 70:
        recs.append("You're experiencing stress on most days. Consider implementing daily stress reduction techniques.")
    elif frequency >= 40:
        recs.append("You have stress on many days. Regular mindfulness practice may help reduce overall stress.")
    if "work" in common:
        recs.append("Work appears to be a common stressor. Consider setting boundaries or discussing workload management.")
    if "relationships" in common:
        recs.append("Relationship stress is common. Communication strategies or support may be helpful.")

    return StressPatternSummary(
        average_stress_level=average,
        stress_frequency=frequency,
        common_triggers=common,
        recommendations=recs,
    )
