"""Tests for the rule-based stress classifier."""

import asyncio
import itertools
from datetime import date, timedelta

from stress_engine.classifier import (
    SUGGEST_BREAKS,
    SUGGEST_BREATHING,
    SUGGEST_MINDFULNESS,
    analyze_stress_patterns,
    classify,
    classify_async,
    stress_severity,
    stress_type_description,
)
from stress_engine.models import BasicEntry, EnhancedEntry, SecondaryEmotion, StressAssessment
from stress_engine.taxonomy import ContextTag, EmotionCategory, StressType

DAY = date(2025, 10, 8)


def _enhanced(emotion, intensity=None, energy=None, stress=None, tags=(), notes="", secondary=(), day=DAY):
    return EnhancedEntry(
        date=day,
        primary_emotion=emotion,
        primary_intensity=intensity,
        secondary_emotions=tuple(secondary),
        energy_level=energy,
        stress_level=stress,
        context_tags=tuple(tags),
        notes=notes,
    )


def _negative_text(_notes):
    return {"sentiment": "negative", "topics": ["sleep"], "confidence": 0.8}


class _Recorder:
    def __init__(self, payload):
        self.payload = payload
        self.calls = []

    def __call__(self, notes):
        self.calls.append(notes)
        return self.payload


# ---------- testable properties ----------

def test_stress_level_always_in_range():
    tag_sets = [(), ("work",), ("finances", "relationships")]
    for emotion, intensity, energy, tags in itertools.product(EmotionCategory, range(1, 6), range(1, 6), tag_sets):
        entry = _enhanced(
            emotion, intensity, energy, tags=tags, notes="worried about tomorrow",
            secondary=[SecondaryEmotion(EmotionCategory.ANGRY, 5)],
        )
        level = classify(entry, [], analyze_text=_negative_text).stress_level
        assert 0 <= level <= 5


def test_classify_is_deterministic():
    entry = _enhanced(EmotionCategory.FRUSTRATED, 3, 2, tags=("work",), notes="deadline because of a late review")
    recent = [_enhanced(EmotionCategory.CALM, 2, 4, stress=1, day=DAY - timedelta(days=1))]
    first = classify(entry, recent, analyze_text=_negative_text)
    second = classify(entry, recent, analyze_text=_negative_text)
    assert first == second


def test_low_energy_floors_stress_at_two():
    calm = classify(_enhanced(EmotionCategory.CALM, 2, energy=4))
    tired = classify(_enhanced(EmotionCategory.CALM, 2, energy=2))
    assert calm.stress_level == 0
    assert tired.stress_level == 2


def test_chronic_checked_before_anticipatory():
    recent = [
        _enhanced(EmotionCategory.NEUTRAL, 2, 3, stress=3, day=DAY - timedelta(days=i))
        for i in (1, 2, 3)
    ]
    entry = _enhanced(EmotionCategory.NEUTRAL, 2, 3, tags=("work",), notes="worried about the upcoming review")
    a = classify(entry, recent)
    assert a.stress_level == 3
    assert a.stress_type is StressType.CHRONIC
    assert "Persistent stress over multiple days" in a.patterns
    assert "Consider longer-term stress management strategies" in a.suggestions


def test_basic_negative_entry_without_history():
    a = classify(BasicEntry(date=DAY, emotional_state="negative", notes=""), [])
    assert a.stress_level == 4
    assert a.confidence == "medium"
    assert a.stress_type is StressType.ACUTE
    assert a.source == "basic"
    assert a.patterns == []
    assert a.suggestions == [SUGGEST_BREAKS, SUGGEST_BREATHING]


def test_enhanced_calm_entry():
    a = classify(_enhanced(EmotionCategory.CALM, 2, energy=4, tags=()))
    assert a.stress_level == 0
    assert a.stress_type is None
    assert a.source == "enhanced"
    assert a.suggestions == []


def test_work_tag_forces_moderate_stress():
    a = classify(_enhanced(EmotionCategory.CONTENT, 3, energy=3, tags=("work",)))
    assert a.stress_level >= 3
    assert "work" in a.triggers
    assert a.suggestions[-1] == SUGGEST_MINDFULNESS


def test_context_tag_enum_members_count_as_pressure_tags():
    entry = _enhanced(EmotionCategory.CONTENT, energy=3, tags=(ContextTag.WORK, ContextTag.FINANCES, ContextTag.WORK))
    assert entry.context_tags == ("work", "finances")
    a = classify(entry, [])
    assert a.stress_level >= 3
    assert a.triggers == ["work", "finances"]


def test_negative_text_overrides_low_baseline():
    a = classify(_enhanced(EmotionCategory.CALM, 2, energy=4, notes="could not sleep"), [], analyze_text=_negative_text)
    assert a.stress_level >= 3
    assert a.confidence == "high"
    assert "sleep" in a.triggers


# ---------- baseline and adjustments ----------

def test_stressful_emotion_uses_intensity_or_defaults_to_four():
    assert classify(_enhanced(EmotionCategory.ANGRY, 5)).stress_level == 5
    a = classify(_enhanced(EmotionCategory.ANXIOUS))
    assert a.stress_level == 4
    assert a.confidence == "high"


def test_moderate_emotion_baseline():
    assert classify(_enhanced(EmotionCategory.SAD, 5)).stress_level == 3
    assert classify(_enhanced(EmotionCategory.SAD, 3)).stress_level == 2
    # intensity 1 yields zero, which falls back to the default
    assert classify(_enhanced(EmotionCategory.TIRED, 1)).stress_level == 2
    assert classify(_enhanced(EmotionCategory.DISAPPOINTED)).confidence == "medium"


def test_basic_neutral_and_positive():
    neutral = classify(BasicEntry(date=DAY, emotional_state="neutral"))
    positive = classify(BasicEntry(date=DAY, emotional_state="positive"))
    assert (neutral.stress_level, neutral.confidence) == (2, "low")
    assert positive.stress_level == 0


def test_secondary_stressful_emotion_bumps_low_levels_only():
    bumped = classify(_enhanced(EmotionCategory.CALM, secondary=[SecondaryEmotion(EmotionCategory.OVERWHELMED, 3)]))
    assert bumped.stress_level == 1
    high = classify(_enhanced(EmotionCategory.STRESSED, 4, secondary=[SecondaryEmotion(EmotionCategory.ANGRY, 3)]))
    assert high.stress_level == 4


def test_duplicate_tags_collapse_into_triggers():
    a = classify(_enhanced(EmotionCategory.CALM, tags=("family", "family", "health")))
    assert a.triggers == ["family", "health"]


def test_text_topics_merge_without_duplicates():
    analyzer = _Recorder({"sentiment": "neutral", "topics": ["work", "sleep"], "confidence": 0.5})
    a = classify(_enhanced(EmotionCategory.CALM, tags=("work",), notes="busy"), analyze_text=analyzer)
    assert a.triggers == ["work", "sleep"]
    assert a.confidence == "low"


# ---------- text analysis failures ----------

def test_analyzer_failure_is_ignored():
    def broken(_notes):
        raise ConnectionError("offline")

    entry = _enhanced(EmotionCategory.CALM, 2, energy=4, notes="fine day")
    assert classify(entry, analyze_text=broken) == classify(entry)


def test_malformed_analyzer_payload_is_ignored():
    entry = _enhanced(EmotionCategory.CALM, 2, energy=4, notes="fine day")
    for payload in ("negative", {"sentiment": "furious"}, {"sentiment": "negative", "topics": "work"}, None):
        a = classify(entry, analyze_text=lambda _n, p=payload: p)
        assert a.stress_level == 0
        assert a.confidence == "low"


def test_analyzer_called_only_for_non_empty_notes():
    analyzer = _Recorder({"sentiment": "neutral", "topics": []})
    classify(_enhanced(EmotionCategory.CALM, notes="   "), analyze_text=analyzer)
    classify(_enhanced(EmotionCategory.CALM, notes=" walked home "), analyze_text=analyzer)
    assert analyzer.calls == ["walked home"]


def test_empty_basic_entry_gives_minimal_assessment():
    analyzer = _Recorder({"sentiment": "negative", "topics": []})
    a = classify(BasicEntry(date=DAY, notes="something"), None, analyze_text=analyzer)
    assert (a.stress_level, a.stress_type, a.confidence) == (0, None, "low")
    assert analyzer.calls == []


# ---------- stress type inference ----------

def test_acute_after_calm_day():
    recent = [_enhanced(EmotionCategory.CALM, 2, 4, stress=1, day=DAY - timedelta(days=1))]
    a = classify(_enhanced(EmotionCategory.STRESSED, 5), recent)
    assert a.stress_type is StressType.ACUTE
    assert a.patterns == ["Sudden increase in stress levels"]


def test_anticipatory_keywords_match_case_sensitively():
    recent = [BasicEntry(date=DAY - timedelta(days=1), emotional_state="neutral")]
    a = classify(BasicEntry(date=DAY, emotional_state="negative", notes="worried about the exam"), recent)
    assert a.stress_type is StressType.ANTICIPATORY
    assert "Try preparation strategies and perspective exercises" in a.suggestions

    b = classify(BasicEntry(date=DAY, emotional_state="negative", notes="Upcoming exam"), recent)
    assert b.stress_type is StressType.ACUTE
    assert b.patterns == []


def test_reactive_keywords():
    recent = [BasicEntry(date=DAY - timedelta(days=1), emotional_state="neutral")]
    a = classify(BasicEntry(date=DAY, emotional_state="negative", notes="upset because of the meeting"), recent)
    assert a.stress_type is StressType.REACTIVE
    assert a.patterns == ["Stress in reaction to past events"]


def test_fallback_acute_without_pattern():
    recent = [BasicEntry(date=DAY - timedelta(days=1), emotional_state="neutral")]
    a = classify(BasicEntry(date=DAY, emotional_state="negative"), recent)
    assert a.stress_type is StressType.ACUTE
    assert a.patterns == []


def test_chronic_needs_only_available_history():
    recent = [BasicEntry(date=DAY - timedelta(days=1), emotional_state="negative")]
    a = classify(BasicEntry(date=DAY, emotional_state="neutral"), recent)
    assert a.stress_type is StressType.CHRONIC


def test_low_stress_with_history_has_no_type():
    recent = [BasicEntry(date=DAY - timedelta(days=1), emotional_state="positive")]
    a = classify(BasicEntry(date=DAY, emotional_state="positive"), recent)
    assert a.stress_type is None


# ---------- async ----------

def test_classify_async_matches_sync():
    async def analyzer(_notes):
        return {"sentiment": "negative", "topics": ["sleep"], "confidence": 0.8}

    entry = _enhanced(EmotionCategory.CALM, 2, energy=4, notes="could not sleep")
    a = asyncio.run(classify_async(entry, [], analyzer))
    assert a == classify(entry, [], analyze_text=_negative_text)


def test_classify_async_timeout_means_no_text_signal():
    async def slow(_notes):
        await asyncio.sleep(1)
        return {"sentiment": "negative", "topics": []}

    async def bounded(notes):
        return await asyncio.wait_for(slow(notes), timeout=0.01)

    entry = _enhanced(EmotionCategory.CALM, 2, energy=4, notes="could not sleep")
    a = asyncio.run(classify_async(entry, [], bounded))
    assert a.stress_level == 0
    assert a.confidence == "low"


# ---------- helpers ----------

def test_severity_bands():
    assert [stress_severity(i) for i in range(6)] == ["Minimal", "Minimal", "Mild", "Moderate", "High", "Severe"]


def test_stress_type_description():
    assert stress_type_description(StressType.CHRONIC).startswith("Long-term")
    assert stress_type_description(None) == ""


def test_analyze_stress_patterns():
    assessments = [
        StressAssessment(stress_level=4, stress_type=StressType.ACUTE, confidence="high", triggers=["work"]),
        StressAssessment(stress_level=4, stress_type=StressType.ACUTE, confidence="high", triggers=["work", "work"]),
        StressAssessment(stress_level=2, stress_type=None, confidence="low", triggers=["relationships"]),
        StressAssessment(stress_level=0, stress_type=None, confidence="low"),
    ]
    summary = analyze_stress_patterns(assessments)
    assert summary.average_stress_level == 3.33
    assert summary.stress_frequency == 50.0
    assert summary.common_triggers == ["work", "relationships"]
    assert len(summary.recommendations) == 4


def test_analyze_stress_patterns_empty():
    summary = analyze_stress_patterns([])
    assert summary.average_stress_level == 0.0
    assert summary.stress_frequency == 0.0
    assert summary.recommendations == []
