"""Tests for entry parsing and value objects."""

from datetime import date

import pytest

from stress_engine.models import (
    ActivityCompletion,
    BasicEntry,
    EnhancedEntry,
    SecondaryEmotion,
    StressAssessment,
    TextAnalysis,
    entry_from_dict,
    parse_date,
)
from stress_engine.taxonomy import EmotionCategory, StressType


def test_basic_row_snake_case():
    entry = entry_from_dict({"date": "2025-10-06", "emotional_state": "Negative", "notes": "long day"})
    assert isinstance(entry, BasicEntry)
    assert entry.kind == "basic"
    assert entry.emotional_state == "negative"
    assert entry.notes == "long day"


def test_enhanced_row_camel_case():
    entry = entry_from_dict({
        "date": "2025-10-07T08:30:00Z",
        "primaryEmotion": "anxious",
        "primaryIntensity": 4,
        "secondaryEmotions": [{"emotion": "tired", "intensity": 2}, {"emotion": "tired", "intensity": 5}],
        "energyLevel": 2,
        "stressLevel": 4,
        "contextTags": ["work", "Work", "finances"],
    })
    assert isinstance(entry, EnhancedEntry)
    assert entry.kind == "enhanced"
    assert entry.date == date(2025, 10, 7)
    assert entry.primary_emotion is EmotionCategory.ANXIOUS
    assert entry.secondary_emotions == (SecondaryEmotion(EmotionCategory.TIRED, 2),)
    assert entry.context_tags == ("work", "finances")


def test_mood_triggers_are_context_tags():
    entry = entry_from_dict({"date": "2025-10-06", "primary_emotion": "sad", "mood_triggers": "family, health"})
    assert entry.context_tags == ("family", "health")


def test_unknown_primary_emotion_falls_back_to_basic():
    entry = entry_from_dict({"date": "2025-10-06", "primary_emotion": "elated", "emotional_state": "positive"})
    assert isinstance(entry, BasicEntry)
    assert entry.emotional_state == "positive"


def test_row_without_date_is_rejected():
    with pytest.raises(ValueError):
        entry_from_dict({"emotional_state": "neutral"})


def test_basic_entry_without_state_is_empty():
    assert BasicEntry(date=date(2025, 10, 6)).is_empty()
    assert not BasicEntry(date=date(2025, 10, 6), emotional_state="neutral").is_empty()


def test_parse_date_variants():
    assert parse_date("2025-10-06") == date(2025, 10, 6)
    assert parse_date("2025-10-06T23:59:00+09:00") == date(2025, 10, 6)
    assert parse_date("yesterday") is None
    assert parse_date(None) is None


def test_text_analysis_payload_validation():
    ta = TextAnalysis.from_payload({"sentiment": "Negative", "topics": ["Work", "work", ""], "confidence": "0.7"})
    assert ta.sentiment == "negative"
    assert ta.topics == ("work",)
    assert ta.confidence == 0.7

    with pytest.raises(ValueError):
        TextAnalysis.from_payload("negative")
    with pytest.raises(ValueError):
        TextAnalysis.from_payload({"sentiment": "angry"})
    with pytest.raises(ValueError):
        TextAnalysis.from_payload({"sentiment": "neutral", "topics": "work"})


def test_activity_completion_from_row():
    c = ActivityCompletion.from_dict({"completion_date": "2025-10-08", "activity_id": "walk", "rating": "4"})
    assert c == ActivityCompletion(date=date(2025, 10, 8), activity_id="walk", rating=4)
    with pytest.raises(ValueError):
        ActivityCompletion.from_dict({"activity_id": "walk"})


def test_assessment_to_dict_uses_enum_value():
    a = StressAssessment(stress_level=3, stress_type=StressType.REACTIVE, confidence="medium")
    d = a.to_dict()
    assert d["stress_type"] == "reactive"
    assert d["stress_level"] == 3
    assert "analyzed_at" in d
