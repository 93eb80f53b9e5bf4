from __future__ import annotations
from datetime import date, timedelta
from typing import List, Optional, Sequence

from .models import ActivityCompletion, BasicEntry, DailyEntry, EnhancedEntry, SecondaryEmotion
from .taxonomy import EmotionCategory

# Seed builders for demos and tests. Each call returns fresh values.

_WEEK_PLAN = [
    # (primary, intensity, energy, self-reported stress, tags, notes)
    (EmotionCategory.CALM, 2, 4, 1, (), ""),
    (EmotionCategory.STRESSED, 4, 2, 4, ("work",), "deadline moved up because of the client"),
    (EmotionCategory.ANXIOUS, 4, 2, 4, ("work", "finances"), "worried about rent"),
    (EmotionCategory.TIRED, 3, 2, 3, ("health",), ""),
    (EmotionCategory.CONTENT, 2, 3, 2, (), "quiet evening"),
    (EmotionCategory.JOYFUL, 4, 4, 1, ("social",), "dinner with friends"),
    (EmotionCategory.FOCUSED, 3, 4, 2, ("work",), ""),
]


def build_sample_week(week_start: date, days: Optional[Sequence[int]] = None) -> List[DailyEntry]:
    """Enhanced entries for a week, chronological. days selects offsets 0..6."""
    offsets = list(days) if days is not None else list(range(7))
    out: List[DailyEntry] = []
    for i in offsets:
        primary, intensity, energy, stress, tags, notes = _WEEK_PLAN[i % len(_WEEK_PLAN)]
        secondary = (SecondaryEmotion(EmotionCategory.OVERWHELMED, 3),) if primary is EmotionCategory.TIRED else ()
        out.append(EnhancedEntry(
            date=week_start + timedelta(days=i),
            primary_emotion=primary,
            primary_intensity=intensity,
            secondary_emotions=secondary,
            energy_level=energy,
            stress_level=stress,
            context_tags=tags,
            notes=notes,
        ))
    return out


def build_basic_week(week_start: date, states: Sequence[str]) -> List[DailyEntry]:
    return [
        BasicEntry(date=week_start + timedelta(days=i), emotional_state=s)
        for i, s in enumerate(states)
    ]


def build_sample_completions(
    week_start: date,
    days: Sequence[int] = (0, 1, 3, 4, 5),
    activity_id: str = "breathing-4-7-8",
    rating: int = 4,
) -> List[ActivityCompletion]:
    return [ActivityCompletion(date=week_start + timedelta(days=i), activity_id=activity_id, rating=rating) for i in days]
