from __future__ import annotations
from enum import Enum, IntEnum
from typing import Dict, FrozenSet, List, Optional, Tuple

# Static emotion taxonomy shared by the classifier and the weekly aggregator.
# Read-only; every category belongs to exactly one group.


class EmotionGroup(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    CHALLENGING = "challenging"


class EmotionCategory(str, Enum):
    # positive
    JOYFUL = "joyful"
    GRATEFUL = "grateful"
    INSPIRED = "inspired"
    CALM = "calm"
    FOCUSED = "focused"
    ENERGETIC = "energetic"
    CONFIDENT = "confident"
    # neutral
    CONTENT = "content"
    NEUTRAL = "neutral"
    CONTEMPLATIVE = "contemplative"
    CURIOUS = "curious"
    # challenging
    ANXIOUS = "anxious"
    STRESSED = "stressed"
    OVERWHELMED = "overwhelmed"
    FRUSTRATED = "frustrated"
    SAD = "sad"
    TIRED = "tired"
    ANGRY = "angry"
    DISAPPOINTED = "disappointed"


class IntensityLevel(IntEnum):
    VERY_LOW = 1
    LOW = 2
    MODERATE = 3
    HIGH = 4
    VERY_HIGH = 5


class ContextTag(str, Enum):
    WORK = "work"
    PERSONAL = "personal"
    RELATIONSHIPS = "relationships"
    HEALTH = "health"
    FINANCES = "finances"
    FAMILY = "family"
    SOCIAL = "social"
    EDUCATION = "education"
    CREATIVE = "creative"
    SPIRITUAL = "spiritual"


class StressType(str, Enum):
    ACUTE = "acute"
    CHRONIC = "chronic"
    ANTICIPATORY = "anticipatory"
    REACTIVE = "reactive"
    EUSTRESS = "eustress"


class NudgeType(str, Enum):
    BREATHING = "breathing"
    MINDFULNESS = "mindfulness"
    PERSPECTIVE = "perspective"
    ACTIVITY = "activity"
    BREAK = "break"
    SOCIAL = "social"
    GRATITUDE = "gratitude"
    RECOVERY = "recovery"


EMOTION_GROUPS: Dict[EmotionGroup, Tuple[EmotionCategory, ...]] = {
    EmotionGroup.POSITIVE: (
        EmotionCategory.JOYFUL,
        EmotionCategory.GRATEFUL,
        EmotionCategory.INSPIRED,
        EmotionCategory.CALM,
        EmotionCategory.FOCUSED,
        EmotionCategory.ENERGETIC,
        EmotionCategory.CONFIDENT,
    ),
    EmotionGroup.NEUTRAL: (
        EmotionCategory.CONTENT,
        EmotionCategory.NEUTRAL,
        EmotionCategory.CONTEMPLATIVE,
        EmotionCategory.CURIOUS,
    ),
    EmotionGroup.CHALLENGING: (
        EmotionCategory.ANXIOUS,
        EmotionCategory.STRESSED,
        EmotionCategory.OVERWHELMED,
        EmotionCategory.FRUSTRATED,
        EmotionCategory.SAD,
        EmotionCategory.TIRED,
        EmotionCategory.ANGRY,
        EmotionCategory.DISAPPOINTED,
    ),
}

_GROUP_OF: Dict[EmotionCategory, EmotionGroup] = {
    c: g for g, members in EMOTION_GROUPS.items() for c in members
}

# partition check: no category missing, none listed twice
if len(_GROUP_OF) != len(EmotionCategory) or sum(len(m) for m in EMOTION_GROUPS.values()) != len(EmotionCategory):
    raise RuntimeError("emotion groups must partition EmotionCategory")

STRESSFUL_EMOTIONS: FrozenSet[EmotionCategory] = frozenset({
    EmotionCategory.ANXIOUS,
    EmotionCategory.STRESSED,
    EmotionCategory.OVERWHELMED,
    EmotionCategory.FRUSTRATED,
    EmotionCategory.ANGRY,
})
MODERATE_STRESS_EMOTIONS: FrozenSet[EmotionCategory] = frozenset({
    EmotionCategory.SAD,
    EmotionCategory.DISAPPOINTED,
    EmotionCategory.TIRED,
})
# primary emotions that mark a prior day as stressed when looking for chronic stress
CHRONIC_MARKER_EMOTIONS: FrozenSet[EmotionCategory] = frozenset({
    EmotionCategory.ANXIOUS,
    EmotionCategory.STRESSED,
    EmotionCategory.OVERWHELMED,
})
# context tags that force a moderate stress floor
PRESSURE_TAGS: FrozenSet[str] = frozenset({ContextTag.WORK.value, ContextTag.FINANCES.value})

BASIC_STATES = ("positive", "neutral", "negative")


def group_of(category: EmotionCategory) -> EmotionGroup:
    return _GROUP_OF[category]


def categories_in(group: EmotionGroup) -> List[EmotionCategory]:
    return list(EMOTION_GROUPS[group])


def _norm(raw) -> str:
    return str(raw or "").strip().lower()


def parse_emotion(raw) -> Optional[EmotionCategory]:
    """Lenient lookup: enum member, value string (any case) or None."""
    if isinstance(raw, EmotionCategory):
        return raw
    s = _norm(raw)
    if not s:
        return None
    try:
        return EmotionCategory(s)
    except ValueError:
        return None


def parse_stress_type(raw) -> Optional[StressType]:
    if isinstance(raw, StressType):
        return raw
    s = _norm(raw)
    if not s or s == "none":
        return None
    try:
        return StressType(s)
    except ValueError:
        return None


def parse_basic_state(raw) -> Optional[str]:
    s = _norm(raw)
    return s if s in BASIC_STATES else None


def parse_intensity(raw) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        v = int(raw)
    except (TypeError, ValueError):
        return None
    return max(int(IntensityLevel.VERY_LOW), min(int(IntensityLevel.VERY_HIGH), v))
