# -*- coding: utf-8 -*-
"""nudge_store.py

Contextual nudges
-----------------

A nudge is a short, actionable prompt (breathing, break, gratitude, ...) picked
from the latest stress assessment and shown to the user for a limited time.

Design
- ``NudgeStore`` is an explicit object owned by the app. Nothing is global:
  the FastAPI dependency hands the same instance to every route, and tests
  build their own.
- Nudges expire after ``ttl_seconds`` (default 1h). Expired nudges are never
  returned and are dropped by ``purge_expired``.
- Per user, at most ``max_active`` nudges are kept; the oldest one is evicted
  when a new one would exceed the cap.
- A dismissed nudge is removed from the active set.
- Selection is deterministic (no random pick between two types), so the same
  assessment always yields the same nudge type.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from stress_engine import EmotionCategory, EnhancedEntry, DailyEntry, NudgeType, StressAssessment

from . import settings

logger = logging.getLogger("nudge_store")

INTERACTIONS = ("viewed", "actioned", "dismissed", "feedback")

HIGH_STRESS_LEVEL = 4
NUDGE_MIN_STRESS_LEVEL = 3
LOW_ENERGY_LEVEL = 2
LOW_MOOD_EMOTIONS = (EmotionCategory.SAD, EmotionCategory.DISAPPOINTED)

# (content, action label)
NUDGE_COPY: Dict[NudgeType, tuple] = {
    NudgeType.BREATHING: (
        "Taking a few deep breaths can help reduce your stress levels. Try a 2-minute breathing exercise.",
        "Start Breathing Exercise",
    ),
    NudgeType.MINDFULNESS: (
        "A quick mindfulness moment can help center your thoughts. Take 3 minutes to practice mindful awareness.",
        "Start Mindfulness",
    ),
    NudgeType.PERSPECTIVE: (
        "Remember that challenging situations are temporary. Try reframing your current situation.",
        "Reframe Perspective",
    ),
    NudgeType.ACTIVITY: (
        "A short walk or stretch can boost your energy and mood. Take a 5-minute movement break.",
        "Start Activity",
    ),
    NudgeType.BREAK: (
        "You seem to be experiencing high stress. Consider taking a short break to reset.",
        "Take a Break",
    ),
    NudgeType.SOCIAL: (
        "Connecting with others can improve your mood. Reach out to a friend or colleague.",
        "Connect",
    ),
    NudgeType.GRATITUDE: (
        "Practicing gratitude can shift your focus. Take a moment to note three things you appreciate.",
        "Practice Gratitude",
    ),
    NudgeType.RECOVERY: (
        "After a challenging event, it's important to recover. Try a recovery activity.",
        "Start Recovery",
    ),
}


def _iso_z(ts: float) -> str:
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass
class Nudge:
    nudge_id: str
    user_id: str
    type: NudgeType
    content: str
    action_description: str
    priority: str
    created_at: float
    expires_at: float
    viewed: bool = False
    actioned: bool = False
    dismissed: bool = False
    feedback_rating: Optional[int] = None
    viewed_at: Optional[float] = None
    actioned_at: Optional[float] = None
    dismissed_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def to_dict(self):
        d = asdict(self)
        d["type"] = self.type.value
        for k in ("created_at", "expires_at", "viewed_at", "actioned_at", "dismissed_at"):
            if d[k] is not None:
                d[k] = _iso_z(d[k])
        return d


def select_nudge_type(
    stress_level: int,
    energy_level: Optional[int] = None,
    primary_emotion: Optional[EmotionCategory] = None,
    preferred_types: Optional[Sequence[NudgeType]] = None,
) -> NudgeType:
    if stress_level >= HIGH_STRESS_LEVEL:
        return NudgeType.BREATHING
    if primary_emotion in LOW_MOOD_EMOTIONS:
        return NudgeType.GRATITUDE
    if energy_level is not None and energy_level <= LOW_ENERGY_LEVEL:
        return NudgeType.ACTIVITY
    if preferred_types:
        return preferred_types[0]
    return NudgeType.MINDFULNESS


def should_nudge(assessment: StressAssessment, entry: Optional[DailyEntry] = None) -> bool:
    """A nudge is worth sending on a stressful day or a low-energy day."""
    if assessment.stress_level >= NUDGE_MIN_STRESS_LEVEL:
        return True
    if isinstance(entry, EnhancedEntry) and entry.energy_level is not None:
        return entry.energy_level <= LOW_ENERGY_LEVEL
    return False


def build_contextual_nudge(
    user_id: str,
    assessment: StressAssessment,
    energy_level: Optional[int] = None,
    primary_emotion: Optional[EmotionCategory] = None,
    *,
    preferred_types: Optional[Sequence[NudgeType]] = None,
    now: Optional[float] = None,
    ttl_seconds: Optional[int] = None,
) -> Nudge:
    nudge_type = select_nudge_type(assessment.stress_level, energy_level, primary_emotion, preferred_types)
    content, action = NUDGE_COPY[nudge_type]
    created = time.time() if now is None else now
    ttl = settings.NUDGE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    return Nudge(
        nudge_id=f"nudge-{uuid.uuid4().hex[:12]}",
        user_id=user_id,
        type=nudge_type,
        content=content,
        action_description=action,
        priority="high" if assessment.stress_level >= HIGH_STRESS_LEVEL else "normal",
        created_at=created,
        expires_at=created + ttl,
    )


def nudge_for_entry(
    user_id: str,
    entry: DailyEntry,
    assessment: StressAssessment,
    *,
    preferred_types: Optional[Sequence[NudgeType]] = None,
    now: Optional[float] = None,
) -> Nudge:
    energy = None
    primary = None
    if isinstance(entry, EnhancedEntry):
        energy = entry.energy_level
        primary = entry.primary_emotion
    return build_contextual_nudge(
        user_id, assessment, energy, primary, preferred_types=preferred_types, now=now,
    )


class NudgeStore:
    """In-process store of active nudges, keyed by user."""

    def __init__(
        self,
        max_active: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_active = settings.NUDGE_MAX_ACTIVE_PER_USER if max_active is None else max(1, int(max_active))
        self._clock = clock
        self._lock = threading.Lock()
        self._by_user: Dict[str, List[Nudge]] = {}

    def insert(self, nudge: Nudge) -> Nudge:
        with self._lock:
            items = self._by_user.setdefault(nudge.user_id, [])
            items.append(nudge)
            while len(items) > self.max_active:
                dropped = items.pop(0)
                logger.info("nudge cap reached user=%s evicted=%s", nudge.user_id, dropped.nudge_id)
        return nudge

    def get_active(self, user_id: str) -> List[Nudge]:
        now = self._clock()
        with self._lock:
            return [n for n in self._by_user.get(user_id, []) if not n.is_expired(now)]

    def get(self, user_id: str, nudge_id: str) -> Optional[Nudge]:
        for n in self.get_active(user_id):
            if n.nudge_id == nudge_id:
                return n
        return None

    def update(
        self,
        user_id: str,
        nudge_id: str,
        interaction: str,
        rating: Optional[int] = None,
    ) -> Optional[Nudge]:
        """Record an interaction. Returns the nudge, or None when it is not active."""
        if interaction not in INTERACTIONS:
            raise ValueError(f"unknown nudge interaction: {interaction}")
        now = self._clock()
        with self._lock:
            items = self._by_user.get(user_id, [])
            for i, n in enumerate(items):
                if n.nudge_id != nudge_id or n.is_expired(now):
                    continue
                if interaction == "feedback":
                    n.feedback_rating = rating
                else:
                    setattr(n, interaction, True)
                    setattr(n, f"{interaction}_at", now)
                if interaction == "dismissed":
                    items.pop(i)
                return n
        return None

    def evict(self, user_id: str, nudge_id: Optional[str] = None) -> int:
        """Drop one nudge, or every nudge of the user when nudge_id is None."""
        with self._lock:
            items = self._by_user.get(user_id)
            if not items:
                return 0
            if nudge_id is None:
                self._by_user.pop(user_id, None)
                return len(items)
            kept = [n for n in items if n.nudge_id != nudge_id]
            self._by_user[user_id] = kept
            return len(items) - len(kept)

    def purge_expired(self) -> int:
        now = self._clock()
        removed = 0
        with self._lock:
            for user_id in list(self._by_user):
                items = self._by_user[user_id]
                kept = [n for n in items if not n.is_expired(now)]
                removed += len(items) - len(kept)
                if kept:
                    self._by_user[user_id] = kept
                else:
                    del self._by_user[user_id]
        if removed:
            logger.info("purged %d expired nudges", removed)
        return removed
