from __future__ import annotations
from collections import Counter
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple, Union

from .classifier import analyze_stress_patterns
from .models import (
    ActivityCompletion, DailyEntry, NO_DATA, NOT_OBSERVED, ProgressMetrics, Recommendation,
    StressAssessment, StressPatternSummary, WeeklyReport,
)
from .narrative import narrate_activity, narrate_emotional_trends, narrate_stress_patterns
from .taxonomy import EmotionGroup, PRESSURE_TAGS, group_of

# Weekly aggregation over 7 consecutive days.
# Pre: entries sorted by date asc (not re-sorted here); assessments parallel to entries.
# Never raises on sparse data: metrics degrade to NO_DATA / NOT_OBSERVED / 0.

WINDOW_DAYS = 7
HIGH_STRESS = 4
RECOVERED_STRESS = 2
MAX_RECOMMENDATIONS = 3

_STATE_SCORE = {"negative": 1, "neutral": 2, "positive": 3}
_GROUP_SCORE = {EmotionGroup.CHALLENGING: 1, EmotionGroup.NEUTRAL: 2, EmotionGroup.POSITIVE: 3}
_GROUP_STATE = {EmotionGroup.CHALLENGING: "negative", EmotionGroup.NEUTRAL: "neutral", EmotionGroup.POSITIVE: "positive"}


def _pct_of_week(days: int) -> int:
    # round half up, capped at 100
    return min(100, int(days * 100 / WINDOW_DAYS + 0.5))


def window_for(
    entries: Sequence[DailyEntry],
    completions: Sequence[ActivityCompletion],
    week_start: Optional[date] = None,
) -> Tuple[Optional[date], Optional[date]]:
    if week_start is None:
        dates = [e.date for e in entries] + [c.date for c in completions]
        if not dates:
            return None, None
        week_start = min(dates)
    return week_start, week_start + timedelta(days=WINDOW_DAYS - 1)


def _in_window(d: date, start: Optional[date], end: Optional[date]) -> bool:
    if start is None or end is None:
        return False
    return start <= d <= end


def entry_state(entry: DailyEntry) -> Optional[str]:
    """positive / neutral / negative for either entry shape, None if unknown."""
    if entry.kind == "enhanced":
        return _GROUP_STATE[group_of(entry.primary_emotion)]
    return entry.emotional_state


def entry_score(entry: DailyEntry) -> Optional[int]:
    if entry.kind == "enhanced":
        return _GROUP_SCORE[group_of(entry.primary_emotion)]
    return _STATE_SCORE.get(entry.emotional_state or "")


def average_emotional_state(entries: Sequence[DailyEntry]) -> Union[float, str]:
    scores = [s for s in (entry_score(e) for e in entries) if s is not None]
    if not scores:
        return NO_DATA
    return round(sum(scores) / len(scores), 2)


def mood_label(average: Union[float, str]) -> str:
    if average == NO_DATA:
        return NO_DATA
    if average >= 2.5:
        return "positive"
    if average >= 1.5:
        return "neutral"
    return "negative"


def mood_distribution(entries: Sequence[DailyEntry]) -> Dict[str, int]:
    dist = {"positive": 0, "neutral": 0, "negative": 0}
    for e in entries:
        st = entry_state(e)
        if st in dist:
            dist[st] += 1
    return dist


def recovery_time(entries: Sequence[DailyEntry], assessments: Sequence[StressAssessment]) -> Union[int, str]:
    """Days from the most recent high-stress day to the first calm day after it.

    NOT_OBSERVED when there is no high-stress day, or the most recent one has
    not recovered yet.
    """
    days = list(zip(entries, assessments))
    latest = None
    for i, (_, a) in enumerate(days):
        if a.stress_level >= HIGH_STRESS:
            latest = i
    if latest is None:
        return NOT_OBSERVED
    high_entry = days[latest][0]
    for later_entry, later in days[latest + 1:]:
        if later.stress_level <= RECOVERED_STRESS:
            return (later_entry.date - high_entry.date).days
    return NOT_OBSERVED


def activity_streak(completions: Sequence[ActivityCompletion], end: Optional[date]) -> int:
    """Consecutive completion days counting back from end."""
    if end is None:
        return 0
    done = {c.date for c in completions}
    streak = 0
    d = end
    while d in done and streak < 30:
        streak += 1
        d -= timedelta(days=1)
    return streak


def activity_ratings(completions: Sequence[ActivityCompletion]) -> Dict[str, float]:
    sums: Dict[str, List[int]] = {}
    for c in completions:
        if c.rating is None:
            continue
        sums.setdefault(c.activity_id, []).append(c.rating)
    return {k: round(sum(v) / len(v), 2) for k, v in sums.items()}


# ---------- recommendations ----------

def _pressure_triggers_dominate(assessments: Sequence[StressAssessment]) -> bool:
    with_triggers = [a for a in assessments if a.triggers]
    if not with_triggers:
        return False
    pressured = sum(1 for a in with_triggers if PRESSURE_TAGS.intersection(a.triggers))
    return pressured >= 2 and pressured * 2 >= len(with_triggers)


def build_recommendations(
    metrics: ProgressMetrics,
    assessments: Sequence[StressAssessment],
    summary: StressPatternSummary,
) -> List[Recommendation]:
    """Fixed priority table; lower priority number wins, top three kept."""
    recs: List[Recommendation] = []
    high_stress_seen = any(a.stress_level >= HIGH_STRESS for a in assessments)

    if summary.average_stress_level >= 4:
        recs.append(Recommendation(
            title="Reach Out for Support",
            content="Your stress levels were consistently high this week. Consider speaking with a healthcare professional.",
            priority=1,
        ))
    if metrics.activity_completion_rate < 50:
        recs.append(Recommendation(
            title="Build an Activity Habit",
            content=f"You completed activities on {metrics.activity_completion_rate}% of days. "
                    "Try scheduling one short activity every day to increase how often you practice.",
            priority=2,
        ))
    if _pressure_triggers_dominate(assessments):
        recs.append(Recommendation(
            title="Set Boundaries Around Work and Money",
            content="Work or finances came up on most of your stressful days. "
                    "Consider setting boundaries or discussing workload management.",
            priority=3,
        ))
    if metrics.check_in_rate < 50:
        recs.append(Recommendation(
            title="Check In Daily",
            content=f"You checked in on {metrics.check_in_rate}% of days. "
                    "Daily check-ins make your patterns and progress easier to see.",
            priority=4,
        ))
    if summary.stress_frequency >= 40:
        recs.append(Recommendation(
            title="Schedule Mindfulness Before Stressful Moments",
            content="Stress showed up on many days. A 5-minute mindfulness session before demanding tasks can help.",
            priority=5,
        ))
    if "relationships" in summary.common_triggers:
        recs.append(Recommendation(
            title="Lean on Communication",
            content="Relationships were a recurring trigger. Communication strategies or support may be helpful.",
            priority=6,
        ))
    if high_stress_seen and metrics.recovery_time == NOT_OBSERVED:
        recs.append(Recommendation(
            title="Stress Buffer Days",
            content="Schedule buffer time after high-stress days to allow for recovery and prevent stress accumulation.",
            priority=7,
        ))

    recs.sort(key=lambda r: r.priority)
    recs = recs[:MAX_RECOMMENDATIONS]
    if not recs:
        recs.append(Recommendation(
            title="Keep Building Your Resilience Practice",
            content="Continue your daily check-ins and try different activity types to find what works best for you.",
            priority=99,
        ))
    return recs


# ---------- entrypoint ----------

def aggregate_week(
    entries: Sequence[DailyEntry],
    assessments: Sequence[StressAssessment],
    activity_completions: Sequence[ActivityCompletion],
    week_start: Optional[date] = None,
) -> WeeklyReport:
    start, end = window_for(entries, activity_completions, week_start)

    # keep entries and their assessments paired; extra entries without an assessment
    # still count for check-ins and mood, but not for stress metrics
    paired = [(e, a) for e, a in zip(entries, assessments) if _in_window(e.date, start, end)]
    window_entries = [e for e in entries if _in_window(e.date, start, end)]
    window_assessments = [a for _, a in paired]
    window_completions = [c for c in activity_completions if _in_window(c.date, start, end)]

    check_in_days = {e.date for e in window_entries}
    completion_days = {c.date for c in window_completions}
    avg = average_emotional_state(window_entries)

    metrics = ProgressMetrics(
        check_in_rate=_pct_of_week(len(check_in_days)),
        activity_completion_rate=_pct_of_week(len(completion_days)),
        average_emotional_state=avg,
        average_mood_label=mood_label(avg),
        recovery_time=recovery_time([e for e, _ in paired], window_assessments),
        activity_streak=activity_streak(window_completions, end),
    )
    summary = analyze_stress_patterns(window_assessments)
    distribution = mood_distribution(window_entries)
    ratings = activity_ratings(window_completions)
    counts = Counter(c.activity_id for c in window_completions)

    return WeeklyReport(
        week_start=start,
        week_end=end,
        progress_metrics=metrics,
        emotional_trends=narrate_emotional_trends(metrics, distribution, len(check_in_days)),
        stress_patterns=narrate_stress_patterns(metrics, summary, window_assessments),
        activity_effectiveness=narrate_activity(metrics, len(completion_days), ratings, counts),
        recommendations=build_recommendations(metrics, window_assessments, summary),
        mood_distribution=distribution,
        stress_summary=summary,
    )
