from __future__ import annotations
from typing import Dict, List, Mapping, Sequence

from .models import NO_DATA, NOT_OBSERVED, ProgressMetrics, StressAssessment, StressPatternSummary

# Weekly narrative text.
# Policy:
# - Every sentence that talks about a metric quotes the metric as computed.
# - Sparse weeks get a plain "not enough" sentence, never an error.


def _days(n: int) -> str:
    return f"{n} day" if n == 1 else f"{n} days"


def narrate_emotional_trends(metrics: ProgressMetrics, distribution: Mapping[str, int], check_in_days: int) -> str:
    if metrics.average_emotional_state == NO_DATA:
        return (
            f"No check-ins were recorded this week (check-in rate {metrics.check_in_rate}%), "
            "so there is no data for emotional trends yet."
        )
    lines = [
        f"You checked in on {check_in_days} of 7 days ({metrics.check_in_rate}%).",
        f"Your average emotional state was {metrics.average_emotional_state} on a 1-3 scale, "
        f"which reads as {metrics.average_mood_label} overall.",
    ]
    parts = [f"{distribution.get(k, 0)} {k}" for k in ("positive", "neutral", "negative")]
    lines.append("Day mix: " + ", ".join(parts) + ".")
    return " ".join(lines)


def _peak(assessments: Sequence[StressAssessment]) -> int:
    return max((a.stress_level for a in assessments), default=0)


def narrate_stress_patterns(
    metrics: ProgressMetrics,
    summary: StressPatternSummary,
    assessments: Sequence[StressAssessment],
) -> str:
    if not assessments:
        return "No stress assessments were available for this week."
    lines = [
        f"Average stress level was {summary.average_stress_level} with a peak of {_peak(assessments)} out of 5.",
        f"Stress of 3 or more showed up on {summary.stress_frequency}% of assessed days.",
    ]
    if summary.common_triggers:
        lines.append("Most common triggers: " + ", ".join(summary.common_triggers) + ".")
    if metrics.recovery_time == NOT_OBSERVED:
        lines.append(f"Recovery time: {NOT_OBSERVED} this week.")
    else:
        lines.append(f"After your most recent high-stress day you recovered in {_days(metrics.recovery_time)}.")
    return " ".join(lines)


def narrate_activity(
    metrics: ProgressMetrics,
    completion_days: int,
    ratings: Mapping[str, float],
    counts: Mapping[str, int],
) -> str:
    if not counts:
        return f"No activities were completed this week (completion rate {metrics.activity_completion_rate}%)."
    lines = [
        f"You completed activities on {completion_days} of 7 days ({metrics.activity_completion_rate}%), "
        f"{sum(counts.values())} completions in total.",
    ]
    if ratings:
        best = sorted(ratings.items(), key=lambda kv: (-kv[1], kv[0]))[0]
        lines.append(f"Highest rated activity: {best[0]} ({best[1]}/5).")
    if metrics.activity_streak:
        lines.append(f"Current activity streak: {_days(metrics.activity_streak)}.")
    return " ".join(lines)


def summary_lines(metrics: ProgressMetrics) -> List[str]:
    """Short key/value lines for notifications (Slack weekly digest)."""
    return [
        f"Check-in rate: {metrics.check_in_rate}%",
        f"Activity completion rate: {metrics.activity_completion_rate}%",
        f"Average emotional state: {metrics.average_emotional_state}",
        f"Recovery time: {metrics.recovery_time}" + ("" if metrics.recovery_time == NOT_OBSERVED else " days"),
    ]
