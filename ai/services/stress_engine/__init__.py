
from .taxonomy import EmotionCategory, EmotionGroup, IntensityLevel, ContextTag, StressType, NudgeType
from .models import (
    BasicEntry, EnhancedEntry, SecondaryEmotion, DailyEntry, entry_from_dict, TextAnalysis,
    StressAssessment, ActivityCompletion, ProgressMetrics, Recommendation, WeeklyReport,
    StressPatternSummary, NO_DATA, NOT_OBSERVED,
)
from .external import Result, call_external, acall_external
from .classifier import classify, classify_async, analyze_stress_patterns, stress_type_description, stress_severity
from .weekly import aggregate_week
