from stress_engine import classify, aggregate_week
from stress_engine.samples import build_sample_week, build_sample_completions
from datetime import date

# sample enhanced entries (ordered), classified against the days before them
week_start = date(2025, 10, 6)
entries = build_sample_week(week_start)
completions = build_sample_completions(week_start)


def fake_text_analysis(text):
    negative = any(w in text for w in ("deadline", "worried", "rent"))
    return {"sentiment": "negative" if negative else "neutral", "topics": [], "confidence": 0.5}


assessments = []
for i, entry in enumerate(entries):
    recent = list(reversed(entries[max(0, i - 5):i]))  # most recent first
    assessments.append(classify(entry, recent, analyze_text=fake_text_analysis))

report = aggregate_week(entries, assessments, completions, week_start=week_start)

print("=== Daily Assessments ===")
for e, a in zip(entries, assessments):
    print(e.date, a.to_dict())
print("\n=== Weekly Report ===")
print(report.to_dict())
