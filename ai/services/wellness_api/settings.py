# -*- coding: utf-8 -*-
"""settings.py

Environment configuration for the wellness API
----------------------------------------------

All settings are read once at import time. Parsing is tolerant: a malformed
value falls back to the default instead of failing the process.

App
- WELLNESS_APP_NAME (default: Resilify Wellness API)
- WELLNESS_HOST / WELLNESS_PORT (default: 0.0.0.0 / 8765)
- WELLNESS_CORS_ORIGINS (comma-separated, default: *)

Supabase (record store)
- SUPABASE_URL
- SUPABASE_SERVICE_ROLE_KEY
- WELLNESS_DAILY_ENTRIES_TABLE (default: daily_entries)
- WELLNESS_ACTIVITY_LOGS_TABLE (default: activity_logs)
- WELLNESS_RECENT_ENTRIES_LIMIT (default: 5)
- SUPABASE_HTTP_TIMEOUT_SECONDS (default: 8.0)
- SUPABASE_HTTP_MAX_CONNECTIONS / SUPABASE_HTTP_MAX_KEEPALIVE_CONNECTIONS (default: 100 / 20)

Text analysis / insights (OpenAI)
- OPENAI_API_KEY
- WELLNESS_TEXT_ANALYSIS_ENABLED (default: true when a key is set)
- WELLNESS_TEXT_ANALYSIS_MODEL (default: gpt-4o-mini)
- WELLNESS_TEXT_ANALYSIS_TIMEOUT_SECONDS (default: 8.0)
- WELLNESS_INSIGHTS_MODEL (default: gpt-4o-mini)

Nudges
- WELLNESS_NUDGE_TTL_SECONDS (default: 3600)
- WELLNESS_NUDGE_MAX_ACTIVE_PER_USER (default: 20)

Logging / Slack
- WELLNESS_LOG_JSON (default: true)
- WELLNESS_ALERT_PREFIX (default: ALERT::)
- SLACK_WEBHOOK_URL
- SLACK_NOTIFY_ENABLED (default: true when a webhook is set)
- SLACK_TIMEOUT_SECONDS (default: 3.0)
- SLACK_MIN_INTERVAL_SECONDS (default: 60, per message key)
"""

from __future__ import annotations

import os
from typing import List


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = str(raw).strip()
    return s or default


def _env_truthy(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except Exception:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(str(raw).strip())
    except Exception:
        return default


def _env_list(name: str, default: str) -> List[str]:
    raw = _env_str(name, default)
    return [x.strip() for x in raw.split(",") if x.strip()]


APP_NAME = _env_str("WELLNESS_APP_NAME", "Resilify Wellness API")
HOST = _env_str("WELLNESS_HOST", "0.0.0.0")
PORT = _env_int("WELLNESS_PORT", 8765)
ALLOWED_ORIGINS = _env_list("WELLNESS_CORS_ORIGINS", "*") or ["*"]

SUPABASE_URL = (os.getenv("SUPABASE_URL") or "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip()
DAILY_ENTRIES_TABLE = _env_str("WELLNESS_DAILY_ENTRIES_TABLE", "daily_entries")
ACTIVITY_LOGS_TABLE = _env_str("WELLNESS_ACTIVITY_LOGS_TABLE", "activity_logs")
RECENT_ENTRIES_LIMIT = max(0, _env_int("WELLNESS_RECENT_ENTRIES_LIMIT", 5))
SUPABASE_HTTP_TIMEOUT_SECONDS = _env_float("SUPABASE_HTTP_TIMEOUT_SECONDS", 8.0)
SUPABASE_HTTP_MAX_CONNECTIONS = max(1, _env_int("SUPABASE_HTTP_MAX_CONNECTIONS", 100))
SUPABASE_HTTP_MAX_KEEPALIVE = max(1, _env_int("SUPABASE_HTTP_MAX_KEEPALIVE_CONNECTIONS", 20))

OPENAI_API_KEY = (os.getenv("OPENAI_API_KEY") or "").strip()
TEXT_ANALYSIS_ENABLED = _env_truthy("WELLNESS_TEXT_ANALYSIS_ENABLED", bool(OPENAI_API_KEY))
TEXT_ANALYSIS_MODEL = _env_str("WELLNESS_TEXT_ANALYSIS_MODEL", "gpt-4o-mini")
TEXT_ANALYSIS_TIMEOUT_SECONDS = max(0.5, _env_float("WELLNESS_TEXT_ANALYSIS_TIMEOUT_SECONDS", 8.0))
INSIGHTS_MODEL = _env_str("WELLNESS_INSIGHTS_MODEL", "gpt-4o-mini")

NUDGE_TTL_SECONDS = max(60, _env_int("WELLNESS_NUDGE_TTL_SECONDS", 3600))
NUDGE_MAX_ACTIVE_PER_USER = max(1, _env_int("WELLNESS_NUDGE_MAX_ACTIVE_PER_USER", 20))

LOG_JSON = _env_truthy("WELLNESS_LOG_JSON", True)
ALERT_PREFIX = _env_str("WELLNESS_ALERT_PREFIX", "ALERT::")

SLACK_WEBHOOK_URL = _env_str("SLACK_WEBHOOK_URL", "")
SLACK_NOTIFY_ENABLED = _env_truthy("SLACK_NOTIFY_ENABLED", bool(SLACK_WEBHOOK_URL))
SLACK_TIMEOUT_SECONDS = max(0.5, _env_float("SLACK_TIMEOUT_SECONDS", 3.0))
SLACK_MIN_INTERVAL_SECONDS = max(0.0, _env_float("SLACK_MIN_INTERVAL_SECONDS", 60.0))
