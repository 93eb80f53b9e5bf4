# -*- coding: utf-8 -*-
"""observability.py

Structured logs and best-effort Slack messages
-----------------------------------------------

Logs
- ``log_event`` writes one JSON line per event (``stress_classified``,
  ``weekly_report_built``, ``nudge_interaction`` ...).
- Free-text fields a user typed (notes, triggers, nudge copy) are replaced by
  their length before they reach the log. Only shapes and counts are kept.
- ``log_alert`` adds a greppable ``ALERT::<KEY> k=v`` line for collaborator
  failures (Supabase, OpenAI).

Slack
- ``send_slack_webhook`` posts to an incoming webhook. It never raises, and
  the same message key is sent at most once per SLACK_MIN_INTERVAL_SECONDS so a
  retried digest or a burst of nudges does not spam the channel.

Config lives in ``settings`` (WELLNESS_LOG_JSON, WELLNESS_ALERT_PREFIX, SLACK_*).
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from . import settings

USER_TEXT_FIELDS = frozenset({"notes", "triggers", "content", "text", "message_text"})
ALERT_VALUE_MAX_LEN = 200
SLACK_TEXT_MAX_LEN = 3500


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def redact(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Swap user-typed text for its size. Other values pass through."""
    out: Dict[str, Any] = {}
    for key, value in fields.items():
        if key in USER_TEXT_FIELDS and value is not None:
            size = len(value) if isinstance(value, (str, list, tuple)) else 1
            out[f"{key}_len"] = size
        else:
            out[key] = value
    return out


def log_event(logger: logging.Logger, event: str, *, level: str = "info", **fields: Any) -> None:
    record = {"ts": _utc_stamp(), "event": event, **redact(fields)}
    if settings.LOG_JSON:
        msg = json.dumps(record, ensure_ascii=False, separators=(",", ":"), default=str)
    else:
        msg = " ".join(f"{k}={v}" for k, v in record.items())
    getattr(logger, level, logger.info)(msg)


def _alert_tail(fields: Dict[str, Any]) -> str:
    parts = []
    for key, value in fields.items():
        if value is None:
            continue
        s = " ".join(str(value).split())
        if len(s) > ALERT_VALUE_MAX_LEN:
            s = s[: ALERT_VALUE_MAX_LEN - 3] + "..."
        parts.append(f"{key}={s}")
    return " ".join(parts)


def log_alert(logger: logging.Logger, alert_key: str, *, level: str = "warning", **fields: Any) -> None:
    """Structured ``alert`` event followed by the plain ALERT:: marker line."""
    log_event(logger, "alert", level=level, alert_key=alert_key, **fields)
    tail = _alert_tail(redact(fields))
    line = f"{settings.ALERT_PREFIX}{alert_key}" + (f" {tail}" if tail else "")
    getattr(logger, level, logger.warning)(line)


# ---------- Slack ----------

@dataclass
class SlackSendResult:
    sent: bool
    skipped: bool
    reason: str = ""


class _KeyThrottle:
    """Remembers when each message key last went out (monotonic seconds)."""

    def __init__(self) -> None:
        self._seen: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def allow(self, key: str, interval: float) -> bool:
        if interval <= 0:
            return True
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
        now = time.monotonic()
        async with self._lock:
            last = self._seen.get(digest)
            if last is not None and now - last < interval:
                return False
            self._seen[digest] = now
            return True

    def reset(self) -> None:
        self._seen.clear()


slack_throttle = _KeyThrottle()


async def send_slack_webhook(
    *,
    text: str,
    title: Optional[str] = None,
    key: Optional[str] = None,
    webhook_url: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
) -> SlackSendResult:
    """Post ``text`` (with an optional bold title) to Slack.

    An explicit ``webhook_url`` bypasses SLACK_NOTIFY_ENABLED.
    """
    url = webhook_url or settings.SLACK_WEBHOOK_URL
    if not url or (webhook_url is None and not settings.SLACK_NOTIFY_ENABLED):
        return SlackSendResult(sent=False, skipped=True, reason="disabled")

    if not await slack_throttle.allow(key or title or text[:80], settings.SLACK_MIN_INTERVAL_SECONDS):
        return SlackSendResult(sent=False, skipped=True, reason="rate_limited")

    body = f"*{title}*\n{text}" if title else text
    if len(body) > SLACK_TEXT_MAX_LEN:
        body = body[: SLACK_TEXT_MAX_LEN - 3] + "..."

    try:
        async with httpx.AsyncClient(timeout=timeout_seconds or settings.SLACK_TIMEOUT_SECONDS) as client:
            resp = await client.post(url, json={"text": body})
    except httpx.HTTPError as exc:
        return SlackSendResult(sent=False, skipped=False, reason=f"exception:{type(exc).__name__}")
    if resp.is_success:
        return SlackSendResult(sent=True, skipped=False, reason="ok")
    return SlackSendResult(sent=False, skipped=False, reason=f"http_{resp.status_code}")


# ---------- request correlation ----------

def new_run_id(prefix: str = "run") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def elapsed_ms(start_ms: float) -> int:
    return int(max(0.0, monotonic_ms() - start_ms))
