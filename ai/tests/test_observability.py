"""Tests for structured logging and the Slack sender."""

import asyncio
import json
import logging

from wellness_api import observability, settings
from wellness_api.observability import log_alert, log_event, redact, send_slack_webhook


def test_redact_replaces_user_text_with_length():
    out = redact({"notes": "worried about rent", "triggers": ["work", "money"], "stress_level": 4})
    assert out == {"notes_len": 18, "triggers_len": 2, "stress_level": 4}


def test_log_event_is_json_without_notes(caplog, monkeypatch):
    monkeypatch.setattr(settings, "LOG_JSON", True)
    logger = logging.getLogger("test_obs")
    with caplog.at_level(logging.INFO, logger="test_obs"):
        log_event(logger, "stress_classified", stress_level=3, notes="private words")
    record = json.loads(caplog.records[-1].getMessage())
    assert record["event"] == "stress_classified"
    assert record["notes_len"] == 13
    assert "private words" not in caplog.text


def test_log_alert_writes_marker_line(caplog, monkeypatch):
    monkeypatch.setattr(settings, "ALERT_PREFIX", "ALERT::")
    logger = logging.getLogger("test_obs")
    with caplog.at_level(logging.WARNING, logger="test_obs"):
        log_alert(logger, "SUPABASE_READ_FAILED", table="daily_entries", status=503)
    assert caplog.records[-1].getMessage() == "ALERT::SUPABASE_READ_FAILED table=daily_entries status=503"


def test_slack_disabled_without_webhook(monkeypatch):
    monkeypatch.setattr(settings, "SLACK_WEBHOOK_URL", "")
    res = asyncio.run(send_slack_webhook(text="hello"))
    assert res.skipped and res.reason == "disabled"


def test_throttle_blocks_repeat_key():
    throttle = observability._KeyThrottle()

    async def run():
        return [await throttle.allow("weekly:u1", 60), await throttle.allow("weekly:u1", 60),
                await throttle.allow("weekly:u2", 60)]

    assert asyncio.run(run()) == [True, False, True]
