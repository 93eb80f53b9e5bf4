# -*- coding: utf-8 -*-
"""delivery.py

Outbound channels for nudges and weekly digests.

- app   : in-app; the client polls GET /users/{user_id}/nudges, nothing to send.
- slack : incoming webhook via observability.send_slack_webhook (best-effort).

Delivery never raises: the return value says whether the message went out.
"""

from __future__ import annotations

import logging
from typing import Optional

from stress_engine import WeeklyReport
from stress_engine.narrative import summary_lines

from .nudge_store import Nudge
from .observability import log_event, send_slack_webhook

logger = logging.getLogger("delivery")

CHANNELS = ("app", "slack")


async def deliver_nudge(nudge: Nudge, channel: str = "app", *, webhook_url: Optional[str] = None) -> bool:
    if channel == "app":
        log_event(logger, "nudge_delivered", channel=channel, nudge_id=nudge.nudge_id, type=nudge.type.value)
        return True
    if channel == "slack":
        res = await send_slack_webhook(
            title="Resilify Nudge",
            text=f"{nudge.content}\n> {nudge.action_description}",
            key=f"nudge:{nudge.user_id}:{nudge.type.value}",
            webhook_url=webhook_url,
        )
        log_event(
            logger, "nudge_delivered", channel=channel, nudge_id=nudge.nudge_id,
            sent=res.sent, reason=res.reason,
        )
        return res.sent
    logger.warning("unsupported nudge channel: %s", channel)
    return False


async def send_weekly_digest(user_id: str, report: WeeklyReport, *, webhook_url: Optional[str] = None) -> bool:
    lines = summary_lines(report.progress_metrics)
    if report.recommendations:
        lines.append(f"Focus: {report.recommendations[0].title}")
    week = f"{report.week_start} - {report.week_end}" if report.week_start else "this week"
    res = await send_slack_webhook(
        title=f"Weekly wellness report ({week})",
        text="\n".join(lines),
        key=f"weekly:{user_id}:{report.week_start}",
        webhook_url=webhook_url,
    )
    log_event(logger, "weekly_digest_sent", sent=res.sent, reason=res.reason)
    return res.sent
