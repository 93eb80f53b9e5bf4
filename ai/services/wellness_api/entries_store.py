# -*- coding: utf-8 -*-
"""entries_store.py

Record store for daily entries and activity logs
------------------------------------------------

The stress engine never owns storage. This module reads the durable copy from
Supabase (PostgREST) and hands value objects to the engine:

- daily_entries  -> stress_engine.DailyEntry (via entry_from_dict)
- activity_logs  -> stress_engine.ActivityCompletion

Rows that cannot be mapped (no date, broken JSON) are skipped and logged, so
one bad row does not take the weekly report down. Transport failures raise
EntryStoreError; the API turns that into a 502.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import httpx

from stress_engine import ActivityCompletion, DailyEntry, entry_from_dict

from . import settings
from .observability import log_alert
from .supabase_client import SupabaseConfigError, sb_get

logger = logging.getLogger("entries_store")


class EntryStoreError(RuntimeError):
    """Raised when the record store cannot be read."""


class EntryStore(Protocol):
    async def fetch_entries(self, user_id: str, start: date, end: date) -> List[DailyEntry]: ...

    async def fetch_recent_entries(self, user_id: str, before: date, limit: int) -> List[DailyEntry]: ...

    async def fetch_completions(self, user_id: str, start: date, end: date) -> List[ActivityCompletion]: ...


def map_entry_rows(rows: Sequence[Dict[str, Any]]) -> List[DailyEntry]:
    out: List[DailyEntry] = []
    for row in rows:
        try:
            out.append(entry_from_dict(row))
        except ValueError as exc:
            logger.warning("skipping daily entry row id=%s: %s", row.get("id"), exc)
    return out


def map_completion_rows(rows: Sequence[Dict[str, Any]]) -> List[ActivityCompletion]:
    out: List[ActivityCompletion] = []
    for row in rows:
        try:
            out.append(ActivityCompletion.from_dict(row))
        except ValueError as exc:
            logger.warning("skipping activity log row id=%s: %s", row.get("id"), exc)
    return out


class SupabaseEntryStore:
    """Reads daily_entries / activity_logs with the service role."""

    def __init__(
        self,
        entries_table: str = settings.DAILY_ENTRIES_TABLE,
        logs_table: str = settings.ACTIVITY_LOGS_TABLE,
        timeout: Optional[float] = None,
    ) -> None:
        self.entries_table = entries_table
        self.logs_table = logs_table
        self.timeout = timeout

    async def _select(self, table: str, params: List[Tuple[str, str]]) -> List[Dict[str, Any]]:
        try:
            resp = await sb_get(table, params=params, timeout=self.timeout)
        except (httpx.HTTPError, SupabaseConfigError) as exc:
            log_alert(logger, "SUPABASE_READ_FAILED", table=table, error=type(exc).__name__)
            raise EntryStoreError(f"Cannot read {table}: {exc}") from exc

        if resp.status_code >= 300:
            log_alert(logger, "SUPABASE_READ_FAILED", table=table, status=resp.status_code)
            raise EntryStoreError(f"Supabase {table} read failed: HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as exc:
            raise EntryStoreError(f"Invalid JSON from Supabase {table}: {exc}") from exc
        return data if isinstance(data, list) else []

    async def fetch_entries(self, user_id: str, start: date, end: date) -> List[DailyEntry]:
        """Entries in [start, end], oldest first."""
        rows = await self._select(self.entries_table, [
            ("select", "*"),
            ("user_id", f"eq.{user_id}"),
            ("date", f"gte.{start.isoformat()}"),
            ("date", f"lte.{end.isoformat()}"),
            ("order", "date.asc"),
        ])
        return map_entry_rows(rows)

    async def fetch_recent_entries(self, user_id: str, before: date, limit: int) -> List[DailyEntry]:
        """Up to limit entries strictly before the given day, most recent first."""
        if limit <= 0:
            return []
        rows = await self._select(self.entries_table, [
            ("select", "*"),
            ("user_id", f"eq.{user_id}"),
            ("date", f"lt.{before.isoformat()}"),
            ("order", "date.desc"),
            ("limit", str(limit)),
        ])
        return map_entry_rows(rows)

    async def fetch_completions(self, user_id: str, start: date, end: date) -> List[ActivityCompletion]:
        rows = await self._select(self.logs_table, [
            ("select", "id,activity_id,completion_date,rating"),
            ("user_id", f"eq.{user_id}"),
            ("completion_date", f"gte.{start.isoformat()}"),
            ("completion_date", f"lte.{end.isoformat()}"),
            ("order", "completion_date.asc"),
        ])
        return map_completion_rows(rows)
