# -*- coding: utf-8 -*-
"""supabase_client.py

Read-only PostgREST access for the record store.

- One pooled ``httpx.AsyncClient`` per process, created on first use and closed
  by the app lifespan (``aclose_async_client``).
- Every request carries the service-role key; the wellness API never writes.
- ``sb_get("daily_entries", params=[...])`` resolves to
  ``{SUPABASE_URL}/rest/v1/daily_entries``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

import httpx

from . import settings

REST_PREFIX = "/rest/v1/"


class SupabaseConfigError(RuntimeError):
    """SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is not set."""


def ensure_supabase_config() -> None:
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise SupabaseConfigError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")


def table_url(table: str) -> str:
    name = str(table or "").strip().strip("/")
    if not name:
        raise ValueError("table name is empty")
    return f"{settings.SUPABASE_URL}{REST_PREFIX}{name}"


_client: Optional[httpx.AsyncClient] = None
_client_lock = asyncio.Lock()


async def get_async_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        async with _client_lock:
            if _client is None:
                timeout = settings.SUPABASE_HTTP_TIMEOUT_SECONDS
                _client = httpx.AsyncClient(
                    timeout=httpx.Timeout(timeout if timeout > 0 else 8.0),
                    limits=httpx.Limits(
                        max_connections=settings.SUPABASE_HTTP_MAX_CONNECTIONS,
                        max_keepalive_connections=settings.SUPABASE_HTTP_MAX_KEEPALIVE,
                    ),
                )
    return _client


async def aclose_async_client() -> None:
    global _client
    client, _client = _client, None
    if client is not None:
        await client.aclose()


def _read_headers() -> Dict[str, str]:
    key = settings.SUPABASE_SERVICE_ROLE_KEY
    return {"apikey": key, "Authorization": f"Bearer {key}", "Accept": "application/json"}


async def sb_get(table: str, *, params: Any = None, timeout: Optional[float] = None) -> httpx.Response:
    """GET one PostgREST table. ``params`` may repeat keys (list of pairs)."""
    ensure_supabase_config()
    client = await get_async_client()
    if timeout is None:
        # passing timeout=None would switch the client default off
        return await client.get(table_url(table), headers=_read_headers(), params=params)
    return await client.get(table_url(table), headers=_read_headers(), params=params, timeout=timeout)
