#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
weekly_digest_runner.py

Cron entry point for the Monday digest.

For every user id it calls GET /users/{user_id}/reports/weekly on the wellness
API with send_digest=true, so the API builds the report and posts the Slack
digest itself. Nothing is computed here.

- Week: the 7 days ending yesterday (UTC) unless --week-start is given.
- 5xx answers and transport errors are retried with exponential backoff;
  4xx answers fail that user immediately.
- One failing user does not stop the others. Exit code 1 if any failed,
  2 on a configuration error.

Usage
  python scripts/weekly_digest_runner.py u-123 u-456
  WELLNESS_DIGEST_USER_IDS=u-123,u-456 python scripts/weekly_digest_runner.py --week-start 2025-10-06

Env
- WELLNESS_BASE_URL            e.g. https://wellness-api.onrender.com
- WELLNESS_DIGEST_USER_IDS     comma-separated, used when no ids are passed
- CRON_HTTP_TIMEOUT_SEC / CRON_SLEEP_SEC / CRON_RETRIES
- CRON_INCLUDE_INSIGHTS / CRON_DRY_RUN
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import httpx


class DigestError(RuntimeError):
    pass


@dataclass
class RunConfig:
    base_url: str
    week_start: date
    include_insights: bool
    dry_run: bool
    timeout_sec: float
    sleep_sec: float
    retries: int

    def query(self) -> Dict[str, str]:
        return {
            "week_start": self.week_start.isoformat(),
            "include_insights": "true" if self.include_insights else "false",
            "send_digest": "false" if self.dry_run else "true",
        }


def _flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


def default_week_start(today: Optional[date] = None) -> date:
    today = today or datetime.now(timezone.utc).date()
    return today - timedelta(days=7)


def parse_user_ids(values: Iterable[str]) -> List[str]:
    """Flatten 'a,b' style values, drop blanks and duplicates, keep order."""
    out: List[str] = []
    for value in values:
        for uid in value.split(","):
            uid = uid.strip()
            if uid and uid not in out:
                out.append(uid)
    return out


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:300]
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return resp.text[:300]


def fetch_report(client: httpx.Client, url: str, params: Dict[str, str], retries: int) -> Dict[str, Any]:
    attempt = 0
    while True:
        try:
            resp = client.get(url, params=params)
        except httpx.HTTPError as exc:
            problem = f"{type(exc).__name__}: {exc}"
        else:
            if resp.is_success:
                try:
                    body = resp.json()
                except ValueError as exc:
                    raise DigestError(f"invalid JSON: {exc}") from exc
                if not isinstance(body, dict):
                    raise DigestError("response is not a JSON object")
                return body
            problem = f"HTTP {resp.status_code} {_error_detail(resp)}"
            if resp.status_code < 500:
                raise DigestError(problem)
        if attempt >= retries:
            raise DigestError(f"{problem} (after {attempt + 1} attempts)")
        time.sleep(min(2 ** attempt, 10))
        attempt += 1


def run_digests(cfg: RunConfig, user_ids: List[str], client: Optional[httpx.Client] = None) -> int:
    """Request every user's weekly report. Returns the number of failed users."""
    base = cfg.base_url.rstrip("/")
    params = cfg.query()
    total = len(user_ids)
    print(f"=== weekly digest week_start={cfg.week_start} users={total} dry_run={cfg.dry_run} ===")

    failed = 0
    owned = client is None
    http = client or httpx.Client(timeout=cfg.timeout_sec)
    try:
        for n, uid in enumerate(user_ids, start=1):
            try:
                body = fetch_report(http, f"{base}/users/{uid}/reports/weekly", params, cfg.retries)
            except DigestError as exc:
                failed += 1
                print(f"[{n}/{total}] user={uid} FAILED {exc}", file=sys.stderr)
            else:
                m = (body.get("report") or {}).get("progress_metrics") or {}
                print(
                    f"[{n}/{total}] user={uid} check_in_rate={m.get('check_in_rate')} "
                    f"activity_completion_rate={m.get('activity_completion_rate')} "
                    f"recovery_time={m.get('recovery_time')}"
                )
            if cfg.sleep_sec > 0 and n < total:
                time.sleep(cfg.sleep_sec)
    finally:
        if owned:
            http.close()

    print(f"=== done users={total} failed={failed} ===")
    return failed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send the weekly wellness digest for each user.")
    parser.add_argument("user_ids", nargs="*", help="user ids (default: WELLNESS_DIGEST_USER_IDS)")
    parser.add_argument("--base-url", default=os.getenv("WELLNESS_BASE_URL") or os.getenv("API_BASE_URL") or "")
    parser.add_argument("--week-start", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
    parser.add_argument("--timeout-sec", type=float, default=float(os.getenv("CRON_HTTP_TIMEOUT_SEC") or "60"))
    parser.add_argument("--sleep-sec", type=float, default=float(os.getenv("CRON_SLEEP_SEC") or "0.2"))
    parser.add_argument("--retries", type=int, default=int(os.getenv("CRON_RETRIES") or "2"))
    parser.add_argument("--include-insights", action="store_true", default=_flag("CRON_INCLUDE_INSIGHTS"))
    parser.add_argument("--dry-run", action="store_true", default=_flag("CRON_DRY_RUN"))
    return parser


def main(argv: List[str]) -> int:
    args = _build_parser().parse_args(argv)

    base_url = args.base_url.strip().rstrip("/")
    if not base_url:
        print("ERROR: set WELLNESS_BASE_URL or pass --base-url", file=sys.stderr)
        return 2

    user_ids = parse_user_ids(args.user_ids) or parse_user_ids([os.getenv("WELLNESS_DIGEST_USER_IDS") or ""])
    if not user_ids:
        print("ERROR: no user ids (arguments or WELLNESS_DIGEST_USER_IDS)", file=sys.stderr)
        return 2

    cfg = RunConfig(
        base_url=base_url,
        week_start=args.week_start or default_week_start(),
        include_insights=args.include_insights,
        dry_run=args.dry_run,
        timeout_sec=max(5.0, args.timeout_sec),
        sleep_sec=max(0.0, args.sleep_sec),
        retries=max(0, args.retries),
    )
    return 1 if run_digests(cfg, user_ids) else 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
