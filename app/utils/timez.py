# api_relawan/app/utils/timez.py

from __future__ import annotations

from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Timestamp server untuk kolom timestamptz (ISO-8601, UTC)."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()
