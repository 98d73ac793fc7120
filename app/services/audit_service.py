# api_relawan/app/services/audit_service.py

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from postgrest.exceptions import APIError

from ..db.models import MEMBER_AUDIT_LOG, PG_UNDEFINED_TABLE, AuditAction

logger = logging.getLogger(__name__)


def _stringify(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _row(
    member_id: str,
    field: str,
    old_value: Any,
    new_value: Any,
    action: AuditAction | str,
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "member_id": member_id,
        "user_id": user_id,
        "user_email": user_email,
        "field": field,
        "old_value": _stringify(old_value),
        "new_value": _stringify(new_value),
        "action": action.value if isinstance(action, AuditAction) else action,
    }


def log_member_audit(client, **entry) -> None:
    """
    Catat satu perubahan field member. Kegagalan audit TIDAK boleh
    menggagalkan operasi utama: error hanya di-log.
    """
    try:
        client.table(MEMBER_AUDIT_LOG).insert(_row(**entry)).execute()
    except Exception:
        logger.error("Gagal mencatat audit member: %s", entry, exc_info=True)


def log_member_audit_batch(client, entries: Iterable[Dict[str, Any]]) -> None:
    rows = [_row(**e) for e in entries]
    if not rows:
        return
    try:
        client.table(MEMBER_AUDIT_LOG).insert(rows).execute()
    except Exception:
        logger.error("Gagal mencatat batch audit (%d entri)", len(rows), exc_info=True)


def list_member_audit(client, member_id: str, limit: int = 50) -> List[Dict[str, Any]]:
    """Riwayat perubahan terbaru dulu. Tabel audit belum ada -> list kosong."""
    try:
        res = (
            client.table(MEMBER_AUDIT_LOG)
            .select("*")
            .eq("member_id", member_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
    except APIError as e:
        if getattr(e, "code", None) == PG_UNDEFINED_TABLE:
            return []
        raise
    return res.data or []
