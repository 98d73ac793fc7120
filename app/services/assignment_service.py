# api_relawan/app/services/assignment_service.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..db import fetch_all
from ..db.models import MEMBERS, AuditAction
from ..utils.errors import ValidationError
from .audit_service import log_member_audit_batch
from .user_admin import list_campaigners

logger = logging.getLogger(__name__)


def _member_ids(member_ids, message: str = "member_ids wajib diisi") -> List[str]:
    if (
        not isinstance(member_ids, list)
        or not member_ids
        or not all(isinstance(m, str) and m for m in member_ids)
    ):
        raise ValidationError(message)
    return member_ids


def list_assignments(client) -> Dict[str, Any]:
    members = fetch_all(
        client, MEMBERS, "id, nama, angkatan, no_hp, assigned_to", lambda q: q.order("nama")
    )
    return {"members": members, "campaigners": list_campaigners(client)}


def _current_assignees(client, member_ids: List[str]) -> Dict[str, Optional[str]]:
    rows = fetch_all(client, MEMBERS, "id, assigned_to", lambda q: q.in_("id", member_ids))
    return {r["id"]: r.get("assigned_to") for r in rows}


def assign_members(
    client,
    campaigner_id: str,
    member_ids,
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
) -> int:
    """Tugaskan member ke satu campaigner. Return jumlah member yang ter-update."""
    message = "campaigner_id dan member_ids wajib diisi"
    if not campaigner_id:
        raise ValidationError(message)
    member_ids = _member_ids(member_ids, message)

    before = _current_assignees(client, member_ids)
    res = client.table(MEMBERS).update({"assigned_to": campaigner_id}).in_("id", member_ids).execute()
    updated = res.data or []

    log_member_audit_batch(client, [
        {
            "member_id": row["id"],
            "field": "assigned_to",
            "old_value": before.get(row["id"]),
            "new_value": campaigner_id,
            "action": AuditAction.ASSIGN,
            "user_id": user_id,
            "user_email": user_email,
        }
        for row in updated
        if before.get(row["id"]) != campaigner_id
    ])
    logger.info("[assignments] %d member ditugaskan ke %s", len(updated), campaigner_id)
    return len(updated)


def unassign_members(
    client,
    member_ids,
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
) -> int:
    member_ids = _member_ids(member_ids)
    before = _current_assignees(client, member_ids)
    res = client.table(MEMBERS).update({"assigned_to": None}).in_("id", member_ids).execute()
    updated = res.data or []

    log_member_audit_batch(client, [
        {
            "member_id": row["id"],
            "field": "assigned_to",
            "old_value": before.get(row["id"]),
            "new_value": None,
            "action": AuditAction.UNASSIGN,
            "user_id": user_id,
            "user_email": user_email,
        }
        for row in updated
        if before.get(row["id"])
    ])
    logger.info("[assignments] penugasan %d member dilepas", len(updated))
    return len(updated)
