# api_relawan/app/services/member_service.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..db import fetch_all
from ..db.models import (
    EVENT_ATTENDANCE,
    EVENT_REGISTRATIONS,
    MEMBER_MERGEABLE_FIELDS,
    MEMBER_PATCHABLE_FIELDS,
    MEMBER_STATUS_FIELDS,
    MEMBERS,
    WA_GROUP_MEMBERS,
    AuditAction,
    StatusValue,
)
from ..utils.errors import NotFound, ValidationError
from .audit_service import log_member_audit, log_member_audit_batch

logger = logging.getLogger(__name__)

_STATUS_VALUES = {s.value for s in StatusValue}


def list_members(
    client,
    search: Optional[str] = None,
    angkatan: Optional[int] = None,
    page: Optional[int] = None,
    limit: int = 50,
) -> Dict[str, Any]:
    def _filters(q):
        if search:
            q = q.ilike("nama", f"%{search}%")
        if angkatan is not None:
            q = q.eq("angkatan", angkatan)
        return q.order("no")

    if page is None:
        items = fetch_all(client, MEMBERS, "*", _filters)
        return {"items": items, "total": len(items)}

    offset = (page - 1) * limit
    query = _filters(client.table(MEMBERS).select("*", count="exact"))
    res = query.range(offset, offset + limit - 1).execute()
    total = res.count or 0
    return {
        "items": res.data or [],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": -(-total // limit) if limit else 0,
    }


def get_member(client, member_id: str) -> Dict[str, Any]:
    res = client.table(MEMBERS).select("*").eq("id", member_id).maybe_single().execute()
    member = res.data if res is not None else None
    if not member:
        raise NotFound("Anggota tidak ditemukan")
    return member


def next_member_no(client) -> int:
    res = client.table(MEMBERS).select("no").order("no", desc=True).limit(1).execute()
    rows = res.data or []
    return (rows[0].get("no") or 0) + 1 if rows else 1


def create_member(client, payload: Dict[str, Any], user_id=None, user_email=None) -> Dict[str, Any]:
    nama = (payload.get("nama") or "").strip()
    angkatan = payload.get("angkatan")
    if not nama or angkatan in (None, ""):
        raise ValidationError("Nama dan angkatan wajib diisi")
    try:
        angkatan = int(angkatan)
    except (TypeError, ValueError):
        raise ValidationError("Angkatan harus berupa angka")

    row = {
        "no": next_member_no(client),
        "nama": nama,
        "angkatan": angkatan,
        "no_hp": payload.get("no_hp") or "",
        "pic": payload.get("pic") or None,
        "email": payload.get("email") or None,
        "domisili": payload.get("domisili") or None,
        "referred_by": payload.get("referred_by") or None,
        "referral_name": payload.get("referral_name") or None,
    }
    for field in MEMBER_STATUS_FIELDS:
        if field in payload:
            row[field] = _validate_status(field, payload[field])

    res = client.table(MEMBERS).insert(row).execute()
    member = (res.data or [row])[0]
    if member.get("id"):
        log_member_audit(
            client,
            member_id=member["id"],
            field="*",
            old_value=None,
            new_value=nama,
            action=AuditAction.CREATE,
            user_id=user_id,
            user_email=user_email,
        )
    return member


def _validate_status(field: str, value):
    if value is not None and (not isinstance(value, str) or value not in _STATUS_VALUES):
        raise ValidationError(f"Nilai tidak valid untuk {field}: {value}")
    return value


def update_member_field(
    client,
    member_id: str,
    field: str,
    value: Any,
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
) -> Dict[str, Any]:
    """Ubah satu field yang diizinkan (whitelist) dan catat audit-nya."""
    if not member_id:
        raise ValidationError("id wajib diisi")
    if field not in MEMBER_PATCHABLE_FIELDS:
        raise ValidationError("Invalid field")
    if field in MEMBER_STATUS_FIELDS:
        _validate_status(field, value)

    before = get_member(client, member_id)
    res = client.table(MEMBERS).update({field: value}).eq("id", member_id).execute()
    if not res.data:
        raise NotFound("Anggota tidak ditemukan")

    log_member_audit(
        client,
        member_id=member_id,
        field=field,
        old_value=before.get(field),
        new_value=value,
        action=AuditAction.UPDATE,
        user_id=user_id,
        user_email=user_email,
    )
    return res.data[0]


def delete_member(client, member_id: str, user_id=None, user_email=None) -> None:
    """
    Hapus member beserta absensi & registrasinya, dan kosongkan referred_by
    member lain yang menunjuk ke member ini.
    """
    member = get_member(client, member_id)

    client.table(EVENT_ATTENDANCE).delete().eq("member_id", member_id).execute()
    client.table(EVENT_REGISTRATIONS).delete().eq("member_id", member_id).execute()
    client.table(MEMBERS).update({"referred_by": None}).eq("referred_by", member_id).execute()
    client.table(MEMBERS).delete().eq("id", member_id).execute()

    log_member_audit(
        client,
        member_id=member_id,
        field="*",
        old_value=member.get("nama"),
        new_value=None,
        action=AuditAction.DELETE,
        user_id=user_id,
        user_email=user_email,
    )
    logger.info("Member %s (%s) dihapus", member_id, member.get("nama"))


def search_members(client, q: str, limit: int = 10) -> List[Dict[str, Any]]:
    """Cari member berdasarkan nama atau no_hp (untuk dialog tautkan WA)."""
    q = (q or "").strip()
    if not q:
        return []
    # karakter pemisah filter PostgREST
    q = q.replace(",", " ").replace("(", " ").replace(")", " ")
    res = (
        client.table(MEMBERS)
        .select("id, nama, no_hp, angkatan")
        .or_(f"nama.ilike.%{q}%,no_hp.ilike.%{q}%")
        .order("nama")
        .limit(limit)
        .execute()
    )
    return res.data or []


# ---------- merge duplikat ----------

def _repoint_event_rows(client, table: str, winner_id: str, loser_id: str) -> int:
    """
    Pindahkan baris (event_id, member_id) milik loser ke winner. Kegiatan yang
    sudah dimiliki winner dibuang dari sisi loser agar unique tidak bentrok.
    """
    winner_events = [
        r["event_id"]
        for r in fetch_all(client, table, "event_id", lambda q: q.eq("member_id", winner_id))
    ]
    if winner_events:
        client.table(table).delete().eq("member_id", loser_id).in_("event_id", winner_events).execute()
    res = client.table(table).update({"member_id": winner_id}).eq("member_id", loser_id).execute()
    return len(res.data or [])


def merge_members(
    client,
    winner_id: str,
    loser_id: str,
    fields: Dict[str, str],
    user_id: Optional[str] = None,
    user_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Gabungkan dua member duplikat. `fields` memetakan nama field ke
    "winner" / "loser"; field yang tidak disebut memakai nilai winner.
    Absensi, registrasi, peserta grup WA, dan referral milik loser
    dipindahkan ke winner, lalu loser dihapus.
    """
    if not winner_id or not loser_id or not isinstance(fields, dict):
        raise ValidationError("winner_id, loser_id, dan fields diperlukan")
    if winner_id == loser_id:
        raise ValidationError("Tidak bisa merge member yang sama")

    try:
        winner = get_member(client, winner_id)
    except NotFound:
        raise NotFound("Member pemenang tidak ditemukan")
    try:
        loser = get_member(client, loser_id)
    except NotFound:
        raise NotFound("Member yang dihapus tidak ditemukan")

    updates = {
        f: loser.get(f)
        for f in MEMBER_MERGEABLE_FIELDS
        if fields.get(f) == "loser" and loser.get(f) != winner.get(f)
    }
    if updates:
        client.table(MEMBERS).update(updates).eq("id", winner_id).execute()

    moved_attendance = _repoint_event_rows(client, EVENT_ATTENDANCE, winner_id, loser_id)
    moved_registrations = _repoint_event_rows(client, EVENT_REGISTRATIONS, winner_id, loser_id)
    client.table(WA_GROUP_MEMBERS).update({"member_id": winner_id}).eq("member_id", loser_id).execute()
    client.table(MEMBERS).update({"referred_by": winner_id}).eq("referred_by", loser_id).execute()
    # winner tidak boleh mereferensikan dirinya sendiri
    client.table(MEMBERS).update({"referred_by": None}).eq("id", winner_id).eq("referred_by", winner_id).execute()
    client.table(MEMBERS).delete().eq("id", loser_id).execute()

    audit = [
        {
            "member_id": winner_id,
            "field": f,
            "old_value": winner.get(f),
            "new_value": value,
            "action": AuditAction.UPDATE,
            "user_id": user_id,
            "user_email": user_email,
        }
        for f, value in updates.items()
    ]
    audit.append({
        "member_id": loser_id,
        "field": "*",
        "old_value": loser.get("nama"),
        "new_value": winner_id,
        "action": AuditAction.DELETE,
        "user_id": user_id,
        "user_email": user_email,
    })
    log_member_audit_batch(client, audit)

    logger.info(
        "[members.merge] loser=%s -> winner=%s fields=%s attendance=%d registrations=%d",
        loser_id, winner_id, sorted(updates), moved_attendance, moved_registrations,
    )
    return get_member(client, winner_id)
