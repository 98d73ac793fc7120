# api_relawan/app/services/checkin_service.py

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError

from ..db.models import EVENT_ATTENDANCE, EVENTS, MEMBERS, PG_UNIQUE_VIOLATION, EventStatus
from ..utils.errors import Conflict, NotFound, ValidationError
from ..utils.timez import utc_now_iso

logger = logging.getLogger(__name__)

# Pesan penolakan per status terminal
_CLOSED_MESSAGES = {
    EventStatus.DIBATALKAN.value: "Kegiatan ini telah dibatalkan",
    EventStatus.SELESAI.value: "Kegiatan ini sudah selesai",
}

DUPLICATE_BY_CODE = "Anggota sudah melakukan check-in untuk kegiatan ini"
DUPLICATE_BY_EVENT = "Anggota sudah check-in di kegiatan ini"


def ensure_event_open(event: Dict[str, Any]) -> None:
    """Tolak (400) kegiatan berstatus Selesai / Dibatalkan."""
    message = _CLOSED_MESSAGES.get(event.get("status"))
    if message:
        raise ValidationError(message)


def find_event_by_code(client, code: str, columns: str = "id, nama, status") -> Dict[str, Any]:
    res = (
        client.table(EVENTS)
        .select(columns)
        .eq("checkin_code", (code or "").strip().upper())
        .maybe_single()
        .execute()
    )
    event = res.data if res is not None else None
    if not event:
        raise NotFound("Kode check-in tidak ditemukan")
    return event


def get_event(client, event_id: str, columns: str = "id, nama, status") -> Dict[str, Any]:
    res = client.table(EVENTS).select(columns).eq("id", event_id).maybe_single().execute()
    event = res.data if res is not None else None
    if not event:
        raise NotFound("Kegiatan tidak ditemukan")
    return event


def get_member(client, member_id: str) -> Dict[str, Any]:
    res = client.table(MEMBERS).select("id, nama").eq("id", member_id).maybe_single().execute()
    member = res.data if res is not None else None
    if not member:
        raise NotFound("Anggota tidak ditemukan")
    return member


def ensure_not_checked_in(client, event_id: str, member_id: str, message: str) -> None:
    res = (
        client.table(EVENT_ATTENDANCE)
        .select("id")
        .eq("event_id", event_id)
        .eq("member_id", member_id)
        .limit(1)
        .execute()
    )
    if res.data:
        raise Conflict(message)


def insert_attendance(
    client,
    event_id: str,
    member_id: str,
    user_id: Optional[str] = None,
    catatan: Optional[str] = None,
    duplicate_message: str = DUPLICATE_BY_EVENT,
) -> Dict[str, Any]:
    """Insert absensi. Pelanggaran unique (event_id, member_id) -> 409."""
    try:
        res = (
            client.table(EVENT_ATTENDANCE)
            .insert({
                "event_id": event_id,
                "member_id": member_id,
                "checked_in_at": utc_now_iso(),
                "checked_in_by": user_id,
                "catatan": catatan or None,
            })
            .execute()
        )
    except APIError as e:
        if getattr(e, "code", None) == PG_UNIQUE_VIOLATION:
            raise Conflict(duplicate_message)
        raise
    rows = res.data or []
    return rows[0] if rows else {}


def check_in_by_code(
    client,
    checkin_code: str,
    member_id: str,
    user_id: Optional[str] = None,
    catatan: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Check-in lewat kode kegiatan (hasil scan QR). Boleh dipanggil anonim;
    user_id diisi bila ada user login.
    """
    if not checkin_code or not member_id:
        raise ValidationError("checkin_code dan member_id wajib diisi")

    event = find_event_by_code(client, checkin_code)
    ensure_event_open(event)
    member = get_member(client, member_id)
    ensure_not_checked_in(client, event["id"], member_id, DUPLICATE_BY_CODE)

    attendance = insert_attendance(
        client, event["id"], member_id,
        user_id=user_id, catatan=catatan, duplicate_message=DUPLICATE_BY_CODE,
    )
    logger.info("Check-in event=%s member=%s by=%s", event["id"], member_id, user_id)
    return {
        "message": f"{member.get('nama')} berhasil check-in",
        "attendance": {**attendance, "member": member, "event_nama": event.get("nama")},
    }


def check_in_to_event(
    client,
    event_id: str,
    member_id: str,
    user_id: Optional[str] = None,
    catatan: Optional[str] = None,
) -> Dict[str, Any]:
    """Check-in manual dari halaman detail kegiatan."""
    if not member_id:
        raise ValidationError("member_id wajib diisi")

    event = get_event(client, event_id)
    ensure_event_open(event)
    get_member(client, member_id)
    ensure_not_checked_in(client, event_id, member_id, DUPLICATE_BY_EVENT)
    return insert_attendance(client, event_id, member_id, user_id=user_id, catatan=catatan)
