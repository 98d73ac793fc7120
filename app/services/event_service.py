# api_relawan/app/services/event_service.py

from __future__ import annotations

import logging
import secrets
import string
from typing import Any, Dict, List, Optional

from flask import current_app

from ..db.models import (
    EVENT_ATTENDANCE,
    EVENT_PATCHABLE_FIELDS,
    EVENT_STATUS_TRANSITIONS,
    EVENTS,
    EventJenis,
    EventStatus,
)
from ..utils.errors import ApiError, NotFound, ValidationError
from ..utils.timez import utc_now_iso

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.digits + string.ascii_uppercase  # base-36

_JENIS = {j.value for j in EventJenis}
_STATUS = {s.value for s in EventStatus}


def random_code(length: int = 6) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def _code_taken(client, code: str) -> bool:
    res = client.table(EVENTS).select("id").eq("checkin_code", code).limit(1).execute()
    return bool(res.data)


def generate_checkin_code(client) -> str:
    """Kode check-in acak yang belum dipakai kegiatan lain."""
    length = int(current_app.config.get("CHECKIN_CODE_LENGTH", 6))
    attempts = int(current_app.config.get("CHECKIN_CODE_MAX_ATTEMPTS", 5))
    for _ in range(attempts):
        code = random_code(length)
        if not _code_taken(client, code):
            return code
        logger.warning("Kode check-in %s bentrok, coba lagi", code)
    raise ApiError("Gagal membuat kode check-in unik", 500)


def _with_attendance_count(event: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(event)
    agg = out.pop("event_attendance", None) or []
    out["attendance_count"] = agg[0].get("count", 0) if agg else 0
    return out


def list_events(client) -> List[Dict[str, Any]]:
    res = (
        client.table(EVENTS)
        .select("*, event_attendance(count)")
        .order("tanggal", desc=True)
        .execute()
    )
    return [_with_attendance_count(e) for e in (res.data or [])]


def get_event_detail(client, event_id: str) -> Dict[str, Any]:
    res = (
        client.table(EVENTS)
        .select("*, event_attendance(count)")
        .eq("id", event_id)
        .maybe_single()
        .execute()
    )
    event = res.data if res is not None else None
    if not event:
        raise NotFound("Kegiatan tidak ditemukan")
    return _with_attendance_count(event)


def _validate_jenis(jenis) -> None:
    if jenis not in _JENIS:
        raise ValidationError(f"Jenis kegiatan tidak valid: {jenis}")


def create_event(client, payload: Dict[str, Any], user_id: Optional[str] = None) -> Dict[str, Any]:
    nama = (payload.get("nama") or "").strip()
    jenis = payload.get("jenis")
    tanggal = payload.get("tanggal")
    if not nama or not jenis or not tanggal:
        raise ValidationError("Nama, jenis, dan tanggal wajib diisi")
    _validate_jenis(jenis)

    row = {
        "nama": nama,
        "jenis": jenis,
        "deskripsi": payload.get("deskripsi") or None,
        "lokasi": payload.get("lokasi") or None,
        "tanggal": tanggal,
        "status": EventStatus.TERJADWAL.value,
        "checkin_code": generate_checkin_code(client),
        "created_by": user_id,
    }
    res = client.table(EVENTS).insert(row).execute()
    event = (res.data or [row])[0]
    logger.info("Kegiatan dibuat id=%s code=%s", event.get("id"), event.get("checkin_code"))
    return event


def check_status_transition(current: str, target: str) -> None:
    if current == target:
        return
    if target not in _STATUS:
        raise ValidationError(f"Status tidak valid: {target}")
    if target not in EVENT_STATUS_TRANSITIONS.get(current, set()):
        raise ValidationError(f"Perubahan status dari {current} ke {target} tidak diizinkan")


def update_event(client, event_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    updates = {f: payload[f] for f in EVENT_PATCHABLE_FIELDS if f in payload}
    if not updates:
        raise ValidationError("Tidak ada field yang valid untuk diperbarui")
    if "jenis" in updates:
        _validate_jenis(updates["jenis"])
    if "status" in updates:
        current = get_event_detail(client, event_id)
        check_status_transition(current.get("status"), updates["status"])

    updates["updated_at"] = utc_now_iso()
    res = client.table(EVENTS).update(updates).eq("id", event_id).execute()
    if not res.data:
        raise NotFound("Kegiatan tidak ditemukan")
    return res.data[0]


def delete_event(client, event_id: str) -> None:
    client.table(EVENT_ATTENDANCE).delete().eq("event_id", event_id).execute()
    client.table(EVENTS).delete().eq("id", event_id).execute()
    logger.info("Kegiatan %s dihapus beserta absensinya", event_id)


def list_attendance(client, event_id: str) -> List[Dict[str, Any]]:
    res = (
        client.table(EVENT_ATTENDANCE)
        .select("*, member:members(*)")
        .eq("event_id", event_id)
        .order("checked_in_at", desc=True)
        .execute()
    )
    return res.data or []


def delete_attendance(client, event_id: str, attendance_id: str) -> None:
    client.table(EVENT_ATTENDANCE).delete().eq("id", attendance_id).eq("event_id", event_id).execute()
