# api_relawan/app/services/registration_service.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..db.models import EVENT_REGISTRATIONS, EVENTS, MEMBERS, AuditAction, RegistrationType
from ..utils.errors import NotFound, ValidationError
from ..utils.timez import utc_now_iso
from .audit_service import log_member_audit
from .checkin_service import ensure_event_open
from .member_service import next_member_no

logger = logging.getLogger(__name__)

_THANKS = {
    RegistrationType.DUKUNGAN: "Terima kasih atas dukungan Anda!",
    "attend": "Pendaftaran berhasil! Sampai jumpa di acara.",
    "no_attend": "Terima kasih telah mengisi formulir.",
}


def list_registrations(client, event_id: str) -> List[Dict[str, Any]]:
    res = (
        client.table(EVENT_REGISTRATIONS)
        .select("*, member:members(*)")
        .eq("event_id", event_id)
        .order("will_attend", desc=True)
        .order("registered_at", desc=True)
        .execute()
    )
    return res.data or []


def _registration_type(value) -> RegistrationType:
    try:
        return RegistrationType(value or RegistrationType.DUKUNGAN.value)
    except ValueError:
        raise ValidationError("Tipe registrasi tidak valid")


def _open_event_by_code(client, code: str) -> Dict[str, Any]:
    if not code:
        raise ValidationError("Kode kegiatan diperlukan")
    res = (
        client.table(EVENTS)
        .select("id, nama, status")
        .eq("checkin_code", code.strip().upper())
        .maybe_single()
        .execute()
    )
    event = res.data if res is not None else None
    if not event:
        raise NotFound("Kegiatan tidak ditemukan")
    try:
        ensure_event_open(event)
    except ValidationError:
        raise ValidationError("Kegiatan ini sudah tidak menerima pendaftaran")
    return event


def _find_member(client, nama: str, angkatan: int) -> Optional[Dict[str, Any]]:
    res = (
        client.table(MEMBERS)
        .select("id, nama")
        .ilike("nama", nama)
        .eq("angkatan", angkatan)
        .order("no")
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None


def _find_referrer(client, referral_name: str) -> Optional[str]:
    res = client.table(MEMBERS).select("id").ilike("nama", referral_name).order("no").limit(1).execute()
    rows = res.data or []
    return rows[0]["id"] if rows else None


def register_public(client, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Form pendaftaran publik (tanpa login). Dua tipe:
      - dukungan: cukup mencatat / memperbarui data member
      - event: juga mencatat rencana hadir di event_registrations

    Member dicari berdasarkan nama (case-insensitive) + angkatan; jika tidak
    ada, member baru dibuat. Registrasi tidak membuat absensi, absensi tetap
    lewat check-in.
    """
    nama = (data.get("nama") or "").strip()
    angkatan = data.get("angkatan")
    if not nama or angkatan in (None, ""):
        raise ValidationError("Nama dan angkatan wajib diisi")
    reg_type = _registration_type(data.get("type"))
    try:
        angkatan = int(angkatan)
    except (TypeError, ValueError):
        raise ValidationError("Angkatan harus berupa angka")

    event = None
    if reg_type is RegistrationType.EVENT:
        event = _open_event_by_code(client, data.get("event_code") or "")

    contact = {k: data[k] for k in ("no_hp", "email", "domisili", "harapan") if data.get(k)}
    referral_name = (data.get("referral_name") or "").strip()
    if referral_name:
        contact["referral_name"] = referral_name
        referrer_id = _find_referrer(client, referral_name)
        if referrer_id:
            contact["referred_by"] = referrer_id

    member = _find_member(client, nama, angkatan)
    if member:
        member_id = member["id"]
        if contact:
            client.table(MEMBERS).update(contact).eq("id", member_id).execute()
        member_name = member.get("nama") or nama
    else:
        row = {"no": next_member_no(client), "nama": nama, "angkatan": angkatan, "no_hp": ""}
        row.update(contact)
        res = client.table(MEMBERS).insert(row).execute()
        created = (res.data or [row])[0]
        member_id = created.get("id")
        member_name = nama
        if member_id:
            log_member_audit(
                client,
                member_id=member_id,
                field="*",
                old_value=None,
                new_value=nama,
                action=AuditAction.CREATE,
                user_email="public-form",
            )
        logger.info("[register] member baru dari form publik: %s (%s)", nama, angkatan)

    will_attend = bool(data.get("will_attend"))
    if event is not None:
        client.table(EVENT_REGISTRATIONS).upsert(
            {
                "event_id": event["id"],
                "member_id": member_id,
                "will_attend": will_attend,
                "registered_at": utc_now_iso(),
            },
            on_conflict="event_id,member_id",
        ).execute()
        message = _THANKS["attend"] if will_attend else _THANKS["no_attend"]
    else:
        message = _THANKS[RegistrationType.DUKUNGAN]

    return {
        "message": message,
        "member_id": member_id,
        "member_name": member_name,
        "event_name": event.get("nama") if event else None,
    }
