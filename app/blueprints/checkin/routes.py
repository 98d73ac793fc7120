# api_relawan/app/blueprints/checkin/routes.py

from __future__ import annotations

from flask import Blueprint, request

from ...extensions import require_supabase
from ...services import checkin_service, registration_service
from ...utils.auth_utils import current_user_id
from ...utils.responses import ok, error
from ...utils.payload import json_object, text_field

# Endpoint publik (scan QR), tanpa cek role.
# app.register_blueprint(checkin_bp, url_prefix="/api")
checkin_bp = Blueprint("checkin", __name__)


@checkin_bp.post("/checkin")
def checkin():
    """
    Check-in anggota ke kegiatan via kode.
    Body (JSON): { checkin_code, member_id, catatan? }
    """
    payload = json_object()
    result = checkin_service.check_in_by_code(
        require_supabase(),
        text_field(payload, "checkin_code"),
        text_field(payload, "member_id"),
        user_id=current_user_id(),
        catatan=text_field(payload, "catatan") or None,
    )
    return ok(success=True, **result), 201


@checkin_bp.get("/public/event")
def public_event():
    """Info kegiatan untuk halaman scan: GET /api/public/event?code="""
    code = (request.args.get("code") or "").strip()
    if not code:
        return error("Parameter 'code' diperlukan", 400)

    event = checkin_service.find_event_by_code(
        require_supabase(), code,
        columns="id, nama, jenis, deskripsi, lokasi, tanggal, status, checkin_code",
    )
    checkin_service.ensure_event_open(event)
    return ok(event=event)


@checkin_bp.post("/public/register")
def public_register():
    """
    Form pendaftaran publik.
    Body (JSON): { type: "dukungan"|"event", nama, angkatan, no_hp?, email?,
                   domisili?, harapan?, referral_name?, event_code?, will_attend? }
    """
    payload = json_object()
    data = {
        key: text_field(payload, key)
        for key in (
            "type", "nama", "angkatan", "no_hp", "email",
            "domisili", "harapan", "referral_name", "event_code",
        )
    }
    data["will_attend"] = payload.get("will_attend") is True
    result = registration_service.register_public(require_supabase(), data)
    return ok(success=True, **result), 201
