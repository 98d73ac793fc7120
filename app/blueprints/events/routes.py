# api_relawan/app/blueprints/events/routes.py

from __future__ import annotations

from flask import Blueprint, request

from ...extensions import require_supabase
from ...services import checkin_service, event_service, registration_service
from ...services.roles import Capability
from ...utils.auth_utils import current_user_id, require_capability
from ...utils.responses import ok, error
from ...utils.payload import json_object, text_field

# app.register_blueprint(events_bp, url_prefix="/api/events")
events_bp = Blueprint("events", __name__)


@events_bp.get("/")
def list_events():
    return ok(items=event_service.list_events(require_supabase()))


@events_bp.post("/")
@require_capability(Capability.EDIT, "Tidak memiliki akses untuk membuat kegiatan")
def create_event():
    payload = json_object()
    event = event_service.create_event(require_supabase(), payload, user_id=current_user_id())
    return ok(item=event), 201


@events_bp.get("/<event_id>")
def get_event(event_id: str):
    return ok(item=event_service.get_event_detail(require_supabase(), event_id))


@events_bp.patch("/<event_id>")
@require_capability(Capability.EDIT, "Tidak memiliki akses untuk mengubah kegiatan")
def update_event(event_id: str):
    payload = json_object()
    return ok(item=event_service.update_event(require_supabase(), event_id, payload))


@events_bp.delete("/<event_id>")
@require_capability(Capability.DELETE, "Hanya admin yang dapat menghapus kegiatan")
def delete_event(event_id: str):
    event_service.delete_event(require_supabase(), event_id)
    return ok(success=True)


# ---------- absensi kegiatan ----------

@events_bp.get("/<event_id>/attendance")
def list_attendance(event_id: str):
    return ok(items=event_service.list_attendance(require_supabase(), event_id))


@events_bp.post("/<event_id>/attendance")
@require_capability(Capability.EDIT, "Tidak memiliki akses untuk check-in anggota")
def add_attendance(event_id: str):
    payload = json_object()
    attendance = checkin_service.check_in_to_event(
        require_supabase(),
        event_id,
        text_field(payload, "member_id"),
        user_id=current_user_id(),
        catatan=text_field(payload, "catatan") or None,
    )
    return ok(item=attendance), 201


@events_bp.delete("/<event_id>/attendance")
@require_capability(Capability.EDIT, "Tidak memiliki akses untuk menghapus check-in")
def delete_attendance(event_id: str):
    attendance_id = (request.args.get("attendance_id") or "").strip()
    if not attendance_id:
        return error("attendance_id wajib diisi", 400)
    event_service.delete_attendance(require_supabase(), event_id, attendance_id)
    return ok(success=True)


# ---------- pendaftaran (form publik) ----------

@events_bp.get("/<event_id>/registrations")
def list_registrations(event_id: str):
    """Yang akan hadir di atas, lalu yang terbaru."""
    return ok(items=registration_service.list_registrations(require_supabase(), event_id))
