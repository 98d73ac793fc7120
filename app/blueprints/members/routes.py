# api_relawan/app/blueprints/members/routes.py

from __future__ import annotations

from flask import Blueprint, request, current_app

from ...extensions import require_supabase
from ...services import member_service
from ...services.audit_service import list_member_audit
from ...services.roles import Capability
from ...utils.auth_utils import current_user_email, current_user_id, require_capability
from ...utils.responses import ok
from ...utils.payload import json_object, text_field

# Prefix dipasang saat register_blueprint() di create_app():
# app.register_blueprint(members_bp, url_prefix="/api/members")
members_bp = Blueprint("members", __name__)


@members_bp.get("/")
def list_members():
    """List + search + pagination: GET /api/members?search=&angkatan=&page=&limit="""
    search = (request.args.get("search") or "").strip() or None
    angkatan = request.args.get("angkatan", type=int)
    page = request.args.get("page", type=int)
    limit = request.args.get("limit", type=int, default=50)
    if page is not None and page < 1:
        page = 1
    limit = 50 if not limit or limit < 1 else min(limit, 1000)

    result = member_service.list_members(
        require_supabase(), search=search, angkatan=angkatan, page=page, limit=limit
    )
    return ok(**result)


@members_bp.post("/")
@require_capability(Capability.EDIT, "Tidak memiliki akses untuk menambah anggota")
def create_member():
    payload = json_object()
    member = member_service.create_member(
        require_supabase(), payload, user_id=current_user_id(), user_email=current_user_email()
    )
    return ok(item=member), 201


@members_bp.post("/merge")
@require_capability(Capability.EDIT)
def merge_members():
    """Body {winner_id, loser_id, fields: {field: "winner" | "loser"}}."""
    payload = json_object()
    member = member_service.merge_members(
        require_supabase(),
        text_field(payload, "winner_id"),
        text_field(payload, "loser_id"),
        payload.get("fields"),
        user_id=current_user_id(),
        user_email=current_user_email(),
    )
    return ok(success=True, member=member)


@members_bp.patch("/")
@require_capability(Capability.EDIT, "Tidak memiliki akses untuk mengubah anggota")
def patch_member_legacy():
    """PATCH /api/members dengan body {id, field, value}."""
    payload = json_object()
    return _patch(payload.get("id"), payload)


@members_bp.patch("/<member_id>")
@require_capability(Capability.EDIT, "Tidak memiliki akses untuk mengubah anggota")
def patch_member(member_id: str):
    payload = json_object()
    return _patch(member_id, payload)


def _patch(member_id, payload):
    member = member_service.update_member_field(
        require_supabase(),
        member_id,
        payload.get("field"),
        payload.get("value"),
        user_id=current_user_id(),
        user_email=current_user_email(),
    )
    return ok(item=member)


@members_bp.get("/<member_id>")
def get_member(member_id: str):
    return ok(item=member_service.get_member(require_supabase(), member_id))


@members_bp.delete("/<member_id>")
@require_capability(Capability.DELETE, "Hanya admin yang dapat menghapus anggota")
def delete_member(member_id: str):
    member_service.delete_member(
        require_supabase(), member_id, user_id=current_user_id(), user_email=current_user_email()
    )
    return ok(success=True)


@members_bp.get("/<member_id>/audit")
def member_audit(member_id: str):
    limit = int(current_app.config.get("AUDIT_LOG_LIMIT", 50))
    return ok(items=list_member_audit(require_supabase(), member_id, limit=limit))
