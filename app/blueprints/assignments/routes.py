# api_relawan/app/blueprints/assignments/routes.py

from __future__ import annotations

from flask import Blueprint

from ...extensions import require_supabase
from ...services import assignment_service
from ...services.roles import Capability
from ...utils.auth_utils import current_user_email, current_user_id, require_capability
from ...utils.responses import ok
from ...utils.payload import json_object, text_field

# app.register_blueprint(assignments_bp, url_prefix="/api/assignments")
assignments_bp = Blueprint("assignments", __name__)

_DENIED = "Tidak memiliki akses untuk mengelola penugasan"


@assignments_bp.get("/")
@require_capability(Capability.MANAGE_USERS, _DENIED)
def list_assignments():
    return ok(**assignment_service.list_assignments(require_supabase()))


@assignments_bp.post("/")
@require_capability(Capability.MANAGE_USERS, _DENIED)
def assign():
    """Body {campaigner_id, member_ids: [...]}"""
    payload = json_object()
    count = assignment_service.assign_members(
        require_supabase(),
        text_field(payload, "campaigner_id"),
        payload.get("member_ids"),
        user_id=current_user_id(),
        user_email=current_user_email(),
    )
    return ok(success=True, count=count)


@assignments_bp.delete("/")
@require_capability(Capability.MANAGE_USERS, _DENIED)
def unassign():
    """Body {member_ids: [...]}"""
    payload = json_object()
    count = assignment_service.unassign_members(
        require_supabase(),
        payload.get("member_ids"),
        user_id=current_user_id(),
        user_email=current_user_email(),
    )
    return ok(success=True, count=count)
