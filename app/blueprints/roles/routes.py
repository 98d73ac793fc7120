# api_relawan/app/blueprints/roles/routes.py

from __future__ import annotations

import logging

from flask import Blueprint, current_app

from ...db.models import USER_ROLES
from ...extensions import require_supabase
from ...services import user_admin
from ...services.roles import Capability, UserRole
from ...utils.auth_utils import current_user_id, get_current_role, require_capability
from ...utils.responses import ok, error
from ...utils.payload import json_object, text_field

logger = logging.getLogger(__name__)

# app.register_blueprint(roles_bp, url_prefix="/api/roles")
roles_bp = Blueprint("roles", __name__)


@roles_bp.get("/me")
def my_role():
    """Role user saat ini (viewer untuk anonim)."""
    return ok(user_id=current_user_id(), role=get_current_role().value)


@roles_bp.get("/")
@require_capability(Capability.MANAGE_USERS, "Tidak memiliki akses untuk mengelola pengguna")
def list_roles():
    res = require_supabase().table(USER_ROLES).select("*").execute()
    return ok(items=res.data or [])


@roles_bp.patch("/")
@require_capability(Capability.MANAGE_USERS, "Tidak memiliki akses untuk mengubah role")
def set_role():
    payload = json_object()
    user_id = payload.get("user_id")
    role = payload.get("role")
    if not user_id or not role:
        return error("user_id dan role wajib diisi", 400)
    try:
        role = UserRole(role)
    except ValueError:
        return error(f"Role tidak valid: {role}", 400)

    res = (
        require_supabase()
        .table(USER_ROLES)
        .upsert({"user_id": user_id, "role": role.value}, on_conflict="user_id")
        .execute()
    )
    logger.info("Role user %s diubah menjadi %s oleh %s", user_id, role.value, current_user_id())
    rows = res.data or []
    return ok(item=rows[0] if rows else {"user_id": user_id, "role": role.value})


@roles_bp.post("/invite")
@require_capability(Capability.MANAGE_USERS, "Tidak memiliki akses untuk mengundang pengguna")
def invite():
    payload = json_object()
    site_url = (current_app.config.get("SITE_URL") or "").rstrip("/")
    result = user_admin.invite_user(
        require_supabase(),
        text_field(payload, "email"),
        text_field(payload, "role"),
        redirect_to=f"{site_url}/auth/callback" if site_url else None,
    )
    created = result.pop("created")
    return ok(success=True, **result), 201 if created else 200


@roles_bp.post("/reset-password")
@require_capability(Capability.MANAGE_USERS, "Tidak memiliki akses untuk mengubah password")
def reset_password():
    payload = json_object()
    user_admin.reset_password(
        require_supabase(),
        text_field(payload, "user_id"),
        text_field(payload, "new_password"),
        min_length=int(current_app.config.get("PASSWORD_MIN_LENGTH", 6)),
    )
    return ok(success=True)
