# api_relawan/app/blueprints/settings/routes.py

from __future__ import annotations

from flask import Blueprint, request

from ...extensions import require_supabase
from ...services.roles import Capability
from ...services.settings_service import get_setting, upsert_setting
from ...utils.auth_utils import current_user_id, require_capability
from ...utils.responses import ok, error
from ...utils.payload import json_object

# app.register_blueprint(settings_bp, url_prefix="/api/settings")
settings_bp = Blueprint("settings", __name__)

_DENIED = "Tidak memiliki akses untuk mengelola pengaturan"


@settings_bp.get("/")
@require_capability(Capability.MANAGE_USERS, _DENIED)
def read_setting():
    key = (request.args.get("key") or "").strip()
    if not key:
        return error("Parameter key wajib diisi", 400)
    row = get_setting(require_supabase(), key)
    if not row:
        return ok(key=key, value=None)
    return ok(**row)


@settings_bp.put("/")
@require_capability(Capability.MANAGE_USERS, _DENIED)
def write_setting():
    payload = json_object()
    key = payload.get("key")
    if not key or "value" not in payload:
        return error("Key dan value wajib diisi", 400)
    row = upsert_setting(require_supabase(), key, payload["value"], user_id=current_user_id())
    return ok(item=row)
