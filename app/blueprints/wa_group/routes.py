# api_relawan/app/blueprints/wa_group/routes.py

from __future__ import annotations

import logging

from flask import Blueprint, request, current_app
from postgrest.exceptions import APIError

from ...extensions import require_supabase
from ...services import wa_group_service
from ...services.member_service import search_members
from ...services.roles import Capability
from ...services.waha_client import WahaClient
from ...utils.auth_utils import require_capability
from ...utils.errors import UpstreamError
from ...utils.responses import ok, error
from ...utils.payload import json_object
from ...db.models import WA_GROUP_MEMBERS

logger = logging.getLogger(__name__)

# Dua blueprint: /api/waha (proxy + rekonsiliasi) dan /api/wa-group (tabel peserta)
waha_bp = Blueprint("waha", __name__)
wa_group_bp = Blueprint("wa_group", __name__)


@waha_bp.get("/groups")
@require_capability(Capability.MANAGE_USERS)
def list_groups():
    """Daftar grup dari WAHA untuk memilih groupId: GET /api/waha/groups?baseUrl=&session=&apiKey="""
    base_url = (request.args.get("baseUrl") or "").strip()
    if not base_url:
        return error("baseUrl wajib diisi", 400)
    waha = WahaClient(
        base_url,
        session=request.args.get("session") or "default",
        api_key=request.args.get("apiKey") or None,
        timeout=float(current_app.config.get("WAHA_TIMEOUT", 15)),
    )
    try:
        groups = waha.list_groups()
    except UpstreamError as e:
        return error("Gagal mengambil daftar grup: " + e.message, 500)
    return ok(items=groups)


@waha_bp.post("/sync")
@require_capability(Capability.MANAGE_USERS)
def reconcile():
    """Samakan members.masuk_grup dengan peserta grup WA."""
    sb = require_supabase()
    waha, group_id = wa_group_service.waha_from_settings(sb)
    try:
        report = wa_group_service.reconcile_group_flags(sb, waha, group_id)
    except (UpstreamError, APIError) as e:
        logger.error("Rekonsiliasi grup WA gagal: %s", e)
        return error("Gagal sinkronisasi: " + (e.message or str(e)), 500)
    return ok(**report)


@wa_group_bp.get("/")
@require_capability(Capability.MANAGE_USERS, "Akses ditolak")
def list_wa_members():
    res = (
        require_supabase()
        .table(WA_GROUP_MEMBERS)
        .select("*, member:members(id, nama, no_hp, angkatan)")
        .order("wa_name")
        .execute()
    )
    return ok(data=res.data or [])


@wa_group_bp.post("/")
@require_capability(Capability.MANAGE_USERS, "Akses ditolak")
def sync_wa_members():
    sb = require_supabase()
    waha, group_id = wa_group_service.waha_from_settings(sb, require_session=True)
    return ok(**wa_group_service.sync_participants(sb, waha, group_id))


@wa_group_bp.patch("/")
@require_capability(Capability.MANAGE_USERS, "Akses ditolak")
def link_wa_member():
    payload = json_object()
    wa_id = payload.get("waGroupMemberId")
    if not wa_id:
        return error("waGroupMemberId diperlukan", 400)
    wa_group_service.link_wa_member(require_supabase(), wa_id, payload.get("memberId"))
    return ok(success=True)


@wa_group_bp.get("/stats")
def wa_stats():
    return ok(**wa_group_service.group_stats(require_supabase()))


@wa_group_bp.get("/search-members")
@require_capability(Capability.MANAGE_USERS, "Akses ditolak")
def wa_search_members():
    return ok(data=search_members(require_supabase(), request.args.get("q") or ""))
