# api_relawan/app/blueprints/alumni/routes.py

from __future__ import annotations

from flask import Blueprint, request

from ...extensions import require_supabase
from ...services import alumni_linker, alumni_service
from ...services.roles import Capability
from ...utils.auth_utils import current_user_email, current_user_id, require_capability
from ...utils.responses import ok, error
from ...utils.payload import json_object

# app.register_blueprint(alumni_bp, url_prefix="/api/alumni")
alumni_bp = Blueprint("alumni", __name__)


def _page_args(default_limit: int):
    page = request.args.get("page", type=int, default=1)
    limit = request.args.get("limit", type=int, default=default_limit)
    page = 1 if not page or page < 1 else page
    limit = default_limit if not limit or limit < 1 else min(limit, 200)
    return page, limit


@alumni_bp.get("/")
def list_alumni():
    page, limit = _page_args(50)
    result = alumni_service.list_alumni(
        require_supabase(),
        search=(request.args.get("search") or "").strip() or None,
        angkatan=request.args.get("angkatan", type=int),
        linked=request.args.get("linked"),
        page=page,
        limit=limit,
    )
    return ok(**result)


@alumni_bp.get("/search")
@require_capability(Capability.EDIT)
def search_alumni():
    page, limit = _page_args(20)
    result = alumni_service.search_alumni(
        require_supabase(),
        q=(request.args.get("q") or "").strip(),
        angkatan=request.args.get("angkatan", type=int),
        page=page,
        limit=limit,
    )
    return ok(**result)


@alumni_bp.get("/stats")
def stats():
    return ok(**alumni_service.alumni_stats(require_supabase()))


@alumni_bp.post("/link")
@require_capability(Capability.MANAGE_USERS)
def link():
    """
    Body {pairs: [{member_id, alumni_id}, ...]} -> mode konfirmasi.
    Tanpa body / pairs kosong -> auto-link nama + angkatan (legacy).
    """
    payload = json_object()
    pairs = payload.get("pairs")
    if pairs is not None and not isinstance(pairs, list):
        return error("pairs harus berupa array", 400)

    user = {"user_id": current_user_id(), "user_email": current_user_email()}
    if pairs:
        return ok(**alumni_linker.link_pairs(require_supabase(), pairs, **user))
    return ok(**alumni_linker.auto_link(require_supabase(), **user))


@alumni_bp.get("/link/preview")
@require_capability(Capability.MANAGE_USERS)
def link_preview():
    return ok(**alumni_linker.preview_candidates(require_supabase()))
