# api_relawan/app/utils/auth_utils.py

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import g, request

from ..extensions import require_supabase
from ..services.roles import Capability, UserRole, get_user_role, has_capability
from .errors import Forbidden

logger = logging.getLogger(__name__)

# Pesan 403 per capability (ditampilkan apa adanya di UI)
DEFAULT_DENIED = {
    Capability.EDIT: "Tidak memiliki akses",
    Capability.DELETE: "Hanya admin yang dapat menghapus data",
    Capability.MANAGE_USERS: "Tidak memiliki akses",
}

_MISSING = object()


def _bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        return token or None
    return None


def get_current_user() -> Optional[Any]:
    """
    User Supabase dari header 'Authorization: Bearer <jwt>'.
    Token tidak ada / tidak valid -> None (diperlakukan sebagai anonim).
    Hasil di-cache di flask.g untuk satu request.
    """
    cached = g.get("current_user", _MISSING)
    if cached is not _MISSING:
        return cached

    user = None
    token = _bearer_token()
    if token:
        try:
            res = require_supabase().auth.get_user(token)
            user = res.user if res is not None else None
        except Exception as e:
            logger.info("Token tidak valid, diperlakukan sebagai anonim: %s", e)
            user = None
    g.current_user = user
    return user


def get_current_role() -> UserRole:
    cached = g.get("current_role")
    if cached is not None:
        return cached
    role = get_user_role(require_supabase(), get_current_user())
    g.current_role = role
    return role


def current_user_id() -> Optional[str]:
    user = get_current_user()
    return getattr(user, "id", None) if user is not None else None


def current_user_email() -> Optional[str]:
    user = get_current_user()
    return getattr(user, "email", None) if user is not None else None


def require_capability(capability: Capability, message: Optional[str] = None):
    """
    Dekorator otorisasi: resolusi user + role sekali, lalu tolak dengan 403
    bila role tidak punya capability yang diminta. Dijalankan sebelum logika
    handler apa pun.
    """
    denied = message or DEFAULT_DENIED[capability]

    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            role = get_current_role()
            if not has_capability(role, capability):
                raise Forbidden(denied)
            return f(*args, **kwargs)
        return decorated
    return decorator
