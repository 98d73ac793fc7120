# api_relawan/app/services/user_admin.py
"""Operasi akun lewat Supabase Auth Admin API (butuh service-role key)."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import AuthError

from ..db.models import USER_ROLES
from ..utils.errors import ApiError, ValidationError
from .roles import UserRole

logger = logging.getLogger(__name__)


def _parse_role(role) -> UserRole:
    try:
        return UserRole(role)
    except ValueError:
        raise ValidationError("Role tidak valid")


def list_auth_users(client) -> List[Any]:
    try:
        return list(client.auth.admin.list_users() or [])
    except AuthError as e:
        raise ApiError(e.message, 500)


def list_campaigners(client) -> List[Dict[str, str]]:
    """User berrole campaigner beserta email-nya (dari Auth)."""
    res = client.table(USER_ROLES).select("user_id").eq("role", UserRole.CAMPAIGNER.value).execute()
    campaigner_ids = {r["user_id"] for r in (res.data or [])}
    if not campaigner_ids:
        return []
    return [
        {"user_id": u.id, "email": getattr(u, "email", None) or ""}
        for u in list_auth_users(client)
        if u.id in campaigner_ids
    ]


def _upsert_role(client, user_id: str, role: UserRole) -> None:
    client.table(USER_ROLES).upsert({"user_id": user_id, "role": role.value}, on_conflict="user_id").execute()


def invite_user(client, email: str, role, redirect_to: Optional[str] = None) -> Dict[str, Any]:
    """
    Kirim undangan email dan simpan role-nya. Email yang sudah terdaftar
    tidak diundang ulang; role user tersebut saja yang diperbarui.
    """
    if not email or not role:
        raise ValidationError("Email dan role wajib diisi")
    user_role = _parse_role(role)

    options = {"redirect_to": redirect_to} if redirect_to else {}
    try:
        res = client.auth.admin.invite_user_by_email(email, options)
    except AuthError as e:
        if "already been registered" not in (e.message or ""):
            raise ApiError(e.message, 500)
        existing = next((u for u in list_auth_users(client) if getattr(u, "email", None) == email), None)
        if existing is None:
            raise ApiError(e.message, 500)
        _upsert_role(client, existing.id, user_role)
        logger.info("User %s sudah terdaftar, role diperbarui ke %s", email, user_role.value)
        return {
            "created": False,
            "message": "User sudah terdaftar. Role berhasil diperbarui.",
            "user_id": existing.id,
        }

    user = getattr(res, "user", None)
    if user is None:
        raise ApiError("Gagal mengundang pengguna", 500)

    try:
        _upsert_role(client, user.id, user_role)
    except APIError as e:
        raise ApiError("User diundang tapi gagal menyimpan role: " + (e.message or str(e)), 500)

    logger.info("Undangan dikirim ke %s (role=%s)", email, user_role.value)
    return {
        "created": True,
        "message": "Undangan berhasil dikirim ke " + email,
        "user_id": user.id,
    }


def reset_password(client, user_id: str, new_password: str, min_length: int = 6) -> None:
    if not user_id or not new_password:
        raise ValidationError("user_id dan new_password wajib diisi")
    if len(new_password) < min_length:
        raise ValidationError(f"Password minimal {min_length} karakter")
    try:
        client.auth.admin.update_user_by_id(user_id, {"password": new_password})
    except AuthError as e:
        raise ApiError(e.message, 500)
    logger.info("Password user %s direset", user_id)
