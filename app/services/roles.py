# api_relawan/app/services/roles.py

from __future__ import annotations

import logging
from enum import Enum as PyEnum
from typing import Any, Optional

from ..db.models import USER_ROLES

logger = logging.getLogger(__name__)


class UserRole(PyEnum):
    ADMIN = "admin"
    CAMPAIGNER = "campaigner"
    VIEWER = "viewer"


class Capability(PyEnum):
    EDIT = "edit"
    DELETE = "delete"
    MANAGE_USERS = "manage_users"


def get_user_role(client, user: Optional[Any]) -> UserRole:
    """
    Ambil role user dari tabel user_roles.
    Tanpa user (anonim) atau tanpa baris role -> viewer.
    """
    if user is None:
        return UserRole.VIEWER

    res = (
        client.table(USER_ROLES)
        .select("role")
        .eq("user_id", user.id)
        .maybe_single()
        .execute()
    )
    # postgrest-py mengembalikan None untuk maybe_single() tanpa baris
    row = res.data if res is not None else None
    if not row:
        return UserRole.VIEWER
    try:
        return UserRole(row.get("role"))
    except ValueError:
        logger.warning("Role tidak dikenal %r untuk user %s, pakai viewer", row.get("role"), user.id)
        return UserRole.VIEWER


def can_edit(role: UserRole) -> bool:
    return role in (UserRole.ADMIN, UserRole.CAMPAIGNER)


def can_delete(role: UserRole) -> bool:
    return role == UserRole.ADMIN


def can_manage_users(role: UserRole) -> bool:
    return role == UserRole.ADMIN


_CHECKS = {
    Capability.EDIT: can_edit,
    Capability.DELETE: can_delete,
    Capability.MANAGE_USERS: can_manage_users,
}


def has_capability(role: UserRole, capability: Capability) -> bool:
    return _CHECKS[capability](role)
