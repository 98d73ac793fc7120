from types import SimpleNamespace

import pytest

from app.services.roles import (
    Capability,
    UserRole,
    can_delete,
    can_edit,
    can_manage_users,
    get_user_role,
    has_capability,
)


def test_anonymous_is_viewer(sb):
    assert get_user_role(sb, None) == UserRole.VIEWER
    assert sb.calls == []


def test_missing_assignment_defaults_to_viewer(sb):
    assert get_user_role(sb, SimpleNamespace(id="u-norole")) == UserRole.VIEWER


def test_assigned_roles(sb):
    assert get_user_role(sb, SimpleNamespace(id="u-admin")) == UserRole.ADMIN
    assert get_user_role(sb, SimpleNamespace(id="u-camp")) == UserRole.CAMPAIGNER


def test_unknown_role_value_falls_back_to_viewer(sb):
    sb.tables["user_roles"].append({"user_id": "u-odd", "role": "superuser"})
    assert get_user_role(sb, SimpleNamespace(id="u-odd")) == UserRole.VIEWER


@pytest.mark.parametrize("role,edit,delete,manage", [
    (UserRole.ADMIN, True, True, True),
    (UserRole.CAMPAIGNER, True, False, False),
    (UserRole.VIEWER, False, False, False),
])
def test_capabilities(role, edit, delete, manage):
    assert can_edit(role) is edit
    assert can_delete(role) is delete
    assert can_manage_users(role) is manage
    assert has_capability(role, Capability.EDIT) is edit
    assert has_capability(role, Capability.DELETE) is delete
    assert has_capability(role, Capability.MANAGE_USERS) is manage


def test_role_endpoint_reports_current_role(client, campaigner_headers):
    res = client.get("/api/roles/me", headers=campaigner_headers)
    assert res.status_code == 200
    assert res.get_json()["role"] == "campaigner"


def test_invalid_token_is_treated_as_anonymous(client):
    res = client.get("/api/roles/me", headers={"Authorization": "Bearer nope"})
    assert res.get_json() == {"ok": True, "user_id": None, "role": "viewer"}


def test_set_role_requires_admin(client, sb, campaigner_headers, admin_headers):
    body = {"user_id": "u-norole", "role": "campaigner"}
    assert client.patch("/api/roles/", json=body, headers=campaigner_headers).status_code == 403

    res = client.patch("/api/roles/", json=body, headers=admin_headers)
    assert res.status_code == 200
    assert {"user_id": "u-norole", "role": "campaigner"} in [
        {k: r[k] for k in ("user_id", "role")} for r in sb.tables["user_roles"]
    ]


def test_set_role_rejects_unknown_role(client, admin_headers):
    res = client.patch("/api/roles/", json={"user_id": "x", "role": "owner"}, headers=admin_headers)
    assert res.status_code == 400


# ---------- undangan & reset password ----------

def _role_of(sb, user_id):
    return next((r["role"] for r in sb.tables["user_roles"] if r["user_id"] == user_id), None)


def test_invite_new_user_stores_role(client, sb, admin_headers):
    client.application.config["SITE_URL"] = "https://relawan.example.org/"

    res = client.post("/api/roles/invite", json={"email": "baru@example.com", "role": "campaigner"}, headers=admin_headers)

    assert res.status_code == 201
    body = res.get_json()
    assert body["message"] == "Undangan berhasil dikirim ke baru@example.com"
    assert sb.auth.admin.invites == [
        ("baru@example.com", {"redirect_to": "https://relawan.example.org/auth/callback"})
    ]
    assert _role_of(sb, body["user_id"]) == "campaigner"


def test_invite_registered_email_updates_role(client, sb, admin_headers):
    sb.auth.admin.invite_error = "A user with this email address has already been registered"

    res = client.post(
        "/api/roles/invite", json={"email": "u-norole@example.com", "role": "admin"}, headers=admin_headers
    )

    assert res.status_code == 200
    body = res.get_json()
    assert body["message"] == "User sudah terdaftar. Role berhasil diperbarui."
    assert body["user_id"] == "u-norole"
    assert _role_of(sb, "u-norole") == "admin"


def test_invite_other_auth_errors_are_500(client, sb, admin_headers):
    sb.auth.admin.invite_error = "Email rate limit exceeded"
    res = client.post("/api/roles/invite", json={"email": "x@example.com", "role": "viewer"}, headers=admin_headers)
    assert res.status_code == 500
    assert res.get_json()["error"] == "Email rate limit exceeded"


def test_invite_validation_and_access(client, sb, admin_headers, campaigner_headers):
    res = client.post("/api/roles/invite", json={"email": "x@example.com"}, headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "Email dan role wajib diisi"

    res = client.post("/api/roles/invite", json={"email": "x@example.com", "role": "owner"}, headers=admin_headers)
    assert res.status_code == 400

    res = client.post(
        "/api/roles/invite", json={"email": "x@example.com", "role": "viewer"}, headers=campaigner_headers
    )
    assert res.status_code == 403
    assert res.get_json()["error"] == "Tidak memiliki akses untuk mengundang pengguna"
    assert sb.auth.admin.invites == []


def test_reset_password(client, sb, admin_headers):
    res = client.post(
        "/api/roles/reset-password", json={"user_id": "u-camp", "new_password": "rahasia123"}, headers=admin_headers
    )
    assert res.status_code == 200
    assert sb.auth.admin.password_updates == [("u-camp", {"password": "rahasia123"})]


def test_reset_password_validation(client, sb, admin_headers, viewer_headers):
    res = client.post("/api/roles/reset-password", json={"user_id": "u-camp"}, headers=admin_headers)
    assert res.status_code == 400
    assert res.get_json()["error"] == "user_id dan new_password wajib diisi"

    res = client.post(
        "/api/roles/reset-password", json={"user_id": "u-camp", "new_password": "12345"}, headers=admin_headers
    )
    assert res.status_code == 400
    assert res.get_json()["error"] == "Password minimal 6 karakter"

    res = client.post(
        "/api/roles/reset-password", json={"user_id": "u-camp", "new_password": "rahasia123"}, headers=viewer_headers
    )
    assert res.status_code == 403
    assert sb.auth.admin.password_updates == []


def test_reset_password_auth_error_is_500(client, sb, admin_headers):
    sb.auth.admin.update_error = "User not found"
    res = client.post(
        "/api/roles/reset-password", json={"user_id": "ghost", "new_password": "rahasia123"}, headers=admin_headers
    )
    assert res.status_code == 500
    assert res.get_json()["error"] == "User not found"
