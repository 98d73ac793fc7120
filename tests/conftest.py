"""
Pytest configuration and fixtures.
"""
import os
import sys

import pytest

# Add project root to Python path
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__) + '/..'))
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from fake_supabase import FakeSupabase  # noqa: E402


@pytest.fixture
def sb():
    """Fresh in-memory Supabase with one user per role."""
    fake = FakeSupabase()
    fake.add_user("admin-token", "u-admin", role="admin")
    fake.add_user("campaigner-token", "u-camp", role="campaigner")
    fake.add_user("viewer-token", "u-view", role="viewer")
    fake.add_user("norole-token", "u-norole")
    return fake


@pytest.fixture
def app(sb, monkeypatch):
    """Create application for testing, wired to the fake Supabase."""
    from app import create_app, extensions
    from app.config import TestConfig

    monkeypatch.setattr(extensions, "_supabase", sb)
    return create_app(TestConfig)


@pytest.fixture
def client(app):
    return app.test_client()


def auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    return auth("admin-token")


@pytest.fixture
def campaigner_headers():
    return auth("campaigner-token")


@pytest.fixture
def viewer_headers():
    return auth("viewer-token")
