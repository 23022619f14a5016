"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files; pytest discovers this by convention.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import settings
from app.deps import get_current_comedian, get_notifier, require_admin
from app.main import create_app

from .factories import ADMIN_EMAIL, SECRET, make_admin, make_comedian

# ---------------------------------------------------------------------------
# Keep tests away from redis and the real email API
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _no_redis():
    targets = [
        "app.routers.gig.get_gigs_cache",
        "app.routers.gig.set_gigs_cache",
        "app.routers.gig.invalidate_gigs_cache",
        "app.routers.booking.invalidate_gigs_cache",
    ]
    patchers = [
        patch(t, new=AsyncMock(return_value=None)) for t in targets
    ]
    for p in patchers:
        p.start()
    yield
    for p in patchers:
        p.stop()


@pytest.fixture(autouse=True)
def _admin_settings(monkeypatch):
    monkeypatch.setattr(settings, "admin_emails", [ADMIN_EMAIL])
    monkeypatch.setattr(settings, "admin_jwt_secret", SECRET)
    monkeypatch.setattr(settings, "admin_salt", "test-salt")
    monkeypatch.setattr(settings, "admin_password_hash", "")
    monkeypatch.setattr(settings, "admin_password", "")


def noop_notifier():
    mock = MagicMock()
    mock.send = AsyncMock(return_value="email-id-1")
    return mock


# ---------------------------------------------------------------------------
# App builder, used by all client fixtures
# ---------------------------------------------------------------------------


def build_app(comedian=None, admin=None, notifier=None) -> FastAPI:
    """
    Fresh app with the identity/admin gates overridden to return the given
    callers unconditionally. Gates left as None run for real.
    """
    app = create_app(with_db=False)

    if comedian is not None:
        app.dependency_overrides[get_current_comedian] = lambda: comedian
    if admin is not None:
        app.dependency_overrides[require_admin] = lambda: admin

    nc = notifier if notifier is not None else noop_notifier()
    app.dependency_overrides[get_notifier] = lambda: nc
    return app


# ---------------------------------------------------------------------------
# Reusable client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def comedian_client():
    return TestClient(build_app(comedian=make_comedian()), raise_server_exceptions=True)


@pytest.fixture()
def admin_client():
    return TestClient(build_app(admin=make_admin()), raise_server_exceptions=True)


@pytest.fixture()
def anon_client():
    """
    Client with NO gate overrides.
    Use this when you want the real identity/admin deps to run so you can assert 401/403.
    """
    return TestClient(build_app(), raise_server_exceptions=True)


@pytest.fixture()
def client_factory():
    def _make(comedian=None, admin=None, notifier=None) -> TestClient:
        return TestClient(
            build_app(comedian=comedian, admin=admin, notifier=notifier),
            raise_server_exceptions=True,
        )

    return _make
