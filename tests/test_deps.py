"""
Tests for app/deps.py: identity claim, admin gate and NotifierClient.
These tests use the real dep functions (no overrides) to get coverage.
"""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app import settings
from app.auth import IdentityClaim, issue_token
from app.deps import (
    NotifierClient,
    get_current_comedian,
    get_identity_claim,
    get_notifier,
)
from app.errors import UpstreamFailure

from .factories import ADMIN_EMAIL, COMEDIAN_ID, SECRET, comedian_headers

CRUD_PATH = "app.routers.comedian.comedian_crud"


def _gate_app() -> FastAPI:
    app = FastAPI()

    @app.get("/claim")
    async def _claim(claim: IdentityClaim | None = Depends(get_identity_claim)):
        return claim

    @app.get("/comedian")
    async def _comedian(claim: IdentityClaim = Depends(get_current_comedian)):
        return claim

    return app


class TestIdentityClaim:
    def test_headers_become_claim(self):
        with TestClient(_gate_app()) as c:
            resp = c.get("/claim", headers=comedian_headers(email="Jo@Example.com"))
        assert resp.json() == {
            "subject_id": COMEDIAN_ID,
            "email": "jo@example.com",
            "display_name": "Jo Funny",
        }

    def test_display_name_is_url_decoded(self):
        with TestClient(_gate_app()) as c:
            resp = c.get("/claim", headers=comedian_headers(name="Zo%C3%AB%20Laughs"))
        assert resp.json()["display_name"] == "Zoë Laughs"

    def test_no_subject_is_anonymous(self):
        with TestClient(_gate_app()) as c:
            resp = c.get("/claim", headers={"X-User-Email": "jo@example.com"})
        assert resp.json() is None


class TestCurrentComedian:
    def test_authenticated(self):
        with TestClient(_gate_app()) as c:
            resp = c.get("/comedian", headers=comedian_headers())
        assert resp.status_code == 200

    def test_claim_without_email_returns_401(self):
        with TestClient(_gate_app()) as c:
            resp = c.get("/comedian", headers={"X-User-Id": COMEDIAN_ID})
        assert resp.status_code == 401

    def test_no_headers_returns_401(self):
        with TestClient(_gate_app()) as c:
            resp = c.get("/comedian")
        assert resp.status_code == 401


class TestRequireAdmin:
    def test_token_admits(self, anon_client):
        token = issue_token(ADMIN_EMAIL, SECRET)
        with patch(CRUD_PATH) as mock_crud:
            mock_crud.list_comedians = AsyncMock(return_value=[])
            resp = anon_client.get("/comedians/", headers={"X-Admin-Token": token})
        assert resp.status_code == 200

    def test_identity_on_allow_list_admits(self, anon_client):
        with patch(CRUD_PATH) as mock_crud:
            mock_crud.list_comedians = AsyncMock(return_value=[])
            resp = anon_client.get(
                "/comedians/", headers=comedian_headers(email=ADMIN_EMAIL)
            )
        assert resp.status_code == 200

    def test_tampered_token_returns_401(self, anon_client):
        token = issue_token(ADMIN_EMAIL, SECRET)
        resp = anon_client.get("/comedians/", headers={"X-Admin-Token": token + "x"})
        assert resp.status_code == 401

    def test_token_signed_with_other_secret_returns_401(self, anon_client):
        token = issue_token(ADMIN_EMAIL, "not-the-secret")
        resp = anon_client.get("/comedians/", headers={"X-Admin-Token": token})
        assert resp.status_code == 401

    def test_unlisted_identity_returns_403(self, anon_client):
        resp = anon_client.get("/comedians/", headers=comedian_headers())
        assert resp.status_code == 403

    def test_admin_removed_from_allow_list_loses_access(self, anon_client, monkeypatch):
        token = issue_token(ADMIN_EMAIL, SECRET)
        monkeypatch.setattr(settings, "admin_emails", ["other@example.com"])
        resp = anon_client.get("/comedians/", headers={"X-Admin-Token": token})
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# NotifierClient
# ---------------------------------------------------------------------------


def _mock_http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://resend.test"
    )


class TestNotifierClient:
    def test_singleton(self):
        assert get_notifier() is get_notifier()
        assert isinstance(get_notifier(), NotifierClient)

    def test_client_property_returns_async_client(self):
        assert isinstance(NotifierClient()._client, httpx.AsyncClient)

    def test_send_posts_to_resend(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", "re_test")
        monkeypatch.setattr(settings, "from_email", "Gigs <gigs@example.com>")
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "email-123"})

        with patch("app.deps._get_notifier_http_client", return_value=_mock_http(handler)):
            result = asyncio.run(NotifierClient().send("jo@example.com", "Hi", "<p>x</p>"))

        assert result == "email-123"
        (request,) = seen
        assert request.url.path == "/emails"
        assert request.headers["Authorization"] == "Bearer re_test"
        assert json.loads(request.content) == {
            "from": "Gigs <gigs@example.com>",
            "to": ["jo@example.com"],
            "subject": "Hi",
            "html": "<p>x</p>",
        }

    def test_missing_api_key_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", "")
        with pytest.raises(UpstreamFailure):
            asyncio.run(NotifierClient().send("jo@example.com", "Hi", "<p>x</p>"))

    def test_error_status_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", "re_test")

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(422, json={"message": "bad from"})

        with patch("app.deps._get_notifier_http_client", return_value=_mock_http(handler)):
            with pytest.raises(UpstreamFailure) as exc:
                asyncio.run(NotifierClient().send(["a@x.com"], "Hi", "<p>x</p>"))
        assert exc.value.status_code == 502

    def test_transport_error_raises(self, monkeypatch):
        monkeypatch.setattr(settings, "resend_api_key", "re_test")

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with patch("app.deps._get_notifier_http_client", return_value=_mock_http(handler)):
            with pytest.raises(UpstreamFailure):
                asyncio.run(NotifierClient().send("a@x.com", "Hi", "<p>x</p>"))
