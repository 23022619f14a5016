from functools import lru_cache
from urllib.parse import unquote

import httpx
from fastapi import Depends, Header, Request
from loguru import logger

from app import settings
from app.auth import AdminIdentity, Denied, IdentityClaim, check_admin
from app.errors import AdminAccessRequired, AuthenticationFailure, UpstreamFailure

# ---------------------------------------------------------------------------
# Identity: trusted claim injected by the gateway
# ---------------------------------------------------------------------------


def get_identity_claim(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
) -> IdentityClaim | None:
    """
    Reads the headers injected by the gateway after the identity provider
    validated the session. The session itself has already been verified,
    we just trust these headers. Returns None for anonymous requests.
    """
    if not x_user_id:
        return None
    return IdentityClaim(
        subject_id=x_user_id,
        email=x_user_email.strip().lower() if x_user_email else None,
        display_name=unquote(x_user_name) if x_user_name else None,
    )


def get_current_comedian(
    claim: IdentityClaim | None = Depends(get_identity_claim),
) -> IdentityClaim:
    if claim is None or not claim.email:
        raise AuthenticationFailure("Unauthorized - please log in")
    return claim


def get_admin_decision(
    request: Request,
    claim: IdentityClaim | None = Depends(get_identity_claim),
) -> AdminIdentity | Denied:
    return check_admin(
        request.headers,
        claim,
        admin_emails=settings.admin_emails,
        secret=settings.admin_jwt_secret,
    )


def require_admin(
    decision: AdminIdentity | Denied = Depends(get_admin_decision),
) -> AdminIdentity:
    """Gate for admin-only endpoints. Only ``AdminIdentity`` gets through."""
    match decision:
        case AdminIdentity():
            return decision
        case Denied(reason="not-in-allow-list"):
            logger.info("Admin access denied for {} ({})", decision.email, decision.method)
            raise AdminAccessRequired()
        case Denied():
            raise AuthenticationFailure()


# ---------------------------------------------------------------------------
# NotifierClient: thin async wrapper around the Resend email API
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def _get_notifier_http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.resend_api_url,
        timeout=httpx.Timeout(10.0),
    )


class NotifierClient:
    """
    Sends transactional email through Resend.
    Any failure (missing API key, transport error, non-2xx) raises
    UpstreamFailure; callers decide whether that blocks their response.
    """

    @property
    def _client(self) -> httpx.AsyncClient:
        return _get_notifier_http_client()

    async def send(self, to: str | list[str], subject: str, html: str) -> str:
        """Send one message and return Resend's delivery id."""
        if not settings.resend_api_key:
            logger.error("RESEND_API_KEY is not set, cannot send '{}'", subject)
            raise UpstreamFailure("Email service not configured")

        recipients = to if isinstance(to, list) else [to]
        try:
            resp = await self._client.post(
                "/emails",
                headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                json={
                    "from": settings.from_email,
                    "to": recipients,
                    "subject": subject,
                    "html": html,
                },
            )
        except httpx.RequestError as exc:
            logger.error("Resend request failed: {}", exc)
            raise UpstreamFailure("Failed to send notification") from exc

        if resp.status_code >= 400:
            logger.error("Resend returned {}: {}", resp.status_code, resp.text)
            raise UpstreamFailure("Failed to send notification")

        delivery_id = resp.json().get("id", "")
        logger.info("Email '{}' sent to {} recipients ({})", subject, len(recipients), delivery_id)
        return delivery_id


_notifier_client = NotifierClient()


def get_notifier() -> NotifierClient:
    return _notifier_client
