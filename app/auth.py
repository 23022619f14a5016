"""
Admin access control.

Admins authenticate either with a trusted identity claim (injected by the
gateway after the identity provider validated the session) or with a compact
signed token issued by ``POST /admin/auth``:

    base64url(JSON{email, issuedAt, expiresAt}) "." base64url(HMAC-SHA256)

Tokens are stateless: there is no revocation list and no replay protection
beyond the 24h expiry window.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, ValidationError

ADMIN_TOKEN_HEADER = "x-admin-token"
TOKEN_TTL_MS = 24 * 60 * 60 * 1000

# Password hashing parameters. Changing any of these invalidates stored hashes.
PBKDF2_DIGEST = "sha512"
PBKDF2_ITERATIONS = 10_000
PBKDF2_KEY_LENGTH = 64


class AdminTokenPayload(BaseModel):
    email: str
    issued_at: int = Field(alias="issuedAt")
    expires_at: int = Field(alias="expiresAt")

    model_config = ConfigDict(populate_by_name=True)


@dataclass(frozen=True)
class IdentityClaim:
    """Pre-validated identity-provider claim; trusted as-is."""

    subject_id: str
    email: str | None = None
    display_name: str | None = None


@dataclass(frozen=True)
class AdminIdentity:
    email: str
    method: str  # "token" | "identity"


@dataclass(frozen=True)
class Denied:
    reason: str  # "invalid-or-expired" | "not-in-allow-list" | "no-credentials"
    method: str  # "token" | "identity" | "none"
    email: str | None = None


AdminDecision = AdminIdentity | Denied


def _now_ms() -> int:
    return int(time.time() * 1000)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _sign(encoded_payload: str, secret: str) -> str:
    digest = hmac.new(
        secret.encode(), encoded_payload.encode(), hashlib.sha256
    ).digest()
    return _b64encode(digest)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


def issue_token(email: str, secret: str, now_ms: int | None = None) -> str:
    issued_at = _now_ms() if now_ms is None else now_ms
    payload = AdminTokenPayload(
        email=email.strip().lower(),
        issued_at=issued_at,
        expires_at=issued_at + TOKEN_TTL_MS,
    )
    encoded = _b64encode(payload.model_dump_json(by_alias=True).encode())
    return f"{encoded}.{_sign(encoded, secret)}"


def verify_token(
    token: str, secret: str, now_ms: int | None = None
) -> AdminTokenPayload | None:
    """
    Return the payload of a valid, unexpired token, else None.

    Every failure (no separator, signature mismatch, undecodable payload,
    expired) yields None; callers cannot tell them apart.
    """
    encoded, sep, signature = token.partition(".")
    if not sep:
        return None
    expected = _sign(encoded, secret)
    if not hmac.compare_digest(signature.encode(), expected.encode()):
        return None

    try:
        payload = AdminTokenPayload.model_validate_json(_b64decode(encoded))
    except (binascii.Error, ValueError, UnicodeError, ValidationError):
        return None

    now = _now_ms() if now_ms is None else now_ms
    if payload.expires_at < now:
        return None
    return payload


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


def hash_password(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        PBKDF2_DIGEST,
        password.encode(),
        salt.encode(),
        PBKDF2_ITERATIONS,
        dklen=PBKDF2_KEY_LENGTH,
    ).hex()


def verify_password(password: str, stored_hash: str, salt: str) -> bool:
    return hmac.compare_digest(hash_password(password, salt), stored_hash.lower())


# ---------------------------------------------------------------------------
# Admin decision
# ---------------------------------------------------------------------------


def parse_admin_emails(raw: str) -> list[str]:
    """Split a comma-separated allow-list into normalised addresses."""
    return [e.strip().lower() for e in raw.split(",") if e.strip()]


def _header(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is None:
        # plain dicts are case-sensitive, Starlette's Headers are not
        value = next(
            (v for k, v in headers.items() if k.lower() == name), None
        )
    return value or None


def check_admin(
    headers: Mapping[str, str],
    identity: IdentityClaim | None,
    admin_emails: Iterable[str],
    secret: str,
    now_ms: int | None = None,
) -> AdminDecision:
    """
    Decide whether the caller is an admin. Pure: no logging, no I/O.

    An ``X-Admin-Token`` header takes precedence over the identity claim, even
    when the token turns out to be invalid.
    """
    allowed = {e.strip().lower() for e in admin_emails if e.strip()}

    token = _header(headers, ADMIN_TOKEN_HEADER)
    if token is not None:
        payload = verify_token(token, secret, now_ms=now_ms)
        if payload is None:
            return Denied(reason="invalid-or-expired", method="token")
        email = payload.email.lower()
        if email in allowed:
            return AdminIdentity(email=email, method="token")
        return Denied(reason="not-in-allow-list", method="token", email=email)

    if identity is not None and identity.email:
        email = identity.email.lower()
        if email in allowed:
            return AdminIdentity(email=email, method="identity")
        return Denied(reason="not-in-allow-list", method="identity", email=email)

    return Denied(reason="no-credentials", method="none")
