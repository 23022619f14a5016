import hmac

from fastapi import APIRouter, Body, Depends
from loguru import logger

from app import settings
from app.auth import (
    TOKEN_TTL_MS,
    AdminIdentity,
    Denied,
    hash_password,
    issue_token,
    verify_password,
    verify_token,
)
from app.deps import get_admin_decision
from app.errors import AdminAccessRequired, AppError, AuthenticationFailure
from app.schemas import (
    AdminAuthRequest,
    AdminCheckResponse,
    AdminHash,
    AdminHashResponse,
    AdminLogin,
    AdminLoginResponse,
    AdminVerify,
    AdminVerifyResponse,
)

router = APIRouter(prefix="/admin", tags=["admin"])


def _password_matches(password: str) -> bool:
    """Stored PBKDF2 hash wins; a plain configured password is the setup fallback."""
    if settings.admin_password_hash:
        return verify_password(password, settings.admin_password_hash, settings.admin_salt)
    if settings.admin_password:
        return hmac.compare_digest(password.encode(), settings.admin_password.encode())
    return False


def _login(payload: AdminLogin) -> AdminLoginResponse:
    email = payload.email.strip().lower()
    if email not in settings.admin_emails or not _password_matches(payload.password):
        logger.info("Admin login refused for {}", email)
        raise AuthenticationFailure("Invalid credentials")

    logger.info("Admin login for {}", email)
    return AdminLoginResponse(
        token=issue_token(email, settings.admin_jwt_secret),
        email=email,
        expires_in=TOKEN_TTL_MS // 1000,
    )


def _verify(payload: AdminVerify) -> AdminVerifyResponse:
    token_payload = verify_token(payload.token, settings.admin_jwt_secret)
    if token_payload is None:
        raise AuthenticationFailure("Invalid or expired token")
    if token_payload.email not in settings.admin_emails:
        raise AdminAccessRequired("Not authorized")
    return AdminVerifyResponse(email=token_payload.email, is_admin=True)


@router.post(
    "/auth",
    response_model=AdminLoginResponse | AdminVerifyResponse | AdminHashResponse,
)
async def admin_auth(payload: AdminAuthRequest = Body(...)):
    if not settings.admin_emails:
        raise AppError("Admin not configured. Set ADMIN_EMAILS in environment variables.")

    match payload:
        case AdminLogin():
            return _login(payload)
        case AdminVerify():
            return _verify(payload)
        case AdminHash(password=password):
            return AdminHashResponse(
                hash=hash_password(password, settings.admin_salt),
                salt=settings.admin_salt,
            )


@router.get("/check", response_model=AdminCheckResponse)
async def admin_check(
    decision: AdminIdentity | Denied = Depends(get_admin_decision),
) -> AdminCheckResponse:
    """Report how the server sees the caller. Never fails."""
    match decision:
        case AdminIdentity(email=email, method=method):
            return AdminCheckResponse(is_admin=True, email=email, method=method)
        case Denied(reason=reason, method=method, email=email):
            return AdminCheckResponse(
                is_admin=False, email=email, method=method, reason=reason
            )
