"""
Authentication Module

Shift staff share one password (SHIFT_PASSWORD). Logging in exchanges it for
a signed session token that expires after SESSION_HOURS. The token is set as
an HttpOnly cookie and also returned in the body so scripts can send it as
"Authorization: Bearer <token>".

Token format: base64url(header).base64url(payload).base64url(HMAC-SHA256)

Usage:
    from api.auth import require_session

    @router.get("/bidder")
    async def get_bidder(session: SessionPayload = Depends(require_session)):
        ...
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError

from api.dependencies import get_app_config
from core.config import AppConfig, AuthConfig, ConfigurationError

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"
SESSION_SUBJECT = "shift"


# =============================================================================
# MODELS
# =============================================================================


class SessionPayload(BaseModel):
    """Signed session token payload."""

    sub: str
    iat: int  # issued at timestamp
    exp: int  # expiration timestamp

    @property
    def expires_at(self) -> str:
        return datetime.fromtimestamp(self.exp, tz=timezone.utc).isoformat()


class LoginRequest(BaseModel):
    """Login request."""

    password: str = ""


# =============================================================================
# TOKEN UTILITIES
# =============================================================================


def _base64url_encode(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _base64url_decode(data: str) -> bytes:
    """Base64url decode with padding restoration."""
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    return base64.urlsafe_b64decode(data)


def _sign(secret: str, message: str) -> bytes:
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).digest()


def _require_auth_config(config: AuthConfig) -> None:
    """Logins are disabled until both the password and signing key are set."""
    if not config.shift_password:
        raise ConfigurationError("Missing SHIFT_PASSWORD")
    if not config.session_secret:
        raise ConfigurationError("Missing SESSION_SECRET")


def check_password(config: AuthConfig, password: str) -> bool:
    """Constant-time comparison against SHIFT_PASSWORD."""
    _require_auth_config(config)
    return hmac.compare_digest((password or "").encode(), config.shift_password.encode())


def create_session_token(config: AuthConfig, now: Optional[datetime] = None) -> str:
    """Create a signed session token valid for config.session_hours."""
    _require_auth_config(config)
    now = now or datetime.now(timezone.utc)
    exp = now + timedelta(hours=config.session_hours)

    header = {"alg": TOKEN_ALGORITHM, "typ": "JWT"}
    payload = {
        "sub": SESSION_SUBJECT,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }

    header_b64 = _base64url_encode(json.dumps(header, separators=(",", ":")).encode())
    payload_b64 = _base64url_encode(json.dumps(payload, separators=(",", ":")).encode())
    signature_b64 = _base64url_encode(_sign(config.session_secret, f"{header_b64}.{payload_b64}"))

    return f"{header_b64}.{payload_b64}.{signature_b64}"


def verify_session_token(
    token: str,
    config: AuthConfig,
    now: Optional[datetime] = None,
) -> Optional[SessionPayload]:
    """Verify signature and expiry; None for any malformed, forged or expired token."""
    _require_auth_config(config)
    parts = (token or "").split(".")
    if len(parts) != 3:
        return None

    header_b64, payload_b64, signature_b64 = parts
    expected_signature = _sign(config.session_secret, f"{header_b64}.{payload_b64}")
    try:
        actual_signature = _base64url_decode(signature_b64)
    except (binascii.Error, ValueError):
        return None
    if not hmac.compare_digest(expected_signature, actual_signature):
        logger.warning("Invalid session token signature")
        return None

    try:
        payload = SessionPayload(**json.loads(_base64url_decode(payload_b64)))
    except (binascii.Error, ValueError, TypeError, ValidationError) as e:
        logger.warning(f"Session token payload unreadable: {e}")
        return None

    now = now or datetime.now(timezone.utc)
    if payload.exp <= now.timestamp():
        logger.info("Session token expired")
        return None

    return payload


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================

security = HTTPBearer(auto_error=False)


def _request_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
    config: AuthConfig,
) -> Optional[str]:
    """Bearer token first, then the session cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(config.cookie_name)


async def get_current_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    config: AppConfig = Depends(get_app_config),
) -> Optional[SessionPayload]:
    """Current session, or None if the request carries no valid token."""
    token = _request_token(request, credentials, config.auth)
    if not token:
        return None
    return verify_session_token(token, config.auth)


async def require_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    config: AppConfig = Depends(get_app_config),
) -> SessionPayload:
    """Require a valid shift session."""
    token = _request_token(request, credentials, config.auth)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    session = verify_session_token(token, config.auth)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return session
