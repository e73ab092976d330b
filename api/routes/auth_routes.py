"""
Authentication API Routes

Endpoints:
- POST /api/auth/login - Exchange the shift password for a session
- POST /api/auth/logout - Clear the session cookie
- GET /api/auth/session - Current session status
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from api.auth import (
    LoginRequest,
    SessionPayload,
    check_password,
    create_session_token,
    get_current_session,
    verify_session_token,
)
from api.dependencies import get_app_config
from core.config import AppConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    config: AppConfig = Depends(get_app_config),
):
    """
    Check the shift password and start a session.

    The token is set as an HttpOnly cookie and returned for bearer use.
    Session lifetime is SESSION_HOURS (default 12).
    """
    if not check_password(config.auth, request.password):
        logger.warning("Failed shift login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_session_token(config.auth)
    session = verify_session_token(token, config.auth)
    max_age = config.auth.session_hours * 3600

    response.set_cookie(
        key=config.auth.cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
    )
    logger.info(f"Shift session started, expires {session.expires_at}")

    return {
        "success": True,
        "token": token,
        "tokenType": "bearer",
        "expiresIn": max_age,
        "expiresAt": session.expires_at,
    }


@router.post("/logout")
async def logout(response: Response, config: AppConfig = Depends(get_app_config)):
    """Clear the session cookie. Bearer tokens stay valid until they expire."""
    response.delete_cookie(config.auth.cookie_name)
    return {"success": True}


@router.get("/session")
async def session_status(session: Optional[SessionPayload] = Depends(get_current_session)):
    """Whether the request carries a valid session, and when it expires."""
    if session is None:
        return {"success": True, "authenticated": False}
    return {"success": True, "authenticated": True, "expiresAt": session.expires_at}
