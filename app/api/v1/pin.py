"""PIN login, registration and logout. Cookie side effects only; no page rendering."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.schemas.auth import PinRequest, PinUser
from app.schemas.common import ActionResponse
from app.services.pin_auth import (
    PIN_SESSION_COOKIE,
    PIN_USER_COOKIE,
    PinAuthError,
    clear_pin_cookies,
    issue_session_token,
    register_pin,
    revoke_binding,
    set_pin_cookies,
    verify_pin,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/login", response_model=ActionResponse[PinUser])
def pin_login(
    body: PinRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[PinUser]:
    """Verify an 8-digit PIN and set the pin-session / pin-user-id cookies."""
    try:
        user = verify_pin(db, body.pin, settings)
    except PinAuthError as e:
        if e.status_code >= 500:
            logger.error("PIN login failed", extra={"reason": e.message})
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    token = issue_session_token(db, user.id, settings)
    set_pin_cookies(response, token, user.id, settings)
    logger.info("PIN login", extra={"user_id": user.id, "mode": settings.PIN_AUTH_MODE})
    return ActionResponse(data=user, message="Signed in")


@router.post("/register", response_model=ActionResponse[PinUser])
def pin_register(
    body: PinRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[PinUser]:
    """Create a user owning this PIN, then sign in exactly like login."""
    try:
        user = register_pin(db, body.pin, settings)
    except PinAuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    token = issue_session_token(db, user.id, settings)
    set_pin_cookies(response, token, user.id, settings)
    return ActionResponse(data=user, message="Account created")


@router.post("/logout", response_model=ActionResponse[None])
def pin_logout(
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[None]:
    """Clear both cookies; drop the server-side binding when one exists."""
    token = request.cookies.get(PIN_SESSION_COOKIE)
    user_id = request.cookies.get(PIN_USER_COOKIE)
    if settings.PIN_SESSION_BINDING and token and user_id:
        revoke_binding(db, user_id, token)
    clear_pin_cookies(response, settings)
    return ActionResponse(message="Signed out")
