"""Email + password sign-in for the conventional session system, and identity lookup."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from app.api.v1.deps import require_identity
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.permissions import ROLE_DESCRIPTIONS, ROLE_LABELS, permissions_for
from app.schemas.auth import Identity, IdentityResponse, SignInRequest
from app.schemas.common import ActionResponse
from app.services.sessions import (
    authenticate,
    clear_session_cookie,
    create_session,
    delete_session,
    set_session_cookie,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/sign-in", response_model=ActionResponse[IdentityResponse])
def sign_in(
    body: SignInRequest,
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[IdentityResponse]:
    """Verify email and password, create a session row and set the session cookie."""
    user = authenticate(db, body.email, body.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )
    session = create_session(
        db,
        user,
        settings,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    set_session_cookie(response, session.token, settings)
    identity = Identity(user_id=user.id, name=user.name, role=user.role, source="session")
    return ActionResponse(
        data=IdentityResponse(
            identity=identity,
            permissions=permissions_for(user.role),
            role_label=ROLE_LABELS.get(user.role),
            role_description=ROLE_DESCRIPTIONS.get(user.role),
        )
    )


@router.post("/sign-out", response_model=ActionResponse[None])
def sign_out(
    request: Request,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[None]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        delete_session(db, token)
    clear_session_cookie(response, settings)
    return ActionResponse(message="Signed out")


@router.get("/me", response_model=ActionResponse[IdentityResponse])
def me(
    identity: Annotated[Identity, Depends(require_identity)],
) -> ActionResponse[IdentityResponse]:
    """Current identity (session or PIN) and the actions its role allows."""
    return ActionResponse(
        data=IdentityResponse(
            identity=identity,
            permissions=permissions_for(identity.role),
            role_label=ROLE_LABELS.get(identity.role or ""),
            role_description=ROLE_DESCRIPTIONS.get(identity.role or ""),
        )
    )
