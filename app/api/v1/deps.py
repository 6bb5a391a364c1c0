"""Shared dependencies: authentication gate, current identity, permission checks, service errors."""

from typing import Annotated
from urllib.parse import quote

import httpx
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.permissions import can_perform
from app.schemas.auth import Identity
from app.services.identity import default_providers, resolve_identity
from app.services.provider_client import ProviderApiError, ProviderClient, ProviderNotConfiguredError
from app.services.provisioning import ProvisioningError
from app.services.target_db import TargetDatabaseError

# Paths reachable without an identity.
PUBLIC_PATH_PREFIXES = (
    "/pin-login",
    "/pin-register",
    "/api/v1/auth",
    "/api/v1/agent",
    "/api/v1/pin",
    "/api/v1/health",
    "/docs",
    "/redoc",
    "/openapi.json",
)


def is_public_path(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in PUBLIC_PATH_PREFIXES)


def _identity(request: Request, db: Session, settings: Settings) -> Identity | None:
    return resolve_identity(request, db, default_providers(settings))


def auth_gate(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> None:
    """
    App-wide gate: public prefixes pass, everything else needs a session or PIN identity.

    Unauthenticated requests are redirected to LOGIN_PATH with a callbackUrl.
    """
    path = request.url.path
    if is_public_path(path):
        return
    identity = _identity(request, db, settings)
    if identity is None:
        location = f"{settings.LOGIN_PATH}?callbackUrl={quote(path, safe='/')}"
        raise HTTPException(
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            detail="Authentication required",
            headers={"Location": location},
        )
    request.state.identity = identity


def get_current_identity(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Identity | None:
    """Identity stored by the gate, or resolved now on public paths."""
    identity = getattr(request.state, "identity", None)
    if identity is None:
        identity = _identity(request, db, settings)
    return identity


def require_identity(
    identity: Annotated[Identity | None, Depends(get_current_identity)],
) -> Identity:
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return identity


def require_permission(action: str):
    """Dependency factory: 401 without an identity, 403 when the role may not perform action."""

    def checker(identity: Annotated[Identity, Depends(require_identity)]) -> Identity:
        if not can_perform(identity.role, action):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permission denied")
        return identity

    return checker


def get_provider_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ProviderClient:
    """Provider client built from settings; 503 when no token is configured."""
    try:
        return ProviderClient.from_settings(settings)
    except ProviderNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=e.message) from e


# Exceptions route handlers translate with service_error().
SERVICE_ERRORS = (ProviderApiError, ProvisioningError, TargetDatabaseError, httpx.HTTPError)


def service_error(e: Exception) -> HTTPException:
    """HTTP status callers see for a service exception."""
    if isinstance(e, (ProviderApiError, ProvisioningError)):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=e.message)
    if isinstance(e, TargetDatabaseError):
        return HTTPException(status_code=e.status_code, detail=e.message)
    if isinstance(e, httpx.HTTPError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Provider unreachable")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")
