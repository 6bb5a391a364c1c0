"""Security audit of a target database, password generator and RLS setup script."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.v1.deps import SERVICE_ERRORS, require_identity, require_permission, service_error
from app.core.config import Settings, get_settings
from app.core.security import (
    PASSWORD_MAX_GENERATED_LEN,
    PASSWORD_MIN_GENERATED_LEN,
    generate_secure_password,
)
from app.schemas.auth import Identity
from app.schemas.common import ActionResponse
from app.schemas.security import GeneratedPassword, SecurityAuditResult
from app.schemas.sql import ConnectionRequest
from app.services.security_audit import run_security_audit
from app.services.sql_templates import RLS_SETUP_SCRIPT

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/audit", response_model=ActionResponse[SecurityAuditResult])
def audit(
    body: ConnectionRequest,
    _identity: Annotated[Identity, Depends(require_permission("database:view"))],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[SecurityAuditResult]:
    """
    Run every check against the target and aggregate to SECURE / WARNINGS / CRITICAL.

    Individual check failures degrade to WARN; only an unreachable database fails the call.
    """
    conn = body.connection.with_default_host(settings.PROVIDER_PUBLIC_HOST)
    try:
        result = run_security_audit(conn)
    except SERVICE_ERRORS as e:
        logger.warning("Security audit could not connect", extra={"host": conn.host, "database": conn.database})
        raise service_error(e) from e
    return ActionResponse(data=result)


@router.get("/password", response_model=ActionResponse[GeneratedPassword])
def generate_password(
    _identity: Annotated[Identity, Depends(require_identity)],
    length: Annotated[int, Query()] = 32,
) -> ActionResponse[GeneratedPassword]:
    if not PASSWORD_MIN_GENERATED_LEN <= length <= PASSWORD_MAX_GENERATED_LEN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"length must be between {PASSWORD_MIN_GENERATED_LEN} and {PASSWORD_MAX_GENERATED_LEN}",
        )
    return ActionResponse(data=GeneratedPassword(password=generate_secure_password(length)))


@router.get("/rls-script", response_model=ActionResponse[dict[str, str]])
def rls_script(
    _identity: Annotated[Identity, Depends(require_identity)],
) -> ActionResponse[dict[str, str]]:
    """SQL enabling RLS with per-user policies on users and sessions."""
    return ActionResponse(data={"script": RLS_SETUP_SCRIPT})
