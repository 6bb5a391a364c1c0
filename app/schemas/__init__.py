"""Pydantic request/response schemas."""

from app.schemas.auth import Identity, PinRequest, SignInRequest
from app.schemas.common import ActionResponse, ErrorResponse
from app.schemas.connection import ConnectionDescriptor
from app.schemas.health import HealthResponse
from app.schemas.provider import (
    ConnectionInfo,
    ProvisioningResult,
    ProvisioningSteps,
    StepOutcome,
)
from app.schemas.security import SecurityAuditResult, SecurityCheck
from app.schemas.sql import ImportResult, QueryResult

__all__ = [
    "ActionResponse",
    "ConnectionDescriptor",
    "ConnectionInfo",
    "ErrorResponse",
    "HealthResponse",
    "Identity",
    "ImportResult",
    "PinRequest",
    "ProvisioningResult",
    "ProvisioningSteps",
    "QueryResult",
    "SecurityAuditResult",
    "SecurityCheck",
    "SignInRequest",
    "StepOutcome",
]
