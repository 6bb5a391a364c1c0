"""Schemas for the security audit checklist."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

CheckStatus = Literal["PASS", "WARN", "FAIL"]
OverallStatus = Literal["SECURE", "WARNINGS", "CRITICAL"]


class SecurityCheck(BaseModel):
    name: str
    status: CheckStatus
    details: str
    recommendation: str | None = None


class SecurityAuditResult(BaseModel):
    timestamp: datetime
    checks: list[SecurityCheck]
    overall_status: OverallStatus
    critical_issues: int = Field(ge=0)
    warnings: int = Field(ge=0)


class GeneratedPassword(BaseModel):
    password: str
