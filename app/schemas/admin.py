"""Schemas for the admin raw table browser and user management."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.core.permissions import Role


class TableInfo(BaseModel):
    """One owned table: name, description and exposed columns."""

    name: str
    description: str
    columns: list[str]
    count: int | None = None


class TablesOverview(BaseModel):
    tables: list[TableInfo]


class TableRows(BaseModel):
    """Rows of one owned table; sensitive values are masked unless revealed."""

    table: TableInfo
    rows: list[dict[str, Any]] = Field(default_factory=list)
    sensitive_fields: list[str] = Field(default_factory=list)
    revealed: bool = False


class UserListItem(BaseModel):
    """User entry for admin list (no PIN hash)."""

    id: str
    name: str
    email: str
    role: str
    email_verified: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UsersListResponse(BaseModel):
    users: list[UserListItem]


class RoleUpdateRequest(BaseModel):
    role: Role
