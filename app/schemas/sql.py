"""Schemas for the SQL console, data browser and dump/restore."""

from typing import Any

from pydantic import BaseModel, Field

from app.schemas.connection import ConnectionDescriptor

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 1000


class FieldInfo(BaseModel):
    name: str
    type_code: int | None = None


class QueryResult(BaseModel):
    rows: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    fields: list[FieldInfo] = Field(default_factory=list)
    command: str = ""


class QueryRequest(BaseModel):
    connection: ConnectionDescriptor
    sql: str = Field(..., min_length=1, description="Statement(s) to execute.")


class ConnectionRequest(BaseModel):
    connection: ConnectionDescriptor


class TableDataRequest(BaseModel):
    connection: ConnectionDescriptor
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)


class ColumnInfo(BaseModel):
    name: str
    type: str
    nullable: bool


class TableData(BaseModel):
    rows: list[dict[str, Any]]
    total_count: int
    columns: list[ColumnInfo]


class ImportResult(BaseModel):
    """Counts from a best-effort, non-transactional import."""

    statements_total: int = 0
    statements_succeeded: int = 0
    statements_failed: int = 0
    sample_errors: list[str] = Field(default_factory=list)


class WalLevelStatus(BaseModel):
    wal_level: str
    is_realtime_ready: bool
