"""Schemas for the machine-to-machine database creation endpoint."""

from pydantic import BaseModel, Field


class CreateDbRequest(BaseModel):
    name: str | None = Field(default=None, description='Project/database name (e.g. "todo-app").')


class CreateDbResponse(BaseModel):
    success: bool = True
    project_name: str
    connection_string: str
    db_type: str = "postgresql"
    uuid: str | None = None
    public_port: int | None = None
    warnings: list[str] = Field(default_factory=list)
