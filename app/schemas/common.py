"""Uniform response envelope shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ActionResponse(BaseModel, Generic[T]):
    """
    {success, data?, error?} envelope.

    warnings carries advisory failures of best-effort steps; the operation
    itself still succeeded.
    """

    success: bool = Field(default=True, description="Whether the operation succeeded.")
    data: T | None = Field(default=None, description="Operation payload.")
    error: str | None = Field(default=None, description="Error message when success is false.")
    message: str | None = Field(default=None, description="Human-readable outcome.")
    warnings: list[str] = Field(default_factory=list, description="Advisory, non-fatal problems.")


class ErrorResponse(BaseModel):
    """Body of every error response."""

    success: bool = False
    error: str
