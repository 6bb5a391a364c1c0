"""Request/response schemas for PIN login, sessions and identity."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN


class PinRequest(BaseModel):
    """8-digit PIN; format is checked by the PIN service so malformed input gets a 400."""

    pin: str | None = Field(default=None, description="Exactly 8 digits")


class SignInRequest(BaseModel):
    """Email + password credentials for the conventional session system."""

    email: str = Field(..., min_length=3, max_length=255, description="Account email")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LEN,
        max_length=PASSWORD_MAX_LEN,
        description="Password",
    )


class Identity(BaseModel):
    """Authenticated principal resolved from a session cookie or PIN cookies."""

    user_id: str | None = None
    name: str | None = None
    role: str | None = None
    source: Literal["session", "pin"]


class PinUser(BaseModel):
    """User returned after PIN login or registration."""

    id: str
    name: str
    email: str | None = None
    role: str | None = None

    model_config = ConfigDict(from_attributes=True)


class IdentityResponse(BaseModel):
    """Current identity plus the actions its role permits."""

    identity: Identity
    permissions: list[str] = Field(default_factory=list)
    role_label: str | None = None
    role_description: str | None = None
