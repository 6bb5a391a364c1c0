"""
PIN login and registration.

registry mode looks the user up by the SHA-256 of the PIN; static mode checks a
single configured hash and resolves a fixed admin identity. Success issues a
random token in the pin-session cookie plus the user id in pin-user-id.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING

from fastapi import Response
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.core.security import generate_session_token, hash_pin, hash_token, is_valid_pin
from app.models import User, Verification
from app.models.base import new_id, utcnow
from app.schemas.auth import PinUser

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

PIN_SESSION_COOKIE = "pin-session"
PIN_USER_COOKIE = "pin-user-id"

STATIC_ADMIN_ID = "admin"
STATIC_ADMIN_NAME = "Administrator"

BINDING_PREFIX = "pin-session:"
SECONDS_PER_DAY = 86400


class PinAuthError(Exception):
    """Base for PIN failures; status_code is what the route answers with."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class PinValidationError(PinAuthError):
    status_code = 400


class PinRejectedError(PinAuthError):
    status_code = 401


class PinRegistrationDisabledError(PinAuthError):
    status_code = 403


class PinConflictError(PinAuthError):
    status_code = 409


class PinNotConfiguredError(PinAuthError):
    status_code = 500


def validate_pin(pin: object) -> str:
    """Runs before any hashing or DB access."""
    if not is_valid_pin(pin):
        raise PinValidationError("PIN must be exactly 8 digits")
    return pin  # type: ignore[return-value]


def static_admin() -> PinUser:
    return PinUser(id=STATIC_ADMIN_ID, name=STATIC_ADMIN_NAME, email=None, role="admin")


def verify_pin(db: Session, pin: object, settings: Settings) -> PinUser:
    """Resolve the user owning this PIN. Raises PinAuthError subclasses."""
    pin = validate_pin(pin)
    pin_hash = hash_pin(pin)

    if settings.PIN_AUTH_MODE == "static":
        if settings.ADMIN_PIN_HASH is None:
            logger.error("Static PIN mode without ADMIN_PIN_HASH")
            raise PinNotConfiguredError("PIN authentication configuration missing")
        if not secrets.compare_digest(pin_hash, settings.ADMIN_PIN_HASH.get_secret_value()):
            raise PinRejectedError("Invalid PIN")
        return static_admin()

    user = db.scalars(select(User).where(User.pin_hash == pin_hash).limit(1)).first()
    if user is None:
        raise PinRejectedError("Invalid PIN")
    return PinUser.model_validate(user)


def register_pin(db: Session, pin: object, settings: Settings) -> PinUser:
    """Create a placeholder user owning this PIN (registry mode only)."""
    if settings.PIN_AUTH_MODE != "registry":
        raise PinRegistrationDisabledError("PIN registration is disabled")
    pin = validate_pin(pin)
    pin_hash = hash_pin(pin)

    existing = db.scalars(select(User.id).where(User.pin_hash == pin_hash).limit(1)).first()
    if existing is not None:
        raise PinConflictError("This PIN is already in use")

    user_id = new_id()
    user = User(
        id=user_id,
        name=f"User-{user_id[:8]}",
        email=f"{user_id}@pin.local",
        email_verified=False,
        role="user",
        pin_hash=pin_hash,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("PIN user registered", extra={"user_id": user.id})
    return PinUser.model_validate(user)


def binding_identifier(user_id: str) -> str:
    return f"{BINDING_PREFIX}{user_id}"


def issue_session_token(db: Session, user_id: str, settings: Settings) -> str:
    """New opaque token; persisted (hashed) only when PIN_SESSION_BINDING is on."""
    token = generate_session_token()
    if settings.PIN_SESSION_BINDING:
        db.add(
            Verification(
                identifier=binding_identifier(user_id),
                value=hash_token(token),
                expires_at=utcnow() + timedelta(days=settings.PIN_SESSION_DAYS),
            )
        )
        db.commit()
    return token


def binding_is_valid(db: Session, user_id: str, token: str) -> bool:
    found = db.scalars(
        select(Verification.id)
        .where(
            Verification.identifier == binding_identifier(user_id),
            Verification.value == hash_token(token),
            Verification.expires_at > utcnow(),
        )
        .limit(1)
    ).first()
    return found is not None


def revoke_binding(db: Session, user_id: str, token: str) -> int:
    result = db.execute(
        delete(Verification).where(
            Verification.identifier == binding_identifier(user_id),
            Verification.value == hash_token(token),
        )
    )
    db.commit()
    return result.rowcount or 0


def set_pin_cookies(response: Response, token: str, user_id: str, settings: Settings) -> None:
    max_age = settings.PIN_SESSION_DAYS * SECONDS_PER_DAY
    for name, value in ((PIN_SESSION_COOKIE, token), (PIN_USER_COOKIE, user_id)):
        response.set_cookie(
            key=name,
            value=value,
            max_age=max_age,
            expires=max_age,
            path="/",
            httponly=True,
            secure=bool(settings.COOKIE_SECURE),
            samesite="lax",
        )


def clear_pin_cookies(response: Response, settings: Settings) -> None:
    for name in (PIN_SESSION_COOKIE, PIN_USER_COOKIE):
        response.delete_cookie(
            key=name,
            path="/",
            httponly=True,
            secure=bool(settings.COOKIE_SECURE),
            samesite="lax",
        )
