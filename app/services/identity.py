"""
Identity resolution behind one interface.

The gate asks each provider in turn; the first identity wins.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession

from app.models import Session, User
from app.models.base import utcnow
from app.schemas.auth import Identity
from app.services.pin_auth import (
    PIN_SESSION_COOKIE,
    PIN_USER_COOKIE,
    STATIC_ADMIN_ID,
    STATIC_ADMIN_NAME,
    binding_is_valid,
)

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


class IdentityProvider(ABC):
    @abstractmethod
    def resolve_identity(self, request: Request, db: DbSession) -> Identity | None:
        """Identity carried by this request, or None."""


class FullSessionProvider(IdentityProvider):
    """Conventional session: the cookie token must match an unexpired sessions row."""

    def __init__(self, cookie_name: str) -> None:
        self.cookie_name = cookie_name

    def resolve_identity(self, request: Request, db: DbSession) -> Identity | None:
        token = request.cookies.get(self.cookie_name)
        if not token:
            return None
        user = db.scalars(
            select(User)
            .join(Session, Session.user_id == User.id)
            .where(Session.token == token, Session.expires_at > utcnow())
            .limit(1)
        ).first()
        if user is None:
            return None
        return Identity(user_id=user.id, name=user.name, role=user.role, source="session")


class PinCookieProvider(IdentityProvider):
    """
    PIN cookie pair.

    Without PIN_SESSION_BINDING the presence of pin-session is enough and the
    identity comes from pin-user-id. With it, the token must match a stored,
    unexpired binding for that user.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def resolve_identity(self, request: Request, db: DbSession) -> Identity | None:
        token = request.cookies.get(PIN_SESSION_COOKIE)
        if not token:
            return None
        user_id = request.cookies.get(PIN_USER_COOKIE)

        if self.settings.PIN_SESSION_BINDING:
            if not user_id or not binding_is_valid(db, user_id, token):
                logger.info("PIN cookie without a valid binding", extra={"user_id": user_id})
                return None

        if user_id == STATIC_ADMIN_ID and self.settings.PIN_AUTH_MODE == "static":
            return Identity(user_id=STATIC_ADMIN_ID, name=STATIC_ADMIN_NAME, role="admin", source="pin")

        user = db.get(User, user_id) if user_id else None
        if user is None:
            # Authenticated by cookie presence, but no role to authorize with.
            return Identity(user_id=user_id, name=None, role=None, source="pin")
        return Identity(user_id=user.id, name=user.name, role=user.role, source="pin")


def default_providers(settings: Settings) -> list[IdentityProvider]:
    return [FullSessionProvider(settings.SESSION_COOKIE_NAME), PinCookieProvider(settings)]


def resolve_identity(
    request: Request,
    db: DbSession,
    providers: list[IdentityProvider],
) -> Identity | None:
    for provider in providers:
        identity = provider.resolve_identity(request, db)
        if identity is not None:
            return identity
    return None
