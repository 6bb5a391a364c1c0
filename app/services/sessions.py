"""Conventional sessions: email + password sign-in backed by the sessions table."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from fastapi import Response
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session as DbSession

from app.core.security import generate_session_token, verify_password
from app.models import Account, Session, User
from app.models.base import utcnow

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

CREDENTIAL_PROVIDER = "credential"
SECONDS_PER_DAY = 86400


def authenticate(db: DbSession, email: str, password: str) -> User | None:
    """User whose credential account matches, or None. Same answer for unknown email and bad password."""
    row = db.execute(
        select(User, Account.password)
        .join(Account, Account.user_id == User.id)
        .where(
            func.lower(User.email) == email.strip().lower(),
            Account.provider_id == CREDENTIAL_PROVIDER,
        )
        .limit(1)
    ).first()
    if row is None:
        return None
    user, password_hash = row
    if not password_hash or not verify_password(password, password_hash):
        return None
    return user


def create_session(
    db: DbSession,
    user: User,
    settings: Settings,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Session:
    session = Session(
        token=generate_session_token(),
        user_id=user.id,
        expires_at=utcnow() + timedelta(days=settings.SESSION_EXPIRE_DAYS),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("Session created", extra={"user_id": user.id})
    return session


def delete_session(db: DbSession, token: str) -> int:
    result = db.execute(delete(Session).where(Session.token == token))
    db.commit()
    return result.rowcount or 0


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    max_age = settings.SESSION_EXPIRE_DAYS * SECONDS_PER_DAY
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=max_age,
        expires=max_age,
        path="/",
        httponly=True,
        secure=bool(settings.COOKIE_SECURE),
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=bool(settings.COOKIE_SECURE),
        samesite="lax",
    )
