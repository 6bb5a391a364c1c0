"""ORM models for the conventional session system: sessions, linked accounts, verification tokens."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, new_id


class Session(TimestampMixin, Base):
    """Server-side session; the token is carried by the session cookie."""

    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=new_id)
    token = Column(String(255), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)

    user = relationship("User", back_populates="sessions")


class Account(TimestampMixin, Base):
    """
    Credential or OAuth account linked to a user.

    For provider_id='credential', password holds a bcrypt hash.
    """

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(255), nullable=False)
    provider_id = Column(String(64), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    id_token = Column(Text, nullable=True)
    access_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    refresh_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    scope = Column(Text, nullable=True)
    password = Column(String(255), nullable=True)

    user = relationship("User", back_populates="accounts")


class Verification(TimestampMixin, Base):
    """Short-lived verification values (also PIN-session bindings)."""

    __tablename__ = "verifications"

    id = Column(String(36), primary_key=True, default=new_id)
    identifier = Column(String(255), nullable=False, index=True)
    value = Column(String(255), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
