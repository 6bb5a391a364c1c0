"""ORM model for application users (PIN login, sessions and RBAC)."""

from sqlalchemy import Boolean, Column, String
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, new_id


class User(TimestampMixin, Base):
    """
    Dashboard user.

    role: 'admin', 'user' or 'viewer'
    pin_hash: SHA-256 hex of the 8-digit PIN; looked up by equality on login.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    image = Column(String(2048), nullable=True)
    role = Column(String(32), nullable=False, default="user")
    pin_hash = Column(String(64), nullable=True, index=True)

    sessions = relationship("Session", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
    accounts = relationship("Account", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)
