"""SQLAlchemy ORM models."""

from app.models.auth import Account, Session, Verification
from app.models.base import Base
from app.models.user import User

__all__ = ["Account", "Base", "Session", "User", "Verification"]
