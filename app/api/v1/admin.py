"""Admin-only browser over the owned tables, plus user role management."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.v1.deps import require_permission
from app.core.database import get_db
from app.models import Account, User, Verification
from app.models import Session as UserSession
from app.schemas.admin import (
    RoleUpdateRequest,
    TableInfo,
    TableRows,
    TablesOverview,
    UserListItem,
    UsersListResponse,
)
from app.schemas.auth import Identity
from app.schemas.common import ActionResponse
from app.schemas.connection import MASK

logger = logging.getLogger(__name__)
router = APIRouter()

AdminView = Annotated[Identity, Depends(require_permission("user:view"))]
AdminManage = Annotated[Identity, Depends(require_permission("user:manage"))]

# Fields treated as secrets anywhere in the browser.
SENSITIVE_FIELDS = ("token", "password", "access_token", "refresh_token", "id_token", "pin_hash", "value")
# Shown masked unless reveal=true; every other sensitive field never leaves the server.
REVEALABLE_FIELDS = frozenset({"token", "value"})

# table name -> (model, description, columns returned)
BROWSABLE_TABLES: dict[str, tuple[Any, str, tuple[str, ...]]] = {
    "user": (
        User,
        "Application users",
        ("id", "name", "email", "email_verified", "image", "role", "created_at", "updated_at"),
    ),
    "session": (
        UserSession,
        "Active sessions",
        ("id", "expires_at", "token", "created_at", "updated_at", "ip_address", "user_agent", "user_id"),
    ),
    "account": (
        Account,
        "Linked accounts (OAuth, credentials)",
        ("id", "account_id", "provider_id", "user_id", "scope", "created_at", "updated_at"),
    ),
    "verification": (
        Verification,
        "Verification values and PIN-session bindings",
        ("id", "identifier", "value", "expires_at", "created_at", "updated_at"),
    ),
}


def _table_info(name: str, count: int | None = None) -> TableInfo:
    _, description, columns = BROWSABLE_TABLES[name]
    return TableInfo(name=name, description=description, columns=list(columns), count=count)


def _row(obj: Any, columns: tuple[str, ...], reveal: bool) -> dict[str, Any]:
    row = {}
    for col in columns:
        value = getattr(obj, col)
        if col in REVEALABLE_FIELDS and not reveal and value is not None:
            value = MASK
        row[col] = value
    return row


@router.get("/tables", response_model=ActionResponse[TablesOverview])
def tables_overview(
    _admin: AdminView,
    db: Annotated[Session, Depends(get_db)],
) -> ActionResponse[TablesOverview]:
    tables = []
    for name, (model, _, _) in BROWSABLE_TABLES.items():
        count = db.scalar(select(func.count()).select_from(model)) or 0
        tables.append(_table_info(name, count))
    return ActionResponse(data=TablesOverview(tables=tables))


@router.get("/tables/{table_name}", response_model=ActionResponse[TableRows])
def table_rows(
    table_name: str,
    admin: AdminView,
    db: Annotated[Session, Depends(get_db)],
    reveal: Annotated[bool, Query()] = False,
) -> ActionResponse[TableRows]:
    """Rows of one owned table. Tokens and binding values are masked unless reveal=true."""
    if table_name not in BROWSABLE_TABLES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Table not found")
    model, _, columns = BROWSABLE_TABLES[table_name]
    objects = db.scalars(select(model).order_by(model.created_at)).all()
    if reveal:
        logger.info("Admin revealed sensitive values", extra={"table": table_name, "user_id": admin.user_id})
    return ActionResponse(
        data=TableRows(
            table=_table_info(table_name, len(objects)),
            rows=[_row(obj, columns, reveal) for obj in objects],
            sensitive_fields=[f for f in SENSITIVE_FIELDS if f in columns],
            revealed=reveal,
        )
    )


@router.get("/users", response_model=ActionResponse[UsersListResponse])
def list_users(
    _admin: AdminView,
    db: Annotated[Session, Depends(get_db)],
) -> ActionResponse[UsersListResponse]:
    users = db.scalars(select(User).order_by(User.created_at)).all()
    return ActionResponse(data=UsersListResponse(users=[UserListItem.model_validate(u) for u in users]))


@router.patch("/users/{user_id}/role", response_model=ActionResponse[UserListItem])
def update_user_role(
    user_id: str,
    body: RoleUpdateRequest,
    admin: AdminManage,
    db: Annotated[Session, Depends(get_db)],
) -> ActionResponse[UserListItem]:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    user.role = body.role
    db.commit()
    db.refresh(user)
    logger.info("User role changed", extra={"target_user_id": user_id, "role": body.role, "user_id": admin.user_id})
    return ActionResponse(data=UserListItem.model_validate(user), message="Role updated")


@router.delete("/users/{user_id}", response_model=ActionResponse[None])
def delete_user(
    user_id: str,
    admin: AdminManage,
    db: Annotated[Session, Depends(get_db)],
) -> ActionResponse[None]:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    db.delete(user)
    db.commit()
    logger.info("User deleted", extra={"target_user_id": user_id, "user_id": admin.user_id})
    return ActionResponse(message="User deleted")
