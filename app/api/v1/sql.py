"""SQL console, data browser, dump/restore and maintenance scripts for target databases."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.api.v1.deps import SERVICE_ERRORS, require_permission, service_error
from app.core.config import Settings, get_settings
from app.schemas.auth import Identity
from app.schemas.common import ActionResponse
from app.schemas.connection import ConnectionDescriptor
from app.schemas.sql import (
    ColumnInfo,
    ConnectionRequest,
    ImportResult,
    QueryRequest,
    QueryResult,
    TableData,
    TableDataRequest,
    WalLevelStatus,
)
from app.services import sql_dump, target_db
from app.services.sql_templates import AUTH_INIT_SCRIPT

logger = logging.getLogger(__name__)
router = APIRouter()

Reader = Annotated[Identity, Depends(require_permission("database:view"))]
Writer = Annotated[Identity, Depends(require_permission("database:create"))]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def _target(conn: ConnectionDescriptor, settings: Settings) -> ConnectionDescriptor:
    return conn.with_default_host(settings.PROVIDER_PUBLIC_HOST)


def _failed(action: str, conn: ConnectionDescriptor, e: Exception) -> HTTPException:
    logger.warning(
        "SQL action failed",
        extra={"action": action, "host": conn.host, "database": conn.database, "error_type": type(e).__name__},
    )
    return service_error(e)


@router.post("/query", response_model=ActionResponse[QueryResult])
def run_query(body: QueryRequest, _identity: Writer, settings: SettingsDep) -> ActionResponse[QueryResult]:
    """Execute SQL text as-is; the last statement's rows come back."""
    conn = _target(body.connection, settings)
    try:
        result = target_db.execute_query(conn, body.sql, settings.TARGET_DB_CONNECT_TIMEOUT_SEC)
    except SERVICE_ERRORS as e:
        raise _failed("query", conn, e) from e
    return ActionResponse(data=result)


@router.post("/tables", response_model=ActionResponse[list[str]])
def list_tables(body: ConnectionRequest, _identity: Reader, settings: SettingsDep) -> ActionResponse[list[str]]:
    conn = _target(body.connection, settings)
    try:
        return ActionResponse(data=target_db.list_tables(conn, settings.TARGET_DB_CONNECT_TIMEOUT_SEC))
    except SERVICE_ERRORS as e:
        raise _failed("tables", conn, e) from e


@router.post("/tables/{table_name}/columns", response_model=ActionResponse[list[ColumnInfo]])
def table_columns(
    table_name: str,
    body: ConnectionRequest,
    _identity: Reader,
    settings: SettingsDep,
) -> ActionResponse[list[ColumnInfo]]:
    conn = _target(body.connection, settings)
    try:
        columns = target_db.get_table_columns(conn, table_name, settings.TARGET_DB_CONNECT_TIMEOUT_SEC)
    except SERVICE_ERRORS as e:
        raise _failed("columns", conn, e) from e
    return ActionResponse(data=columns)


@router.post("/tables/{table_name}/data", response_model=ActionResponse[TableData])
def table_data(
    table_name: str,
    body: TableDataRequest,
    _identity: Reader,
    settings: SettingsDep,
) -> ActionResponse[TableData]:
    """One page of rows (limit/offset) with the total row count."""
    conn = _target(body.connection, settings)
    try:
        data = target_db.get_table_data(
            conn,
            table_name,
            limit=body.limit,
            offset=body.offset,
            connect_timeout=settings.TARGET_DB_CONNECT_TIMEOUT_SEC,
        )
    except SERVICE_ERRORS as e:
        raise _failed("data", conn, e) from e
    return ActionResponse(data=data)


@router.post("/tables/{table_name}/count", response_model=ActionResponse[int])
def table_count(
    table_name: str,
    body: ConnectionRequest,
    _identity: Reader,
    settings: SettingsDep,
) -> ActionResponse[int]:
    conn = _target(body.connection, settings)
    try:
        total = target_db.count_table_rows(conn, table_name, settings.TARGET_DB_CONNECT_TIMEOUT_SEC)
    except SERVICE_ERRORS as e:
        raise _failed("count", conn, e) from e
    return ActionResponse(data=total)


@router.post("/export")
def export_sql(body: ConnectionRequest, _identity: Reader, settings: SettingsDep) -> Response:
    """Plain-SQL dump as an application/sql attachment named <database>_backup.sql."""
    conn = _target(body.connection, settings)
    try:
        dump = sql_dump.export_database(conn, settings.TARGET_DB_CONNECT_TIMEOUT_SEC)
    except SERVICE_ERRORS as e:
        raise _failed("export", conn, e) from e
    return Response(
        content=dump,
        media_type="application/sql",
        headers={"Content-Disposition": f'attachment; filename="{conn.database}_backup.sql"'},
    )


@router.post("/import", response_model=ActionResponse[ImportResult])
def import_sql(
    _identity: Writer,
    settings: SettingsDep,
    file: Annotated[UploadFile | None, File()] = None,
    connection_info: Annotated[str | None, Form()] = None,
) -> Any:
    """
    Restore a dump statement by statement (multipart: file + connection_info JSON).

    Not transactional: statements that succeed stay applied even when others fail.
    """
    if file is None or not connection_info:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing file or connection info")
    try:
        conn = _target(ConnectionDescriptor.model_validate_json(connection_info), settings)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid connection info") from e

    sql_text = file.file.read().decode("utf-8", errors="replace")
    try:
        result = sql_dump.import_sql(conn, sql_text, settings.TARGET_DB_CONNECT_TIMEOUT_SEC)
    except SERVICE_ERRORS as e:
        raise _failed("import", conn, e) from e

    if sql_dump.all_failed(result):
        body = ActionResponse(success=False, data=result, error=sql_dump.import_failure_message(result))
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump(mode="json"))
    warnings = [f"{result.statements_failed} errors skipped"] if result.statements_failed else []
    return ActionResponse(data=result, message=sql_dump.import_summary(result), warnings=warnings)


@router.post("/init-auth", response_model=ActionResponse[QueryResult])
def init_auth_tables(body: ConnectionRequest, _identity: Writer, settings: SettingsDep) -> ActionResponse[QueryResult]:
    """Create users/sessions tables, indexes and the updated_at trigger on the target."""
    conn = _target(body.connection, settings)
    try:
        result = target_db.execute_query(conn, AUTH_INIT_SCRIPT, settings.TARGET_DB_CONNECT_TIMEOUT_SEC)
    except SERVICE_ERRORS as e:
        raise _failed("init_auth", conn, e) from e
    return ActionResponse(data=result, message="Auth tables initialized")


@router.post("/wal-level", response_model=ActionResponse[WalLevelStatus])
def wal_level(body: ConnectionRequest, _identity: Reader, settings: SettingsDep) -> ActionResponse[WalLevelStatus]:
    conn = _target(body.connection, settings)
    try:
        return ActionResponse(data=target_db.check_wal_level(conn, settings.TARGET_DB_CONNECT_TIMEOUT_SEC))
    except SERVICE_ERRORS as e:
        raise _failed("wal_level", conn, e) from e


@router.post("/wal-level/logical", response_model=ActionResponse[None])
def enable_logical_wal(body: ConnectionRequest, _identity: Writer, settings: SettingsDep) -> ActionResponse[None]:
    """ALTER SYSTEM SET wal_level = 'logical'; takes effect after a database restart."""
    conn = _target(body.connection, settings)
    try:
        note = target_db.enable_logical_wal(conn, settings.TARGET_DB_CONNECT_TIMEOUT_SEC)
    except SERVICE_ERRORS as e:
        raise _failed("wal_logical", conn, e) from e
    return ActionResponse(message=note)
