"""Database CRUD and lifecycle actions proxied to the provider."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException

from app.api.v1.deps import SERVICE_ERRORS, get_provider_client, require_permission, service_error
from app.core.config import Settings, get_settings
from app.schemas.auth import Identity
from app.schemas.common import ActionResponse
from app.schemas.provider import (
    BackupConfigRequest,
    CreatePostgresRequest,
    CreateRedisRequest,
    ProvisioningResult,
)
from app.services.provider_client import ProviderClient
from app.services.provisioning import provision_postgres, provision_redis
from app.services.security_audit import security_summary

logger = logging.getLogger(__name__)
router = APIRouter()

Client = Annotated[ProviderClient, Depends(get_provider_client)]


def _failed(action: str, uuid: str | None, e: Exception) -> HTTPException:
    logger.error("Database action failed", extra={"action": action, "uuid": uuid, "error_type": type(e).__name__})
    return service_error(e)


@router.get("", response_model=ActionResponse[list[dict[str, Any]]])
async def list_databases(
    _identity: Annotated[Identity, Depends(require_permission("database:view"))],
    client: Client,
) -> ActionResponse[list[dict[str, Any]]]:
    try:
        return ActionResponse(data=await client.list_databases())
    except SERVICE_ERRORS as e:
        raise _failed("list", None, e) from e


@router.get("/security", response_model=ActionResponse[list[dict[str, Any]]])
async def list_databases_with_security(
    _identity: Annotated[Identity, Depends(require_permission("database:view"))],
    client: Client,
) -> ActionResponse[list[dict[str, Any]]]:
    """Databases with exposure and password-strength summary; passwords themselves are not returned."""
    try:
        databases = await client.list_databases()
    except SERVICE_ERRORS as e:
        raise _failed("list_security", None, e) from e
    data = []
    for db in databases:
        summary = security_summary(db)
        entry = {k: v for k, v in db.items() if not k.endswith("_password")}
        entry["security"] = summary.model_dump()
        data.append(entry)
    return ActionResponse(data=data)


@router.post("/postgresql", response_model=ActionResponse[ProvisioningResult])
async def create_postgres(
    identity: Annotated[Identity, Depends(require_permission("database:create"))],
    body: CreatePostgresRequest,
    client: Client,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[ProvisioningResult]:
    """Full provisioning sequence. Advisory step failures come back as warnings."""
    try:
        result = await provision_postgres(
            client,
            body,
            public_host=settings.PROVIDER_PUBLIC_HOST,
            default_environment=settings.PROVIDER_ENVIRONMENT_NAME,
            settle_seconds=settings.PROVISION_SETTLE_SEC,
        )
    except SERVICE_ERRORS as e:
        raise _failed("create_postgres", None, e) from e
    logger.info(
        "PostgreSQL provisioned",
        extra={"uuid": result.resource.get("uuid"), "user_id": identity.user_id},
    )
    return ActionResponse(data=result, message="Database created", warnings=result.steps.warnings())


@router.post("/redis", response_model=ActionResponse[ProvisioningResult])
async def create_redis(
    _identity: Annotated[Identity, Depends(require_permission("database:create"))],
    body: CreateRedisRequest,
    client: Client,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[ProvisioningResult]:
    try:
        result = await provision_redis(
            client,
            body,
            public_host=settings.PROVIDER_PUBLIC_HOST,
            default_environment=settings.PROVIDER_ENVIRONMENT_NAME,
        )
    except SERVICE_ERRORS as e:
        raise _failed("create_redis", None, e) from e
    return ActionResponse(data=result, message="Redis created", warnings=result.steps.warnings())


@router.get("/{uuid}", response_model=ActionResponse[dict[str, Any]])
async def get_database(
    _identity: Annotated[Identity, Depends(require_permission("database:view"))],
    uuid: str,
    client: Client,
) -> ActionResponse[dict[str, Any]]:
    try:
        return ActionResponse(data=await client.get_database(uuid))
    except SERVICE_ERRORS as e:
        raise _failed("get", uuid, e) from e


@router.post("/{uuid}/start", response_model=ActionResponse[Any])
async def start_database(
    _identity: Annotated[Identity, Depends(require_permission("database:start"))],
    uuid: str,
    client: Client,
) -> ActionResponse[Any]:
    try:
        return ActionResponse(data=await client.start_database(uuid), message="Database starting")
    except SERVICE_ERRORS as e:
        raise _failed("start", uuid, e) from e


@router.post("/{uuid}/stop", response_model=ActionResponse[Any])
async def stop_database(
    _identity: Annotated[Identity, Depends(require_permission("database:stop"))],
    uuid: str,
    client: Client,
) -> ActionResponse[Any]:
    try:
        return ActionResponse(data=await client.stop_database(uuid), message="Database stopping")
    except SERVICE_ERRORS as e:
        raise _failed("stop", uuid, e) from e


@router.post("/{uuid}/restart", response_model=ActionResponse[Any])
async def restart_database(
    _identity: Annotated[Identity, Depends(require_permission("database:restart"))],
    uuid: str,
    client: Client,
) -> ActionResponse[Any]:
    try:
        return ActionResponse(data=await client.restart_database(uuid), message="Database restarting")
    except SERVICE_ERRORS as e:
        raise _failed("restart", uuid, e) from e


@router.post("/{uuid}/backup", response_model=ActionResponse[Any])
async def trigger_backup(
    _identity: Annotated[Identity, Depends(require_permission("database:backup"))],
    uuid: str,
    client: Client,
) -> ActionResponse[Any]:
    try:
        return ActionResponse(data=await client.trigger_backup(uuid), message="Backup started")
    except SERVICE_ERRORS as e:
        raise _failed("backup", uuid, e) from e


@router.put("/{uuid}/backup", response_model=ActionResponse[Any])
async def configure_backup(
    _identity: Annotated[Identity, Depends(require_permission("database:backup"))],
    uuid: str,
    body: BackupConfigRequest,
    client: Client,
) -> ActionResponse[Any]:
    """Schedule backups (cron frequency, retention in days, optional S3 target)."""
    try:
        data = await client.configure_backup(
            uuid,
            enabled=body.enabled,
            frequency=body.frequency or "0 3 * * *",
            retention=body.retention or 7,
            s3_bucket=body.s3_bucket,
            s3_region=body.s3_region,
            s3_key=body.s3_access_key,
            s3_secret=body.s3_secret_key,
        )
    except SERVICE_ERRORS as e:
        raise _failed("configure_backup", uuid, e) from e
    return ActionResponse(data=data, message="Backup schedule updated")


@router.delete("/{uuid}", response_model=ActionResponse[Any])
async def delete_database(
    identity: Annotated[Identity, Depends(require_permission("database:delete"))],
    uuid: str,
    client: Client,
) -> ActionResponse[Any]:
    try:
        data = await client.delete_database(uuid)
    except SERVICE_ERRORS as e:
        raise _failed("delete", uuid, e) from e
    logger.info("Database deleted", extra={"uuid": uuid, "user_id": identity.user_id})
    return ActionResponse(data=data, message="Database deleted")


@router.get("/{uuid}/logs", response_model=ActionResponse[Any])
async def get_database_logs(
    _identity: Annotated[Identity, Depends(require_permission("database:logs"))],
    uuid: str,
    client: Client,
) -> ActionResponse[Any]:
    try:
        logs = await client.get_database_logs(uuid)
    except SERVICE_ERRORS as e:
        raise _failed("logs", uuid, e) from e
    return ActionResponse(data={"logs": logs or ""})
