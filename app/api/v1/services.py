"""Provider services: MinIO storage and single-shot docker image deployments."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from app.api.v1.deps import SERVICE_ERRORS, get_provider_client, require_permission, service_error
from app.core.config import Settings, get_settings
from app.schemas.auth import Identity
from app.schemas.common import ActionResponse
from app.schemas.provider import CreateMinioRequest, DeployedService, DockerServiceRequest
from app.services.provider_client import ProviderClient
from app.services.provisioning import (
    IMAGE_PROXY_PORT,
    LOG_VIEWER_PORT,
    create_minio_service,
    deploy_docker_service,
    image_proxy_preset,
    log_viewer_preset,
)

logger = logging.getLogger(__name__)
router = APIRouter()

Client = Annotated[ProviderClient, Depends(get_provider_client)]


@router.get("", response_model=ActionResponse[list[dict[str, Any]]])
async def list_services(
    _identity: Annotated[Identity, Depends(require_permission("service:view"))],
    client: Client,
) -> ActionResponse[list[dict[str, Any]]]:
    try:
        return ActionResponse(data=await client.list_services())
    except SERVICE_ERRORS as e:
        logger.error("Listing services failed", extra={"error_type": type(e).__name__})
        raise service_error(e) from e


@router.post("/minio", response_model=ActionResponse[Any])
async def create_minio(
    _identity: Annotated[Identity, Depends(require_permission("service:create"))],
    body: CreateMinioRequest,
    client: Client,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[Any]:
    try:
        data = await create_minio_service(client, body, default_environment=settings.PROVIDER_ENVIRONMENT_NAME)
    except SERVICE_ERRORS as e:
        logger.error("MinIO creation failed", extra={"service_name": body.name})
        raise service_error(e) from e
    return ActionResponse(data=data, message="MinIO service created")


@router.delete("/{uuid}", response_model=ActionResponse[Any])
async def delete_service(
    identity: Annotated[Identity, Depends(require_permission("service:delete"))],
    uuid: str,
    client: Client,
) -> ActionResponse[Any]:
    try:
        data = await client.delete_service(uuid)
    except SERVICE_ERRORS as e:
        logger.error("Service deletion failed", extra={"uuid": uuid})
        raise service_error(e) from e
    logger.info("Service deleted", extra={"uuid": uuid, "user_id": identity.user_id})
    return ActionResponse(data=data, message="Service deleted")


async def _deploy(
    client: ProviderClient,
    req: DockerServiceRequest,
    settings: Settings,
    port: int | None = None,
) -> ActionResponse[DeployedService]:
    try:
        data = await deploy_docker_service(client, req, default_environment=settings.PROVIDER_ENVIRONMENT_NAME)
    except SERVICE_ERRORS as e:
        logger.error("Docker deployment failed", extra={"service_name": req.name, "image": req.image})
        raise service_error(e) from e
    url = f"http://{settings.PROVIDER_PUBLIC_HOST}:{port}" if port else None
    message = f"{req.name} deployed" + (f", reachable on port {port}" if port else "")
    return ActionResponse(data=DeployedService(resource=data, url=url), message=message)


@router.post("/docker", response_model=ActionResponse[DeployedService])
async def deploy_docker(
    _identity: Annotated[Identity, Depends(require_permission("service:create"))],
    body: DockerServiceRequest,
    client: Client,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[DeployedService]:
    """Deploy an arbitrary image with port, volume and env mappings."""
    port = body.ports[0].host if body.ports else None
    return await _deploy(client, body, settings, port)


@router.post("/presets/log-viewer", response_model=ActionResponse[DeployedService])
async def deploy_log_viewer(
    _identity: Annotated[Identity, Depends(require_permission("service:create"))],
    client: Client,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[DeployedService]:
    return await _deploy(client, log_viewer_preset(), settings, LOG_VIEWER_PORT)


@router.post("/presets/image-proxy", response_model=ActionResponse[DeployedService])
async def deploy_image_proxy(
    _identity: Annotated[Identity, Depends(require_permission("service:create"))],
    client: Client,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ActionResponse[DeployedService]:
    return await _deploy(client, image_proxy_preset(), settings, IMAGE_PROXY_PORT)
