"""Provider-wide views: projects, servers, connectivity and an inventory summary."""

import asyncio
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends

from app.api.v1.deps import SERVICE_ERRORS, get_provider_client, require_permission, service_error
from app.schemas.auth import Identity
from app.schemas.common import ActionResponse
from app.schemas.provider import InfrastructureSummary
from app.services.provider_client import ProviderClient

logger = logging.getLogger(__name__)
router = APIRouter()

Client = Annotated[ProviderClient, Depends(get_provider_client)]
Viewer = Annotated[Identity, Depends(require_permission("service:view"))]


@router.get("/projects", response_model=ActionResponse[list[dict[str, Any]]])
async def list_projects(_identity: Viewer, client: Client) -> ActionResponse[list[dict[str, Any]]]:
    try:
        return ActionResponse(data=await client.get_projects())
    except SERVICE_ERRORS as e:
        logger.error("Listing projects failed", extra={"error_type": type(e).__name__})
        raise service_error(e) from e


@router.get("/projects/{uuid}/environments", response_model=ActionResponse[list[dict[str, Any]]])
async def list_environments(uuid: str, _identity: Viewer, client: Client) -> ActionResponse[list[dict[str, Any]]]:
    try:
        return ActionResponse(data=await client.get_environments(uuid))
    except SERVICE_ERRORS as e:
        logger.error("Listing environments failed", extra={"project_uuid": uuid})
        raise service_error(e) from e


@router.get("/servers", response_model=ActionResponse[list[dict[str, Any]]])
async def list_servers(_identity: Viewer, client: Client) -> ActionResponse[list[dict[str, Any]]]:
    try:
        return ActionResponse(data=await client.get_servers())
    except SERVICE_ERRORS as e:
        logger.error("Listing servers failed", extra={"error_type": type(e).__name__})
        raise service_error(e) from e


@router.get("/connection", response_model=ActionResponse[dict[str, bool]])
async def test_provider_connection(_identity: Viewer, client: Client) -> ActionResponse[dict[str, bool]]:
    """Whether the provider answers its health endpoint."""
    connected = await client.test_connection()
    return ActionResponse(data={"connected": connected})


@router.get("/summary", response_model=ActionResponse[InfrastructureSummary])
async def infrastructure_summary(_identity: Viewer, client: Client) -> ActionResponse[InfrastructureSummary]:
    try:
        databases, services, applications = await asyncio.gather(
            client.list_databases(),
            client.list_services(),
            client.list_applications(),
        )
    except SERVICE_ERRORS as e:
        logger.error("Infrastructure summary failed", extra={"error_type": type(e).__name__})
        raise service_error(e) from e
    return ActionResponse(
        data=InfrastructureSummary(
            databases=databases,
            services=services,
            applications=applications,
            total_databases=len(databases),
            total_services=len(services),
            total_applications=len(applications),
        )
    )
