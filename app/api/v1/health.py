"""Health check endpoint with metadata-store and provider connectivity checks."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.provider_client import ProviderClient, ProviderNotConfiguredError

router = APIRouter()


@router.get("", response_model=HealthResponse)
async def get_health(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    check_provider: bool = False,
) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring; pass check_provider=true to also ping the provider.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"

    provider_status = None
    if check_provider:
        try:
            client = ProviderClient.from_settings(settings)
        except ProviderNotConfiguredError:
            provider_status = "not_configured"
        else:
            provider_status = "reachable" if await client.test_connection() else "unreachable"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        provider=provider_status,
    )
