"""
Multi-step provisioning workflows on top of the provider client.

Postgres: create -> public access -> start -> deploy -> settle -> refresh.
Only the create call is authoritative; every later step is best-effort and its
outcome is recorded in ProvisioningSteps instead of failing the workflow.
"""

from __future__ import annotations

import asyncio
import logging
import random
import secrets
from dataclasses import dataclass
from typing import Any, Awaitable

import httpx

from app.schemas.provider import (
    ConnectionInfo,
    CreateMinioRequest,
    CreatePostgresRequest,
    CreateRedisRequest,
    DockerServiceRequest,
    PlacementFields,
    PortMapping,
    ProvisioningResult,
    ProvisioningSteps,
    StepOutcome,
    VolumeMapping,
)
from app.services.provider_client import ProviderApiError, ProviderClient

logger = logging.getLogger(__name__)

# Random public port range when the caller does not choose one: [min, max).
PUBLIC_PORT_MIN = 10000
PUBLIC_PORT_MAX = 60000

DEFAULT_SETTLE_SECONDS = 2.0
DEFAULT_DOCKER_TAG = "latest"


class ProvisioningError(Exception):
    """Raised when a hard step fails (placement lookup or the create call)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class Placement:
    project_uuid: str
    server_uuid: str
    environment_name: str
    destination_uuid: str | None = None


def random_public_port(low: int = PUBLIC_PORT_MIN, high: int = PUBLIC_PORT_MAX) -> int:
    """Pseudo-random port in [low, high)."""
    return random.randrange(low, high)


async def resolve_placement(
    client: ProviderClient,
    fields: PlacementFields,
    default_environment: str,
) -> Placement:
    """Caller UUIDs win; otherwise take the first project and first server. Empty lists fail."""
    project_uuid = fields.project_uuid
    if not project_uuid:
        projects = await client.get_projects()
        if not projects:
            raise ProvisioningError("No projects found on the provider; create one first.")
        project_uuid = projects[0].get("uuid")
    server_uuid = fields.server_uuid
    if not server_uuid:
        servers = await client.get_servers()
        if not servers:
            raise ProvisioningError("No servers found on the provider; add one first.")
        server_uuid = servers[0].get("uuid")
    if not project_uuid or not server_uuid:
        raise ProvisioningError("Provider returned a project or server without a uuid.")
    return Placement(
        project_uuid=project_uuid,
        server_uuid=server_uuid,
        environment_name=fields.environment_name or default_environment,
        destination_uuid=fields.destination_uuid,
    )


async def _best_effort(step: str, uuid: str, call: Awaitable[Any]) -> StepOutcome:
    """Run one advisory step; record and log its failure instead of raising."""
    try:
        await call
    except ProviderApiError as e:
        logger.warning(
            "Provisioning step failed, continuing",
            extra={"step": step, "uuid": uuid, "status_code": e.status_code},
        )
        return StepOutcome(ok=False, error=e.message)
    except httpx.HTTPError as e:
        logger.warning("Provisioning step failed, continuing", extra={"step": step, "uuid": uuid})
        return StepOutcome(ok=False, error=str(e) or type(e).__name__)
    return StepOutcome(ok=True)


async def _create(call: Awaitable[Any], kind: str) -> dict[str, Any]:
    try:
        created = await call
    except ProviderApiError as e:
        raise ProvisioningError(e.message, e.status_code) from e
    if not isinstance(created, dict) or not created.get("uuid"):
        raise ProvisioningError(f"Provider did not return a uuid for the new {kind}.")
    return created


async def provision_postgres(
    client: ProviderClient,
    req: CreatePostgresRequest,
    *,
    public_host: str,
    default_environment: str = "production",
    settle_seconds: float = DEFAULT_SETTLE_SECONDS,
) -> ProvisioningResult:
    """
    Create a PostgreSQL database, expose it publicly and bring it up.

    Raises ProvisioningError when placement or creation fails; later failures
    end up in result.steps and never undo the created resource.
    """
    placement = await resolve_placement(client, req, default_environment)
    public_port = req.public_port or random_public_port()

    payload: dict[str, Any] = {
        "server_uuid": placement.server_uuid,
        "project_uuid": placement.project_uuid,
        "environment_name": placement.environment_name,
        "name": req.name,
        "description": req.description or f"PostgreSQL database {req.name}",
        "instant_deploy": False,
    }
    if req.postgres_password:
        payload["postgres_password"] = req.postgres_password
    if placement.destination_uuid:
        payload["destination_uuid"] = placement.destination_uuid

    created = await _create(client.create_postgres_database(payload), "database")
    uuid = created["uuid"]
    logger.info("Database created", extra={"uuid": uuid, "db_name": req.name, "public_port": public_port})

    public_access = await _best_effort("public_access", uuid, client.set_public_access(uuid, public_port))
    start = await _best_effort("start", uuid, client.start_database(uuid))
    deploy = await _best_effort("deploy", uuid, client.deploy_database(uuid))

    if settle_seconds > 0:
        await asyncio.sleep(settle_seconds)

    resource = created
    try:
        refreshed = await client.get_database(uuid)
        if isinstance(refreshed, dict):
            resource = refreshed
        refresh = StepOutcome(ok=True)
    except (ProviderApiError, httpx.HTTPError) as e:
        logger.warning("Could not re-fetch database, using creation response", extra={"uuid": uuid})
        refresh = StepOutcome(ok=False, error=getattr(e, "message", None) or str(e))

    connection_info = ConnectionInfo(
        host=public_host,
        port=resource.get("public_port") or public_port,
        user=resource.get("postgres_user") or "postgres",
        password=resource.get("postgres_password") or req.postgres_password or "",
        database=resource.get("postgres_db") or "postgres",
    )
    return ProvisioningResult(
        resource=resource,
        connection_info=connection_info,
        steps=ProvisioningSteps(
            create=StepOutcome(ok=True),
            public_access=public_access,
            start=start,
            deploy=deploy,
            refresh=refresh,
        ),
    )


async def provision_redis(
    client: ProviderClient,
    req: CreateRedisRequest,
    *,
    public_host: str,
    default_environment: str = "production",
) -> ProvisioningResult:
    """Create -> public access -> start. Same hard/advisory split as postgres, no settle or refresh."""
    placement = await resolve_placement(client, req, default_environment)
    public_port = req.public_port or random_public_port()

    payload: dict[str, Any] = {
        "server_uuid": placement.server_uuid,
        "project_uuid": placement.project_uuid,
        "environment_name": placement.environment_name,
        "name": req.name,
        "description": req.description or f"Redis database {req.name}",
        "instant_deploy": False,
    }
    if req.redis_password:
        payload["redis_password"] = req.redis_password
    if placement.destination_uuid:
        payload["destination_uuid"] = placement.destination_uuid

    created = await _create(client.create_redis_database(payload), "database")
    uuid = created["uuid"]
    logger.info("Redis created", extra={"uuid": uuid, "db_name": req.name, "public_port": public_port})

    public_access = await _best_effort("public_access", uuid, client.set_public_access(uuid, public_port))
    start = await _best_effort("start", uuid, client.start_database(uuid))

    resource = {**created, "is_public": True, "public_port": public_port}
    return ProvisioningResult(
        resource=resource,
        connection_info=ConnectionInfo(
            host=public_host,
            port=public_port,
            password=req.redis_password or created.get("redis_password"),
        ),
        steps=ProvisioningSteps(
            create=StepOutcome(ok=True),
            public_access=public_access,
            start=start,
        ),
    )


async def create_minio_service(
    client: ProviderClient,
    req: CreateMinioRequest,
    *,
    default_environment: str = "production",
) -> dict[str, Any]:
    """Single create call for a MinIO service; errors propagate as ProviderApiError."""
    placement = await resolve_placement(client, req, default_environment)
    payload: dict[str, Any] = {
        "type": "minio",
        "name": req.name,
        "description": req.description or f"MinIO Storage - {req.name}",
        "project_uuid": placement.project_uuid,
        "server_uuid": placement.server_uuid,
        "environment_name": placement.environment_name,
        "instant_deploy": req.instant_deploy,
    }
    if placement.destination_uuid:
        payload["destination_uuid"] = placement.destination_uuid
    return await client.create_service(payload)


def _split_image(image: str) -> tuple[str, str]:
    """'repo/name:tag' -> ('repo/name', 'tag'); a colon inside a registry host:port is not a tag."""
    name, sep, tag = image.rpartition(":")
    if not sep or "/" in tag:
        return image, DEFAULT_DOCKER_TAG
    return name, tag


def docker_payload(req: DockerServiceRequest, placement: Placement) -> dict[str, Any]:
    """Provider payload for a docker image application with derived port/volume/env strings."""
    image_name, image_tag = _split_image(req.image)
    payload: dict[str, Any] = {
        "project_uuid": placement.project_uuid,
        "server_uuid": placement.server_uuid,
        "environment_name": placement.environment_name,
        "name": req.name,
        "docker_registry_image_name": image_name,
        "docker_registry_image_tag": image_tag,
        "instant_deploy": True,
    }
    if req.ports:
        payload["ports_mappings"] = ",".join(f"{p.host}:{p.container}" for p in req.ports)
    if req.volumes:
        payload["custom_docker_run_options"] = "-v " + ",".join(
            f"{v.host}:{v.container}" for v in req.volumes
        )
    if req.env:
        payload["env"] = "\n".join(f"{k}={v}" for k, v in req.env.items())
    return payload


async def deploy_docker_service(
    client: ProviderClient,
    req: DockerServiceRequest,
    *,
    default_environment: str = "production",
) -> dict[str, Any]:
    """Single-shot deployment; no lifecycle follow-up."""
    placement = await resolve_placement(
        client,
        PlacementFields(project_uuid=req.project_uuid, server_uuid=req.server_uuid),
        default_environment,
    )
    created = await client.create_docker_application(docker_payload(req, placement))
    logger.info("Docker service deployed", extra={"service_name": req.name, "image": req.image})
    return created


# Presets for auxiliary containers

LOG_VIEWER_PORT = 8888
IMAGE_PROXY_PORT = 8889


def log_viewer_preset() -> DockerServiceRequest:
    """Dozzle: live container logs over the docker socket."""
    return DockerServiceRequest(
        name="dozzle-logs",
        image="amir20/dozzle",
        ports=[PortMapping(host=LOG_VIEWER_PORT, container=8080)],
        volumes=[VolumeMapping(host="/var/run/docker.sock", container="/var/run/docker.sock")],
        env={"DOZZLE_LEVEL": "info", "DOZZLE_TAILSIZE": "300"},
    )


def image_proxy_preset() -> DockerServiceRequest:
    """imgproxy with a fresh random signing key and salt."""
    return DockerServiceRequest(
        name="imgproxy-cdn",
        image="darthsim/imgproxy",
        ports=[PortMapping(host=IMAGE_PROXY_PORT, container=8080)],
        env={
            "IMGPROXY_BIND": ":8080",
            "IMGPROXY_LOCAL_FILESYSTEM_ROOT": "/images",
            "IMGPROXY_KEY": secrets.token_hex(32),
            "IMGPROXY_SALT": secrets.token_hex(32),
            "IMGPROXY_MAX_SRC_RESOLUTION": "50",
            "IMGPROXY_ALLOWED_SOURCES": "*",
        },
    )
