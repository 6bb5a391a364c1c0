"""Schemas for provider-managed resources and the provisioning workflows."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

NAME_MAX_LENGTH = 255
PORT_MIN = 1
PORT_MAX = 65535


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class PlacementFields(BaseModel):
    """Where to create a resource. Missing UUIDs resolve to the provider's first project/server."""

    project_uuid: str | None = Field(default=None, description="Provider project UUID.")
    server_uuid: str | None = Field(default=None, description="Provider server UUID.")
    environment_name: str | None = Field(default=None, description="Environment inside the project.")
    destination_uuid: str | None = Field(default=None, description="Provider destination (network) UUID.")

    @field_validator("project_uuid", "server_uuid", "environment_name", "destination_uuid")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class CreatePostgresRequest(PlacementFields):
    """Parameters for the PostgreSQL provisioning sequence."""

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH, description="Database name.")
    description: str | None = Field(default=None, max_length=1024)
    postgres_password: str | None = Field(default=None, description="Leave empty to let the provider generate one.")
    public_port: int | None = Field(default=None, ge=PORT_MIN, le=PORT_MAX, description="Random in [10000, 60000) when omitted.")


class CreateRedisRequest(PlacementFields):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=1024)
    redis_password: str | None = None
    public_port: int | None = Field(default=None, ge=PORT_MIN, le=PORT_MAX)


class CreateMinioRequest(PlacementFields):
    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=1024)
    instant_deploy: bool = True


class PortMapping(BaseModel):
    host: int = Field(..., ge=PORT_MIN, le=PORT_MAX)
    container: int = Field(..., ge=PORT_MIN, le=PORT_MAX)


class VolumeMapping(BaseModel):
    host: str = Field(..., min_length=1)
    container: str = Field(..., min_length=1)


class DockerServiceRequest(BaseModel):
    """Single-shot deployment of a container image as a provider application."""

    name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    image: str = Field(..., min_length=1, max_length=1024)
    ports: list[PortMapping] = Field(default_factory=list)
    volumes: list[VolumeMapping] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    project_uuid: str | None = None
    server_uuid: str | None = None


class BackupConfigRequest(BaseModel):
    """Scheduled backup settings pushed to the provider."""

    enabled: bool = True
    frequency: str | None = Field(default="0 3 * * *", description="Cron expression.")
    retention: int | None = Field(default=7, ge=1, le=3650, description="Days to keep.")
    s3_bucket: str | None = None
    s3_region: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None


class ConnectionInfo(BaseModel):
    """Best-known way to reach a provisioned resource."""

    host: str
    port: int
    user: str | None = None
    password: str | None = None
    database: str | None = None


class StepOutcome(BaseModel):
    """Result of one provisioning step."""

    ok: bool
    error: str | None = None


class ProvisioningSteps(BaseModel):
    """
    Outcome of each provisioning step.

    Only create is a hard precondition; the others are advisory.
    deploy and refresh are None for workflows that skip them.
    """

    create: StepOutcome
    public_access: StepOutcome
    start: StepOutcome
    deploy: StepOutcome | None = None
    refresh: StepOutcome | None = None

    def warnings(self) -> list[str]:
        out: list[str] = []
        for step_name in ("public_access", "start", "deploy", "refresh"):
            outcome: StepOutcome | None = getattr(self, step_name)
            if outcome is not None and not outcome.ok:
                out.append(f"{step_name} failed: {outcome.error}")
        return out


class ProvisioningResult(BaseModel):
    """Created resource as last seen on the provider, plus connection info and step outcomes."""

    resource: dict[str, Any]
    connection_info: ConnectionInfo
    steps: ProvisioningSteps


class SecuritySummary(BaseModel):
    is_public: bool
    public_port: int | None = None
    ssl_required: bool = True
    password_length: int
    password_strong: bool


class InfrastructureSummary(BaseModel):
    databases: list[dict[str, Any]]
    services: list[dict[str, Any]]
    applications: list[dict[str, Any]]
    total_databases: int
    total_services: int
    total_applications: int


class DeployedService(BaseModel):
    """Provider response for a deployed container plus where to reach it."""

    resource: Any = None
    url: str | None = None
