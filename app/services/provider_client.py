"""Thin async client for the orchestration provider's REST API (projects, servers, databases, services)."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class ProviderNotConfiguredError(Exception):
    """Raised when a provider-backed operation runs without PROVIDER_API_TOKEN."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ProviderApiError(Exception):
    """Raised when the provider answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _error_detail(resp: httpx.Response) -> str:
    """message, then error, then the JSON itself; raw text when the body is not JSON."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict):
        detail = body.get("message") or body.get("error")
        if detail:
            return str(detail)
    return json.dumps(body)


def unwrap_list(data: Any, key: str) -> list[Any]:
    """Bare array as-is, {key: [...]} unwrapped, anything else empty."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return []


class ProviderClient:
    """
    One method per provider endpoint. Single attempt per call, no retries.

    transport is only for tests (httpx.MockTransport); production uses the default.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> ProviderClient:
        token = settings.PROVIDER_API_TOKEN.get_secret_value() if settings.PROVIDER_API_TOKEN else ""
        if not token.strip():
            raise ProviderNotConfiguredError(
                "Provider is not configured; set PROVIDER_API_URL and PROVIDER_API_TOKEN."
            )
        return cls(settings.PROVIDER_API_URL, token.strip())

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def request(
        self,
        method: str,
        endpoint: str,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request; return the decoded JSON body (None when empty). Raises ProviderApiError."""
        url = f"{self.base_url}{API_PREFIX}{endpoint}"
        logger.debug("Provider request", extra={"method": method, "endpoint": endpoint})
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.request(method, url, headers=self._headers(), json=payload)
        logger.debug(
            "Provider response",
            extra={"method": method, "endpoint": endpoint, "status_code": resp.status_code},
        )
        if resp.status_code < 200 or resp.status_code >= 300:
            raise ProviderApiError(
                f"Provider API Error ({resp.status_code}): {_error_detail(resp)}",
                resp.status_code,
            )
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    # Projects / servers

    async def get_projects(self) -> list[dict[str, Any]]:
        return unwrap_list(await self.request("GET", "/projects"), "projects")

    async def get_project(self, uuid: str) -> dict[str, Any]:
        return await self.request("GET", f"/projects/{uuid}")

    async def get_environments(self, project_uuid: str) -> list[dict[str, Any]]:
        data = await self.request("GET", f"/projects/{project_uuid}/environments")
        return unwrap_list(data, "environments")

    async def get_servers(self) -> list[dict[str, Any]]:
        return unwrap_list(await self.request("GET", "/servers"), "servers")

    async def list_resources(self) -> list[dict[str, Any]]:
        return unwrap_list(await self.request("GET", "/resources"), "resources")

    # Databases

    async def list_databases(self) -> list[dict[str, Any]]:
        return unwrap_list(await self.request("GET", "/databases"), "databases")

    async def get_database(self, uuid: str) -> dict[str, Any]:
        return await self.request("GET", f"/databases/{uuid}")

    async def create_postgres_database(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/databases/postgresql", payload)

    async def create_redis_database(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/databases/redis", payload)

    async def update_database(self, uuid: str, payload: dict[str, Any]) -> Any:
        return await self.request("PATCH", f"/databases/{uuid}", payload)

    async def set_public_access(self, uuid: str, public_port: int) -> Any:
        return await self.update_database(uuid, {"is_public": True, "public_port": public_port})

    async def start_database(self, uuid: str) -> Any:
        return await self.request("GET", f"/databases/{uuid}/start")

    async def stop_database(self, uuid: str) -> Any:
        return await self.request("GET", f"/databases/{uuid}/stop")

    async def restart_database(self, uuid: str) -> Any:
        return await self.request("GET", f"/databases/{uuid}/restart")

    async def deploy_database(self, uuid: str) -> Any:
        """Restart to apply configuration; fall back to the generic deploy endpoint."""
        try:
            return await self.restart_database(uuid)
        except ProviderApiError as e:
            logger.info(
                "Restart failed, trying generic deploy",
                extra={"uuid": uuid, "status_code": e.status_code},
            )
            return await self.request("GET", f"/deploy?uuid={uuid}&force=true")

    async def delete_database(self, uuid: str) -> Any:
        return await self.request("DELETE", f"/databases/{uuid}")

    async def configure_backup(
        self,
        uuid: str,
        *,
        enabled: bool,
        frequency: str,
        retention: int,
        s3_bucket: str | None = None,
        s3_region: str | None = None,
        s3_key: str | None = None,
        s3_secret: str | None = None,
    ) -> Any:
        payload: dict[str, Any] = {
            "backup_enabled": enabled,
            "backup_frequency": frequency,
            "backup_retention": retention,
        }
        if s3_bucket:
            payload["backup_s3_bucket"] = s3_bucket
        if s3_region:
            payload["backup_s3_region"] = s3_region
        if s3_key:
            payload["backup_s3_key"] = s3_key
        if s3_secret:
            payload["backup_s3_secret"] = s3_secret
        return await self.update_database(uuid, payload)

    async def trigger_backup(self, uuid: str) -> Any:
        return await self.request("POST", f"/databases/{uuid}/backup")

    async def get_database_logs(self, uuid: str) -> Any:
        data = await self.request("GET", f"/databases/{uuid}/logs")
        if isinstance(data, dict) and "logs" in data:
            return data["logs"]
        return data

    # Services / applications

    async def list_services(self) -> list[dict[str, Any]]:
        return unwrap_list(await self.request("GET", "/services"), "services")

    async def create_service(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/services", payload)

    async def delete_service(self, uuid: str) -> Any:
        return await self.request("DELETE", f"/services/{uuid}")

    async def list_applications(self) -> list[dict[str, Any]]:
        return unwrap_list(await self.request("GET", "/applications"), "applications")

    async def create_docker_application(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self.request("POST", "/applications/dockerimage", payload)

    async def test_connection(self) -> bool:
        """True when GET /health answers 2xx; transport and API errors mean False."""
        try:
            await self.request("GET", "/health")
            return True
        except (ProviderApiError, httpx.HTTPError):
            return False
