"""Health probe payload."""

from typing import Literal

from pydantic import BaseModel

ProviderStatus = Literal["reachable", "unreachable", "not_configured"]


class HealthResponse(BaseModel):
    """
    status is always "ok" when the process answers.

    database reports the metadata store; provider is only filled in when the
    caller asks for the extra round-trip with check_provider=true.
    """

    status: Literal["ok"] = "ok"
    environment: str
    database: Literal["connected", "disconnected"]
    provider: ProviderStatus | None = None
