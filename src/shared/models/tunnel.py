"""Tunnel domain models."""

from datetime import datetime
from enum import Enum

from pydantic import Field

from .base import BridgeBaseModel


class TunnelState(str, Enum):
    """Liveness of a tunnel handle."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class TunnelInfo(BridgeBaseModel):
    """Snapshot of a port-forward tunnel."""

    local_host: str
    local_port: int = Field(ge=0, le=65535)
    remote_port: int = Field(ge=1, le=65535)
    target_service: str
    target_namespace: str
    pod_name: str | None = None
    state: TunnelState = TunnelState.CLOSED
    opened_at: datetime | None = None

    @property
    def url(self) -> str:
        """Base URL of the local end of the tunnel."""
        return f"http://{self.local_host}:{self.local_port}"
