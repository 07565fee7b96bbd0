"""Cluster domain models."""

from datetime import datetime, timezone

from pydantic import Field, field_validator

from .base import BridgeBaseModel
from .tunnel import TunnelInfo


class CredentialRecord(BridgeBaseModel):
    """A raw kubeconfig stored under a cluster name.

    Writing a record under an existing name replaces it entirely.
    """

    name: str = Field(min_length=1, max_length=253, description="Cluster name")
    raw: str = Field(description="Serialized kubeconfig document", repr=False)
    stored_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if v != v.strip() or "/" in v:
            raise ValueError("Cluster name must not contain '/' or surrounding whitespace")
        return v


class ConnectionSummary(BridgeBaseModel):
    """Non-secret view of a cluster's connection parameters."""

    api_server: str
    context: str | None = None
    verify_ssl: bool = True


class ActiveClusterSummary(BridgeBaseModel):
    """The cluster all resource operations currently run against."""

    name: str
    connection: ConnectionSummary
    registered_at: datetime
    tunnel: TunnelInfo | None = None
