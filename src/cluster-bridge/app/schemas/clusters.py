"""Cluster registration schemas."""

from __future__ import annotations

from pydantic import BaseModel, Field

from shared.models import ConnectionSummary, TunnelInfo


class ClusterRegistered(BaseModel):
    """Response to a kubeconfig registration or activation."""

    name: str = Field(description="Cluster name")
    active: bool = Field(default=True, description="Whether the cluster is now active")
    connection: ConnectionSummary
    tunnel: TunnelInfo | None = None
