"""Shared data models for Cluster Bridge.

All models follow these conventions:
- Timestamps: ISO 8601 format with timezone (UTC preferred)
- Field names: lowercase snake_case
- Enums: uppercase SNAKE_CASE
"""

# Base
from .base import BridgeBaseModel

# Cluster domain
from .cluster import (
    ActiveClusterSummary,
    ConnectionSummary,
    CredentialRecord,
)

# Common types
from .common import ErrorResponse

# Tunnel domain
from .tunnel import TunnelInfo, TunnelState

__all__ = [
    # Base
    "BridgeBaseModel",
    # Cluster
    "ActiveClusterSummary",
    "ConnectionSummary",
    "CredentialRecord",
    # Common
    "ErrorResponse",
    # Tunnel
    "TunnelInfo",
    "TunnelState",
]
