"""Configuration management module.

This module provides:
- Environment-based configuration with validation
- Service-specific settings classes
- Cached settings access via get_settings()
"""

from .settings import (
    ClusterBridgeSettings,
    Environment,
    LogFormat,
    LogLevel,
    RelaySettings,
    Settings,
    TunnelSettings,
    get_settings,
)

__all__ = [
    # Main settings
    "Settings",
    "get_settings",
    # Enums
    "Environment",
    "LogLevel",
    "LogFormat",
    # Component settings
    "TunnelSettings",
    "RelaySettings",
    # Service-specific settings
    "ClusterBridgeSettings",
]
