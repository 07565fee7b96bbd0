"""Cluster Bridge Shared Package.

This package contains components shared by the bridge service and its tooling:
- models: Pydantic data models
- config: Configuration management
- observability: Structured logging
"""

__version__ = "0.1.0"
