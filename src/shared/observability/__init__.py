"""Observability module for structured logging."""

from .logging import (
    LogContext,
    bind_cluster,
    cluster_var,
    external_call,
    get_logger,
    log_request,
    request_id_var,
    setup_logging,
)

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    # Context
    "LogContext",
    "bind_cluster",
    "cluster_var",
    "request_id_var",
    # Logging helpers
    "log_request",
    "external_call",
]
