"""Shared router helpers: error conversion and request dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Query, Request

from shared.models import ErrorResponse
from shared.observability import bind_cluster

from ..services.client_factory import ClientBundle
from ..services.exceptions import ClusterBridgeError

ALL_NAMESPACES = "-A"


def http_error(error: ClusterBridgeError, status_code: int | None = None) -> HTTPException:
    """Convert a bridge error into an HTTPException carrying its code and message."""
    detail = ErrorResponse(error=error.error_code, message=str(error))
    return HTTPException(
        status_code=status_code or error.status_code,
        detail=detail.model_dump(mode="json", exclude_none=True),
    )


async def get_active_clients(request: Request) -> ClientBundle:
    """Dependency resolving the client bundle of the active cluster."""
    try:
        entry = await request.app.state.directory.active()
    except ClusterBridgeError as e:
        raise http_error(e)
    bind_cluster(entry.name)
    return entry.clients


def get_namespace(
    request: Request,
    ns: str | None = Query(None, description="Namespace, or -A for all namespaces"),
) -> str:
    """Dependency reading the ``ns`` query parameter.

    A missing value means the configured default namespace; ``-A`` means all.
    """
    if ns == ALL_NAMESPACES:
        return ""
    if ns:
        return ns
    return request.app.state.settings.default_namespace
