"""Kubeconfig registration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, status

from shared.models import ActiveClusterSummary
from shared.observability import get_logger

from ..schemas.clusters import ClusterRegistered
from ..services.cluster_directory import ClusterEntry
from ..services.exceptions import ClusterBridgeError
from .dependencies import http_error

logger = get_logger(__name__)

router = APIRouter()


def _registered(request: Request, entry: ClusterEntry) -> ClusterRegistered:
    handle = request.app.state.supervisor.handle
    return ClusterRegistered(
        name=entry.name,
        connection=entry.connection.summary(),
        tunnel=handle.info() if handle is not None else None,
    )


@router.post(
    "/kubeconfig/{name}",
    response_model=ClusterRegistered,
    summary="Register a kubeconfig",
    description=(
        "Store the kubeconfig in the request body under `name`, make the cluster "
        "active and open the tunnel to its event publisher."
    ),
)
@router.put(
    "/kubeconfig/{name}",
    response_model=ClusterRegistered,
    summary="Register a kubeconfig",
    include_in_schema=False,
)
async def add_kubeconfig(request: Request, name: str):
    """Register a kubeconfig and make its cluster active.

    Every failure, including a tunnel that cannot be opened, is a 400.
    """
    body = await request.body()
    service = request.app.state.cluster_service

    try:
        entry = await service.register(name, body)
    except ClusterBridgeError as e:
        logger.warning(
            "Kubeconfig registration failed",
            cluster=name,
            error_code=e.error_code,
            error=str(e),
        )
        raise http_error(e, status_code=status.HTTP_400_BAD_REQUEST)

    return _registered(request, entry)


@router.get(
    "/kubeconfigs",
    response_model=list[str],
    summary="List registered kubeconfigs",
)
async def get_kubeconfigs(request: Request):
    """Return the names of all registered kubeconfigs."""
    return await request.app.state.cluster_service.list_names()


@router.post(
    "/kubeconfig/{name}/activate",
    response_model=ClusterRegistered,
    summary="Activate a registered cluster",
    description="Make a previously registered cluster active and reopen the tunnel.",
)
async def activate_kubeconfig(request: Request, name: str):
    service = request.app.state.cluster_service

    try:
        entry = await service.activate(name)
    except ClusterBridgeError as e:
        raise http_error(e)

    return _registered(request, entry)


@router.get(
    "/clusters/active",
    response_model=ActiveClusterSummary,
    summary="Get the active cluster",
)
async def get_active_cluster(request: Request):
    try:
        return await request.app.state.cluster_service.active_summary()
    except ClusterBridgeError as e:
        raise http_error(e)
