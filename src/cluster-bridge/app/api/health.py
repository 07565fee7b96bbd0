"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response, status

from ..services.exceptions import NoActiveClusterError

router = APIRouter()


@router.get(
    "/health",
    summary="Health check",
    description="Basic health check endpoint.",
)
async def health():
    return {"status": "healthy", "service": "cluster-bridge"}


@router.get(
    "/ready",
    summary="Readiness check",
    description="Check if an active cluster is registered and its tunnel is open.",
)
async def ready(request: Request, response: Response):
    """Readiness check.

    Reports not ready (503) until a cluster is active and the tunnel is open.
    """
    checks = {
        "active_cluster": False,
        "tunnel": False,
    }

    try:
        await request.app.state.directory.active()
        checks["active_cluster"] = True
    except NoActiveClusterError:
        pass

    handle = request.app.state.supervisor.handle
    checks["tunnel"] = handle is not None and handle.is_open

    all_ready = all(checks.values())
    if not all_ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if all_ready else "not_ready",
        "checks": checks,
    }
