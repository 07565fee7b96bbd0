"""Event publishing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from shared.models import TunnelInfo
from shared.observability import get_logger

from ..services.exceptions import ClusterBridgeError
from .dependencies import http_error

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/publishEvent",
    summary="Publish an event",
    description=(
        "Forward the request body and headers to the active cluster's event "
        "publisher and answer with its status code."
    ),
)
async def publish_event(request: Request):
    """Relay an event into the active cluster.

    The body is read once here and shared by the first attempt and the retry.
    """
    body = await request.body()
    relay = request.app.state.relay

    try:
        result = await relay.publish(body, request.headers)
    except ClusterBridgeError as e:
        raise http_error(e)

    logger.info(
        "Event published",
        status_code=result.status_code,
        attempts=result.attempts,
        size=len(body),
    )
    return Response(
        content=result.content,
        status_code=result.status_code,
        media_type=result.content_type,
    )


@router.get(
    "/tunnel",
    response_model=TunnelInfo | None,
    summary="Get tunnel status",
)
async def get_tunnel(request: Request):
    """Return the tracked tunnel, or null if none has been opened."""
    handle = request.app.state.supervisor.handle
    return handle.info() if handle is not None else None
