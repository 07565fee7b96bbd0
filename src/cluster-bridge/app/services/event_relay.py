"""Relays published events through the tunnel into the cluster.

Each publish is attempted once against the tracked tunnel. If that
attempt fails the tunnel is reopened and the publish is retried exactly
once. The payload is buffered by the caller, so both attempts send the
same bytes.
"""

from __future__ import annotations

from collections.abc import Mapping

import httpx
from pydantic import BaseModel

from shared.config import RelaySettings
from shared.observability import external_call, get_logger

from .exceptions import RelayFailedError
from .tunnel import TunnelSupervisor

logger = get_logger(__name__)

# Headers that must not be copied onto the forwarded request
EXCLUDED_HEADERS = frozenset(
    {
        "host",
        "connection",
        "keep-alive",
        "transfer-encoding",
        "content-length",
    }
)


class RelayResult(BaseModel):
    """Response of the in-cluster publish endpoint, passed through untouched."""

    status_code: int
    content: bytes = b""
    content_type: str | None = None
    attempts: int = 1


class _AttemptFailed(Exception):
    pass


class EventRelay:
    """Forwards event payloads to the publishing service behind the tunnel."""

    def __init__(
        self,
        supervisor: TunnelSupervisor,
        http_client: httpx.AsyncClient,
        settings: RelaySettings,
    ):
        self.supervisor = supervisor
        self.http_client = http_client
        self.settings = settings

    async def publish(self, body: bytes, headers: Mapping[str, str]) -> RelayResult:
        """Forward one event, reopening the tunnel and retrying once on failure.

        Raises:
            TunnelError: If the tunnel cannot be reopened
            RelayFailedError: If the retry through the reopened tunnel fails too
        """
        forward_headers = filter_headers(headers)

        handle, generation = self.supervisor.snapshot()
        try:
            if handle is None or not handle.is_open:
                raise _AttemptFailed("no open tunnel")
            return await self._forward(handle.url, body, forward_headers, attempt=1)
        except _AttemptFailed as e:
            logger.warning(
                "Event forward failed, reopening tunnel",
                error=str(e),
                generation=generation,
            )

        async with self.supervisor.reopened(generation) as handle:
            try:
                return await self._forward(handle.url, body, forward_headers, attempt=2)
            except _AttemptFailed as e:
                logger.error("Event forward failed after reopening tunnel", error=str(e))
                raise RelayFailedError(f"Failed to forward event: {e}") from e

    async def _forward(
        self,
        base_url: str,
        body: bytes,
        headers: dict[str, str],
        attempt: int,
    ) -> RelayResult:
        url = f"{base_url}{self.settings.publish_path}"
        try:
            with external_call(logger, "event-publisher", f"publish attempt {attempt}"):
                response = await self.http_client.post(
                    url,
                    content=body,
                    headers=headers,
                    timeout=self.settings.timeout_seconds,
                )
        except httpx.HTTPError as e:
            raise _AttemptFailed(f"{type(e).__name__}: {e}") from e

        return RelayResult(
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type"),
            attempts=attempt,
        )


def filter_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy request headers, dropping hop-by-hop and length headers."""
    return {
        key: value
        for key, value in headers.items()
        if key.lower() not in EXCLUDED_HEADERS
    }
