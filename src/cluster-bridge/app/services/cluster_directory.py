"""Directory of registered clusters and the active-cluster selection."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from shared.models import CredentialRecord
from shared.observability import get_logger

from .client_factory import ClientBundle, ConnectionParameters
from .exceptions import ClusterNotFoundError, NoActiveClusterError

logger = get_logger(__name__)


class ClusterEntry:
    """A registered cluster: its credential, connection and client bundle."""

    def __init__(
        self,
        name: str,
        record: CredentialRecord,
        connection: ConnectionParameters,
        clients: ClientBundle,
    ):
        self.name = name
        self.record = record
        self.connection = connection
        self.clients = clients
        self.registered_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"ClusterEntry(name={self.name!r}, api_server={self.connection.api_server!r})"


class ClusterDirectory:
    """Maps cluster names to entries and tracks which one is active.

    Resource operations always run against ``active()``. The default name
    resolves to the active entry only while no cluster is registered under
    that name itself.
    """

    def __init__(self, default_name: str = "default"):
        self.default_name = default_name
        self._entries: dict[str, ClusterEntry] = {}
        self._active_name: str | None = None
        self._lock = asyncio.Lock()

    async def register(
        self,
        name: str,
        record: CredentialRecord,
        connection: ConnectionParameters,
        clients: ClientBundle,
        activate: bool = True,
    ) -> ClusterEntry:
        """Install or overwrite the entry for ``name``.

        With ``activate`` the entry also becomes the active cluster, so the
        last registration wins.
        """
        entry = ClusterEntry(name, record, connection, clients)
        async with self._lock:
            self._entries[name] = entry
            if activate:
                self._active_name = name

        logger.info(
            "Cluster registered",
            cluster=name,
            api_server=connection.api_server,
            active=activate,
        )
        return entry

    async def resolve(self, name: str) -> ClusterEntry:
        async with self._lock:
            entry = self._entries.get(name)
            if entry is None and name == self.default_name and self._active_name:
                entry = self._entries[self._active_name]
        if entry is None:
            raise ClusterNotFoundError(f"Cluster '{name}' is not registered")
        return entry

    async def active(self) -> ClusterEntry:
        async with self._lock:
            if self._active_name is None:
                raise NoActiveClusterError("No cluster has been registered")
            return self._entries[self._active_name]

    async def activate(self, name: str) -> ClusterEntry:
        """Make an already registered entry the active cluster."""
        async with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                raise ClusterNotFoundError(f"Cluster '{name}' is not registered")
            self._active_name = name

        logger.info("Active cluster changed", cluster=name)
        return entry
