"""Cluster registration and activation.

Registration runs registry put, client derivation, directory install and
tunnel open in that order. A failed derivation leaves the raw credential
stored; ``activate`` recovers such a cluster by deriving its clients again.
Derivation may run kubeconfig exec plugins, so it happens in a worker thread.
"""

from __future__ import annotations

import asyncio

from shared.models import ActiveClusterSummary
from shared.observability import get_logger

from .client_factory import ClientFactory
from .cluster_directory import ClusterDirectory, ClusterEntry
from .credential_registry import CredentialRegistry
from .exceptions import ClusterNotFoundError
from .tunnel import TunnelSupervisor

logger = get_logger(__name__)


class ClusterService:
    """Coordinates the registry, factory, directory and tunnel supervisor."""

    def __init__(
        self,
        registry: CredentialRegistry,
        factory: ClientFactory,
        directory: ClusterDirectory,
        supervisor: TunnelSupervisor,
    ):
        self.registry = registry
        self.factory = factory
        self.directory = directory
        self.supervisor = supervisor

    async def register(self, name: str, raw: str | bytes) -> ClusterEntry:
        """Register a kubeconfig under ``name`` and make it the active cluster.

        Raises:
            InvalidCredentialError: Empty or unparseable kubeconfig
            ClusterConnectionError: Kubeconfig does not yield a usable connection
            TunnelError: The tunnel into the new cluster could not be opened
        """
        record = await self.registry.put(name, raw)
        connection, clients = await asyncio.to_thread(self.factory.derive, record.raw)
        entry = await self.directory.register(name, record, connection, clients)
        await self.supervisor.open()

        logger.info("Kubeconfig was set", cluster=name)
        return entry

    async def activate(self, name: str) -> ClusterEntry:
        """Make an already registered cluster active and reopen the tunnel.

        A cluster whose credential is stored but which has no directory entry
        (its derivation failed earlier) is derived again here.
        """
        try:
            entry = await self.directory.activate(name)
        except ClusterNotFoundError:
            record = await self.registry.get(name)
            logger.info("Recovering cluster missing from directory", cluster=name)
            connection, clients = await asyncio.to_thread(self.factory.derive, record.raw)
            entry = await self.directory.register(name, record, connection, clients)

        await self.supervisor.open()
        return entry

    async def list_names(self) -> list[str]:
        return await self.registry.list_names()

    async def active_summary(self) -> ActiveClusterSummary:
        """Describe the active cluster and its tunnel."""
        entry = await self.directory.active()
        handle = self.supervisor.handle
        return ActiveClusterSummary(
            name=entry.name,
            connection=entry.connection.summary(),
            registered_at=entry.registered_at,
            tunnel=handle.info() if handle is not None else None,
        )
