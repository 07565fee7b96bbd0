"""Cluster Bridge FastAPI Application.

The Cluster Bridge service provides:
- Registration of cluster kubeconfigs and derivation of API clients
- A port-forward tunnel into the active cluster's event publisher
- Event relaying through that tunnel with a single reopen-and-retry
- Subscription and function CRUD against the active cluster
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config import ClusterBridgeSettings
from shared.observability import get_logger, setup_logging

from .api import events, functions, health, kubeconfigs, subscriptions
from .middleware import RequestLoggingMiddleware
from .services import (
    ClientFactory,
    ClusterDirectory,
    ClusterService,
    CredentialRegistry,
    EventRelay,
    TunnelSupervisor,
    open_port_forward,
)
from .services.tunnel import TunnelOpener

settings = ClusterBridgeSettings()
setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = get_logger(__name__)


def init_state(
    app: FastAPI,
    settings: ClusterBridgeSettings,
    http_client: httpx.AsyncClient,
    opener: TunnelOpener = open_port_forward,
) -> None:
    """Wire the connectivity core onto ``app.state``."""
    registry = CredentialRegistry()
    directory = ClusterDirectory(default_name=settings.default_cluster_name)
    supervisor = TunnelSupervisor(directory, settings.tunnel, opener=opener)

    app.state.settings = settings
    app.state.http_client = http_client
    app.state.registry = registry
    app.state.directory = directory
    app.state.supervisor = supervisor
    app.state.cluster_service = ClusterService(registry, ClientFactory(), directory, supervisor)
    app.state.relay = EventRelay(supervisor, http_client, settings.relay)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown of:
    - The outbound HTTP client used by the event relay
    - The tunnel into the active cluster
    """
    logger.info("Starting Cluster Bridge service", version=settings.app_version)

    http_client = httpx.AsyncClient(timeout=settings.relay.timeout_seconds)
    init_state(app, settings, http_client)

    logger.info(
        "Cluster Bridge service started successfully",
        tunnel_service=f"{settings.tunnel.namespace}/{settings.tunnel.service_name}",
        tunnel_local_port=settings.tunnel.local_port,
    )

    yield

    # Shutdown
    logger.info("Shutting down Cluster Bridge service")
    await app.state.supervisor.shutdown()
    await http_client.aclose()
    logger.info("Cluster Bridge service shutdown complete")


app = FastAPI(
    title="Cluster Bridge Service",
    description="Cluster credential registry, event relay and custom resource API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Kubeconfig routes first: "/kubeconfig/{name}/activate" would otherwise
# also match "/{ns}/funcs/{name}" for a cluster named "funcs".
app.include_router(kubeconfigs.router, prefix="/api", tags=["Kubeconfigs"])
app.include_router(events.router, prefix="/api", tags=["Events"])
app.include_router(subscriptions.router, prefix="/api", tags=["Subscriptions"])
app.include_router(functions.router, prefix="/api", tags=["Functions"])
app.include_router(health.router, tags=["Health"])


@app.get("/")
async def root():
    """Root endpoint with service info."""
    return {
        "service": "cluster-bridge",
        "version": settings.app_version,
        "docs": "/docs",
    }
