"""Test fixtures for Cluster Bridge."""

import os
from typing import AsyncGenerator

# Set test environment before importing settings
os.environ["ENV"] = "development"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["LOG_FORMAT"] = "text"

import httpx
import pytest
import pytest_asyncio
import yaml
from httpx import ASGITransport, AsyncClient

from shared.config import ClusterBridgeSettings, TunnelSettings
from shared.models import TunnelInfo, TunnelState

from app.services import (
    ClientFactory,
    ClusterDirectory,
    EventRelay,
    TunnelError,
    TunnelSupervisor,
)


def build_kubeconfig(name: str, server: str, token: str = "test-token") -> str:
    return yaml.safe_dump(
        {
            "apiVersion": "v1",
            "kind": "Config",
            "clusters": [
                {
                    "name": name,
                    "cluster": {"server": server, "insecure-skip-tls-verify": True},
                }
            ],
            "contexts": [{"name": name, "context": {"cluster": name, "user": f"{name}-admin"}}],
            "current-context": name,
            "users": [{"name": f"{name}-admin", "user": {"token": token}}],
            "preferences": {},
        }
    )


class FakeTunnelHandle:
    """Stands in for a port-forward tunnel; records when it is closed."""

    def __init__(self, local_port: int, events: list[str]):
        self.local_host = "127.0.0.1"
        self.local_port = local_port
        self.pod_name = "eventing-publisher-proxy-0"
        self.close_calls = 0
        self._open = True
        self._events = events

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def url(self) -> str:
        return f"http://{self.local_host}:{self.local_port}"

    def info(self) -> TunnelInfo:
        return TunnelInfo(
            local_host=self.local_host,
            local_port=self.local_port,
            remote_port=8080,
            target_service="eventing-publisher-proxy",
            target_namespace="kyma-system",
            pod_name=self.pod_name,
            state=TunnelState.OPEN if self._open else TunnelState.CLOSED,
        )

    async def close(self) -> None:
        self.close_calls += 1
        if self._open:
            self._open = False
            self._events.append(f"close:{self.local_port}")


class FakeTunnelOpener:
    """Opens fake tunnels on consecutive local ports starting at 9091."""

    def __init__(self, first_port: int = 9091):
        self.calls: list[str] = []
        self.handles: list[FakeTunnelHandle] = []
        self.events: list[str] = []
        self.fail = False
        self._next_port = first_port

    async def __call__(self, entry, settings: TunnelSettings) -> FakeTunnelHandle:
        self.calls.append(entry.name)
        if self.fail:
            raise TunnelError(
                f"Cannot resolve service {settings.namespace}/{settings.service_name}: 404 Not Found"
            )
        handle = FakeTunnelHandle(self._next_port, self.events)
        self._next_port += 1
        self.events.append(f"open:{handle.local_port}")
        self.handles.append(handle)
        return handle


class PublisherStub:
    """In-cluster publish endpoint reached through the tunnel's local port."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.failing_ports: set[int] = set()
        self.status_code = 204

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.port in self.failing_ports:
            raise httpx.ConnectError("Connection refused", request=request)
        return httpx.Response(self.status_code, json={"status": "published"})


@pytest.fixture
def make_kubeconfig():
    """Factory building a token kubeconfig for a named cluster."""
    return build_kubeconfig


@pytest.fixture
def sample_kubeconfig() -> str:
    return build_kubeconfig("cluster-a", "https://api.cluster-a.example.com:6443")


@pytest.fixture
def bridge_settings() -> ClusterBridgeSettings:
    return ClusterBridgeSettings(tunnel=TunnelSettings(local_port=9091))


@pytest.fixture
def tunnel_opener() -> FakeTunnelOpener:
    return FakeTunnelOpener()


@pytest.fixture
def publisher() -> PublisherStub:
    return PublisherStub()


@pytest.fixture
def directory() -> ClusterDirectory:
    return ClusterDirectory()


@pytest.fixture
def supervisor(directory, bridge_settings, tunnel_opener) -> TunnelSupervisor:
    return TunnelSupervisor(directory, bridge_settings.tunnel, opener=tunnel_opener)


@pytest_asyncio.fixture
async def registered_directory(directory, sample_kubeconfig) -> ClusterDirectory:
    """Directory with cluster-a registered and active."""
    from shared.models import CredentialRecord

    connection, clients = ClientFactory().derive(sample_kubeconfig)
    record = CredentialRecord(name="cluster-a", raw=sample_kubeconfig)
    await directory.register("cluster-a", record, connection, clients)
    return directory


@pytest_asyncio.fixture
async def publisher_client(publisher) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(publisher.handler)) as client:
        yield client


@pytest.fixture
def relay(supervisor, publisher_client, bridge_settings) -> EventRelay:
    return EventRelay(supervisor, publisher_client, bridge_settings.relay)


@pytest_asyncio.fixture
async def test_client(
    bridge_settings, tunnel_opener, publisher_client
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client."""
    from app.main import app, init_state

    init_state(app, bridge_settings, publisher_client, opener=tunnel_opener)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
