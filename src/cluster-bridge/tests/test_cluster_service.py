"""Tests for cluster registration and activation."""

import asyncio
import threading

import pytest

from app.services import (
    ClientFactory,
    ClusterService,
    CredentialNotFoundError,
    CredentialParseError,
    CredentialRegistry,
    NoActiveClusterError,
    TunnelError,
)


class FlakyFactory(ClientFactory):
    """Fails the first derivation, then behaves normally."""

    def __init__(self):
        self.calls = 0

    def derive(self, raw):
        self.calls += 1
        if self.calls == 1:
            raise CredentialParseError("Malformed kubeconfig: temporary")
        return super().derive(raw)


class GatedFactory(ClientFactory):
    """Blocks derivation until the test releases it from the event loop."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.released_in_time = False

    def derive(self, raw):
        self.entered.set()
        self.released_in_time = self.release.wait(timeout=2)
        return super().derive(raw)


@pytest.fixture
def registry():
    return CredentialRegistry()


@pytest.fixture
def service(registry, directory, supervisor):
    return ClusterService(registry, ClientFactory(), directory, supervisor)


class TestRegister:
    async def test_register_activates_and_opens_tunnel(
        self, service, directory, supervisor, sample_kubeconfig
    ):
        """Test registration stores, activates and opens the tunnel."""
        entry = await service.register("clusterA", sample_kubeconfig)

        assert (await directory.active()) is entry
        assert supervisor.handle is not None and supervisor.handle.is_open
        assert await service.list_names() == ["clusterA"]

    async def test_reregistration_switches_tunnel(
        self, service, tunnel_opener, make_kubeconfig
    ):
        """Test registering a second cluster moves the tunnel to it."""
        await service.register("clusterA", make_kubeconfig("a", "https://a.example.com:6443"))
        await service.register("clusterB", make_kubeconfig("b", "https://b.example.com:6443"))

        assert tunnel_opener.calls == ["clusterA", "clusterB"]
        assert tunnel_opener.events == ["open:9091", "close:9091", "open:9092"]

    async def test_parse_failure_keeps_credential(self, service, directory, registry):
        """Test a malformed kubeconfig is stored but never becomes active."""
        with pytest.raises(CredentialParseError):
            await service.register("broken", "not: [valid")

        assert await registry.list_names() == ["broken"]
        with pytest.raises(NoActiveClusterError):
            await directory.active()

    async def test_tunnel_failure_propagates(
        self, service, directory, tunnel_opener, sample_kubeconfig
    ):
        """Test a tunnel that cannot be opened fails the registration."""
        tunnel_opener.fail = True

        with pytest.raises(TunnelError):
            await service.register("clusterA", sample_kubeconfig)

        assert (await directory.active()).name == "clusterA"


class TestActivate:
    async def test_activate_registered(self, service, tunnel_opener, make_kubeconfig):
        """Test activating an earlier cluster reopens the tunnel into it."""
        await service.register("clusterA", make_kubeconfig("a", "https://a.example.com:6443"))
        await service.register("clusterB", make_kubeconfig("b", "https://b.example.com:6443"))

        entry = await service.activate("clusterA")

        assert entry.name == "clusterA"
        assert tunnel_opener.calls == ["clusterA", "clusterB", "clusterA"]
        assert (await service.active_summary()).name == "clusterA"

    async def test_activate_recovers_failed_derivation(
        self, registry, directory, supervisor, sample_kubeconfig
    ):
        """Test a stored credential whose derivation failed is derived again."""
        service = ClusterService(registry, FlakyFactory(), directory, supervisor)
        with pytest.raises(CredentialParseError):
            await service.register("clusterA", sample_kubeconfig)

        entry = await service.activate("clusterA")

        assert (await directory.active()) is entry
        assert supervisor.handle is not None

    async def test_activate_unknown(self, service):
        """Test activating a name nobody registered raises not-found."""
        with pytest.raises(CredentialNotFoundError):
            await service.activate("missing")


class TestActiveSummary:
    async def test_summary(self, service, sample_kubeconfig):
        """Test the summary names the cluster, server and tunnel."""
        await service.register("clusterA", sample_kubeconfig)

        summary = await service.active_summary()

        assert summary.name == "clusterA"
        assert summary.connection.api_server == "https://api.cluster-a.example.com:6443"
        assert summary.tunnel.local_port == 9091

    async def test_summary_without_cluster(self, service):
        """Test no active cluster raises NoActiveClusterError."""
        with pytest.raises(NoActiveClusterError):
            await service.active_summary()


class TestConcurrency:
    async def test_derivation_runs_off_the_event_loop(
        self, registry, directory, supervisor, sample_kubeconfig
    ):
        """Test the loop keeps running while a kubeconfig is being derived."""
        factory = GatedFactory()
        service = ClusterService(registry, factory, directory, supervisor)

        task = asyncio.create_task(service.register("clusterA", sample_kubeconfig))
        while not factory.entered.is_set():
            await asyncio.sleep(0.01)
        factory.release.set()
        entry = await task

        assert factory.released_in_time
        assert (await directory.active()) is entry
