"""Tests for the cluster directory and active-cluster selection."""

import pytest

from shared.models import CredentialRecord

from app.services import (
    ClientFactory,
    ClusterDirectory,
    ClusterNotFoundError,
    NoActiveClusterError,
)


@pytest.fixture
def derive(make_kubeconfig):
    factory = ClientFactory()

    def _derive(name: str):
        raw = make_kubeconfig(name, f"https://{name}.example.com:6443")
        connection, clients = factory.derive(raw)
        return CredentialRecord(name=name, raw=raw), connection, clients

    return _derive


class TestActive:
    async def test_active_before_registration(self, directory):
        """Test active() raises before any cluster is registered."""
        with pytest.raises(NoActiveClusterError):
            await directory.active()

    async def test_register_activates(self, directory, derive):
        """Test a registration becomes the active cluster."""
        entry = await directory.register("clusterA", *derive("clusterA"))

        assert await directory.active() is entry
        assert await directory.resolve("default") is entry

    async def test_last_registration_wins(self, directory, derive):
        """Test the most recent registration is active."""
        await directory.register("clusterA", *derive("clusterA"))
        second = await directory.register("clusterB", *derive("clusterB"))

        assert await directory.active() is second
        assert (await directory.resolve("clusterA")).name == "clusterA"

    async def test_register_without_activate(self, directory, derive):
        """Test activate=False leaves the active cluster alone."""
        first = await directory.register("clusterA", *derive("clusterA"))
        await directory.register("clusterB", *derive("clusterB"), activate=False)

        assert await directory.active() is first

    async def test_activate_switches_alias(self, directory, derive):
        """Test activate() selects an earlier registration."""
        first = await directory.register("clusterA", *derive("clusterA"))
        await directory.register("clusterB", *derive("clusterB"))

        await directory.activate("clusterA")

        assert await directory.active() is first

    async def test_activate_unknown(self, directory):
        """Test activating an unregistered name raises ClusterNotFoundError."""
        with pytest.raises(ClusterNotFoundError):
            await directory.activate("nope")

    async def test_custom_default_name(self, derive):
        """Test the default name resolving to the active cluster is configurable."""
        directory = ClusterDirectory(default_name="current")
        entry = await directory.register("clusterA", *derive("clusterA"))

        assert await directory.resolve("current") is entry

    async def test_cluster_named_default_keeps_its_entry(self, directory, derive):
        """Test a cluster registered under the default name is not replaced by later ones."""
        own = await directory.register("default", *derive("default"))
        other = await directory.register("other", *derive("other"))

        assert await directory.active() is other
        assert await directory.resolve("default") is own
        assert await directory.activate("default") is own
        assert (await directory.active()).connection.api_server == "https://default.example.com:6443"


class TestResolve:
    async def test_resolve_unknown(self, directory, derive):
        """Test unknown names raise before and after other registrations."""
        with pytest.raises(ClusterNotFoundError):
            await directory.resolve("clusterX")

        await directory.register("clusterA", *derive("clusterA"))

        with pytest.raises(ClusterNotFoundError):
            await directory.resolve("clusterX")

    async def test_overwrite_replaces_entry(self, directory, derive):
        """Test re-registering a name installs a new entry with new clients."""
        first = await directory.register("clusterA", *derive("clusterA"))
        second = await directory.register("clusterA", *derive("clusterA"))

        resolved = await directory.resolve("clusterA")

        assert resolved is second
        assert resolved.clients is not first.clients
