"""Port-forward tunnel into the active cluster.

A tunnel is a local TCP listener. Each accepted connection is relayed over
its own port-forward stream to a running pod backing the target service,
the way ``kubectl port-forward svc/<name>`` works.

Liveness is not monitored in the background; a broken tunnel is only
noticed when a forwarded request fails and the caller asks for a reopen.
"""

from __future__ import annotations

import asyncio
import socket
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable

import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException
from kubernetes.stream import portforward

from shared.config import TunnelSettings
from shared.models import TunnelInfo, TunnelState
from shared.observability import get_logger

from .cluster_directory import ClusterDirectory, ClusterEntry
from .exceptions import NoActiveClusterError, TunnelError

logger = get_logger(__name__)

BUFFER_SIZE = 64 * 1024


class TunnelHandle:
    """A local listener forwarding connections to one pod port."""

    def __init__(
        self,
        api_client: client.ApiClient,
        pod_name: str,
        pod_port: int,
        settings: TunnelSettings,
    ):
        self.pod_name = pod_name
        self.pod_port = pod_port
        self.local_host = settings.local_host
        self.remote_port = settings.remote_port
        self.target_service = settings.service_name
        self.target_namespace = settings.namespace
        self.opened_at: datetime | None = None

        self._api_client = api_client
        self._core = client.CoreV1Api(api_client)
        self._requested_port = settings.local_port
        self._bound_port: int | None = None
        self._server: asyncio.AbstractServer | None = None
        self._connections: set[asyncio.Task] = set()
        self._state = TunnelState.CLOSED
        self._released = False
        # The stream helper swaps the ApiClient's request function while it
        # runs, so port-forward calls on one client must not overlap.
        self._forward_lock = threading.Lock()

    @property
    def local_port(self) -> int:
        return self._bound_port if self._bound_port is not None else self._requested_port

    @property
    def is_open(self) -> bool:
        return self._state == TunnelState.OPEN

    @property
    def url(self) -> str:
        return f"http://{self.local_host}:{self.local_port}"

    def info(self) -> TunnelInfo:
        return TunnelInfo(
            local_host=self.local_host,
            local_port=self.local_port,
            remote_port=self.remote_port,
            target_service=self.target_service,
            target_namespace=self.target_namespace,
            pod_name=self.pod_name,
            state=self._state,
            opened_at=self.opened_at,
        )

    async def start(self, timeout: float) -> None:
        """Probe the pod and bind the local listener.

        Returns once the local port is assigned and the pod accepted a
        port-forward stream.

        Raises:
            TunnelError: If the tunnel is not ready within ``timeout``
        """
        try:
            await asyncio.wait_for(self._start(), timeout=timeout)
        except asyncio.TimeoutError as e:
            await self.close()
            raise TunnelError(
                f"Tunnel to {self.target_namespace}/{self.target_service} "
                f"not ready after {timeout}s"
            ) from e
        except TunnelError:
            await self.close()
            raise

    async def close(self) -> None:
        """Release the listener and every forwarded connection. Idempotent."""
        if self._released:
            return

        self._released = True
        self._state = TunnelState.CLOSED
        server, self._server = self._server, None
        if server is not None:
            server.close()

        connections = list(self._connections)
        for task in connections:
            task.cancel()
        await asyncio.gather(*connections, return_exceptions=True)

        if server is not None:
            await server.wait_closed()
        await asyncio.to_thread(self._api_client.close)

        logger.info(
            "Tunnel closed",
            local_port=self.local_port,
            pod=self.pod_name,
            namespace=self.target_namespace,
        )

    async def _start(self) -> None:
        await asyncio.to_thread(self._probe)

        try:
            self._server = await asyncio.start_server(
                self._handle_connection,
                host=self.local_host,
                port=self._requested_port,
            )
        except OSError as e:
            raise TunnelError(
                f"Cannot listen on {self.local_host}:{self._requested_port}: {e}"
            ) from e

        self._bound_port = self._server.sockets[0].getsockname()[1]
        self._state = TunnelState.OPEN
        self.opened_at = datetime.now(timezone.utc)

    def _probe(self) -> None:
        """Open and close one port-forward stream to check the pod accepts it."""
        forward = self._open_forward()
        try:
            if not forward.connected:
                raise TunnelError(f"Port-forward to pod {self.pod_name} closed immediately")
            error = forward.error(self.pod_port)
            if error:
                raise TunnelError(f"Port-forward to pod {self.pod_name} failed: {error}")
        finally:
            forward.close()

    def _open_forward(self):
        try:
            with self._forward_lock:
                return portforward(
                    self._core.connect_get_namespaced_pod_portforward,
                    self.pod_name,
                    self.target_namespace,
                    ports=str(self.pod_port),
                )
        except ApiException as e:
            raise TunnelError(
                f"Cannot port-forward to pod {self.target_namespace}/{self.pod_name}: {e.reason}"
            ) from e

    def _open_stream(self):
        """Open a port-forward stream and return ``(socket, closer)``."""
        forward = self._open_forward()
        return forward.socket(self.pod_port), forward.close

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        task = asyncio.current_task()
        self._connections.add(task)
        close_stream = None
        try:
            remote, close_stream = await self._connect_remote()
            remote.setblocking(False)
            await self._pump(reader, writer, remote)
        except TunnelError as e:
            logger.warning("Forwarded connection refused", error=str(e))
        except OSError as e:
            logger.debug("Forwarded connection dropped", error=str(e))
        finally:
            self._connections.discard(task)
            writer.close()
            if close_stream is not None:
                await asyncio.to_thread(close_stream)

    async def _connect_remote(self):
        """Open a stream in a worker thread.

        If the caller is cancelled while the stream is still opening, the
        stream is closed as soon as the worker hands it over.
        """
        loop = asyncio.get_running_loop()
        opening = asyncio.ensure_future(asyncio.to_thread(self._open_stream))

        def close_abandoned(future: asyncio.Future) -> None:
            if future.cancelled() or future.exception() is not None:
                return
            _, closer = future.result()
            loop.run_in_executor(None, closer)

        try:
            return await asyncio.shield(opening)
        except asyncio.CancelledError:
            opening.add_done_callback(close_abandoned)
            raise

    async def _pump(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, remote) -> None:
        loop = asyncio.get_running_loop()

        async def upstream() -> None:
            while data := await reader.read(BUFFER_SIZE):
                await loop.sock_sendall(remote, data)
            remote.shutdown(socket.SHUT_WR)

        async def downstream() -> None:
            while data := await loop.sock_recv(remote, BUFFER_SIZE):
                writer.write(data)
                await writer.drain()

        up = asyncio.create_task(upstream())
        down = asyncio.create_task(downstream())
        try:
            await asyncio.wait({up, down}, return_when=asyncio.FIRST_COMPLETED)
            # The client finished sending; let the pod finish answering.
            if up.done() and not down.done() and up.exception() is None:
                await down
        finally:
            for task in (up, down):
                task.cancel()
            await asyncio.gather(up, down, return_exceptions=True)


def resolve_service_target(
    core: client.CoreV1Api,
    service_name: str,
    namespace: str,
    service_port: int,
) -> tuple[str, int]:
    """Pick a running pod behind a service and the pod port for ``service_port``.

    Returns:
        Tuple of (pod_name, pod_port)
    """
    service = core.read_namespaced_service(service_name, namespace)
    selector = service.spec.selector or {}
    if not selector:
        raise TunnelError(f"Service {namespace}/{service_name} has no pod selector")

    target_port: int | str = service_port
    for port in service.spec.ports or []:
        if port.port == service_port and port.target_port is not None:
            target_port = port.target_port
            break

    label_selector = ",".join(f"{key}={value}" for key, value in sorted(selector.items()))
    pods = core.list_namespaced_pod(namespace, label_selector=label_selector)
    running = sorted(
        (
            pod
            for pod in pods.items
            if pod.status.phase == "Running" and pod.metadata.deletion_timestamp is None
        ),
        key=lambda pod: pod.metadata.name,
    )
    if not running:
        raise TunnelError(f"No running pod backs service {namespace}/{service_name}")
    pod = running[0]

    if isinstance(target_port, str):
        # Named target port: look it up on the pod's containers
        for container in pod.spec.containers:
            for container_port in container.ports or []:
                if container_port.name == target_port:
                    return pod.metadata.name, container_port.container_port
        raise TunnelError(
            f"Pod {pod.metadata.name} exposes no port named '{target_port}'"
        )

    return pod.metadata.name, int(target_port)


async def open_port_forward(entry: ClusterEntry, settings: TunnelSettings) -> TunnelHandle:
    """Open a port-forward tunnel to the configured service of ``entry``'s cluster."""
    api_client = entry.connection.new_api_client()
    core = client.CoreV1Api(api_client)

    try:
        pod_name, pod_port = await asyncio.to_thread(
            resolve_service_target,
            core,
            settings.service_name,
            settings.namespace,
            settings.remote_port,
        )
    except ApiException as e:
        api_client.close()
        raise TunnelError(
            f"Cannot resolve service {settings.namespace}/{settings.service_name}: "
            f"{e.status} {e.reason}"
        ) from e
    except urllib3.exceptions.HTTPError as e:
        api_client.close()
        raise TunnelError(f"Cluster API unreachable: {e}") from e
    except TunnelError:
        api_client.close()
        raise

    handle = TunnelHandle(api_client, pod_name, pod_port, settings)
    await handle.start(timeout=settings.ready_timeout_seconds)
    return handle


TunnelOpener = Callable[[ClusterEntry, TunnelSettings], Awaitable[TunnelHandle]]


class TunnelSupervisor:
    """Tracks the single process-wide tunnel into the active cluster.

    ``open`` and ``reopen`` are serialised by one lock. ``reopen`` is
    single-flight: callers that saw a stale generation get the tunnel a
    concurrent caller already reopened instead of opening another one.
    """

    def __init__(
        self,
        directory: ClusterDirectory,
        settings: TunnelSettings,
        opener: TunnelOpener = open_port_forward,
    ):
        self._directory = directory
        self._settings = settings
        self._opener = opener
        self._handle: TunnelHandle | None = None
        self._generation = 0
        self._lock = asyncio.Lock()
        self._holders = 0
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def handle(self) -> TunnelHandle | None:
        return self._handle

    def snapshot(self) -> tuple[TunnelHandle | None, int]:
        """Return the tracked handle and the generation it belongs to."""
        return self._handle, self._generation

    async def open(self) -> TunnelHandle:
        """Open a tunnel into the active cluster, replacing the tracked one.

        Raises:
            TunnelError: If no cluster is active or the tunnel cannot be opened
        """
        async with self._lock:
            return await self._open_locked()

    async def reopen(self, stale_generation: int) -> TunnelHandle:
        """Reopen after a failure observed on generation ``stale_generation``."""
        async with self._lock:
            return await self._reopen_locked(stale_generation)

    @asynccontextmanager
    async def reopened(self, stale_generation: int) -> AsyncIterator[TunnelHandle]:
        """Reopen like ``reopen`` and hold the handle until the block exits.

        A concurrent ``open`` waits for every holder to leave before it
        closes the held handle.
        """
        async with self._lock:
            handle = await self._reopen_locked(stale_generation)
            self._holders += 1
            self._idle.clear()
        try:
            yield handle
        finally:
            self._holders -= 1
            if not self._holders:
                self._idle.set()

    async def close(self, handle: TunnelHandle | None = None) -> None:
        """Close ``handle`` (default: the tracked one). Closing twice is a no-op."""
        async with self._lock:
            target = handle or self._handle
            if target is None:
                return
            await target.close()
            if target is self._handle:
                self._handle = None

    async def shutdown(self) -> None:
        await self.close()

    async def _reopen_locked(self, stale_generation: int) -> TunnelHandle:
        if (
            self._generation != stale_generation
            and self._handle is not None
            and self._handle.is_open
        ):
            logger.debug(
                "Tunnel already reopened",
                generation=self._generation,
                stale_generation=stale_generation,
            )
            return self._handle
        return await self._open_locked()

    async def _open_locked(self) -> TunnelHandle:
        try:
            entry = await self._directory.active()
        except NoActiveClusterError as e:
            raise TunnelError(f"Cannot open tunnel: {e}") from e

        # Retries holding the current handle finish before it is replaced.
        await self._idle.wait()
        # The previous listener holds the local port; release it first.
        if self._handle is not None:
            previous, self._handle = self._handle, None
            await previous.close()

        handle = await self._opener(entry, self._settings)
        self._handle = handle
        self._generation += 1

        logger.info(
            "Tunnel opened",
            cluster=entry.name,
            local_port=handle.local_port,
            service=f"{self._settings.namespace}/{self._settings.service_name}",
            generation=self._generation,
        )
        return handle
