"""Application bootstrap for kubestream.

Wires the components in dependency order and manages the asyncio lifecycle.
Startup order: logging -> K8s client -> namespace list -> registry/sink
              -> one watcher task per namespace -> stream count reporter

Shutdown cancels the watchers first, then stops every registered stream
through its cancel handle and waits for all workers to exit before it
reports that the streams have stopped. A cluster client built here is
closed last.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

from kubestream.cluster.base import ClusterClient, ClusterConfigError
from kubestream.collector.tasks import TaskTracker
from kubestream.collector.watcher import NamespaceWatcher
from kubestream.models.config import KubeStreamConfig
from kubestream.observability.logging import get_logger, setup_logging
from kubestream.streams.registry import StreamRegistry
from kubestream.streams.sink import LogSink

if TYPE_CHECKING:
    import structlog


class _StartupError(Exception):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class KubeStreamApp:
    """Application root.  Owns every component and coordinates their lifecycle.

    ``stop()`` is idempotent: calling it on an app that was never started,
    or was already stopped, is safe.

    Args:
        config:  Loaded configuration.
        cluster: Cluster client to use instead of one built from the kubeconfig.
        sink:    Output for tailed lines; stdout when omitted.
    """

    def __init__(
        self,
        config: KubeStreamConfig,
        cluster: ClusterClient | None = None,
        sink: LogSink | None = None,
    ) -> None:
        self.config = config
        self.registry = StreamRegistry()
        self.tracker = TaskTracker()
        self.namespaces: list[str] = []

        self._cluster = cluster
        self._owns_cluster = cluster is None
        self._sink = sink or LogSink()
        self._watcher_tasks: list[asyncio.Task[None]] = []
        self._background_tasks: list[asyncio.Task[None]] = []

        self._running = False
        self._stopping = False
        self._stopped = asyncio.Event()
        self._log: structlog.stdlib.BoundLogger = get_logger("app")

    @property
    def running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start all components in dependency order.

        Raises _StartupError if the cluster client or the namespace list
        cannot be obtained.  No watcher is started in that case.
        """
        self._log.info("kubestream starting", version=_kubestream_version())

        await self._start_cluster_client()
        await self._resolve_namespaces()
        self._start_watchers()
        self._start_reporter()

        self._running = True
        self._log.info("streaming logs from namespaces", namespaces=self.namespaces)

    async def _start_cluster_client(self) -> None:
        if self._cluster is not None:
            return
        self._log.debug("starting k8s client")
        from kubestream.cluster.kube import KubeClusterClient

        try:
            self._cluster = await KubeClusterClient.from_kubeconfig(self.config.kube.kubeconfig)
        except ClusterConfigError as exc:
            raise _StartupError("k8s_client", exc) from exc

    async def _resolve_namespaces(self) -> None:
        """Use the configured namespaces, or every namespace in the cluster."""
        assert self._cluster is not None
        if self.config.kube.namespaces:
            self.namespaces = list(self.config.kube.namespaces)
            return
        try:
            self.namespaces = await self._cluster.list_namespaces()
        except Exception as exc:
            raise _StartupError("namespaces", exc) from exc
        if not self.namespaces:
            raise _StartupError("namespaces", ValueError("cluster reported no namespaces"))

    def _start_watchers(self) -> None:
        assert self._cluster is not None
        for namespace in self.namespaces:
            watcher = NamespaceWatcher(
                namespace,
                cluster=self._cluster,
                registry=self.registry,
                sink=self._sink,
                tracker=self.tracker,
                stream_delay=self.config.stream.start_delay,
            )
            task = self.tracker.spawn(watcher.watch_with_retry(), name=f"watch:{namespace}")
            self._watcher_tasks.append(task)

    def _start_reporter(self) -> None:
        """Launch a periodic task that logs how many streams are active."""
        interval = self.config.stream.report_interval
        if interval <= 0:
            return

        async def _reporter() -> None:
            while True:
                await asyncio.sleep(interval)
                count = self.registry.count()
                if count > 0:
                    self._log.info("streams_active", streams=count, namespaces=len(self.namespaces))

        task = asyncio.create_task(_reporter(), name="stream-reporter")
        self._background_tasks.append(task)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Cancel everything and wait for every watcher and stream worker to exit."""
        if self._stopping:
            return
        self._stopping = True
        self._running = False

        self._log.info(
            "shutdown_requested",
            active_streams=self.registry.count(),
            namespaces=len(self.namespaces),
        )

        for task in self._background_tasks:
            task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

        # Watchers first so no new stream starts while the registry drains.
        for task in self._watcher_tasks:
            task.cancel()
        if self._watcher_tasks:
            await asyncio.gather(*self._watcher_tasks, return_exceptions=True)
        self._watcher_tasks.clear()

        # Every live worker is registered; its handle stops it, whether or
        # not it has started running.
        self.registry.remove_all()
        await self.tracker.wait()

        if self._owns_cluster and self._cluster is not None:
            await self._cluster.close()

        self._log.info("all streams stopped")
        self._stopped.set()

    async def wait_stopped(self) -> None:
        await self._stopped.wait()


def _kubestream_version() -> str:
    from kubestream import __version__

    return __version__


# ---------------------------------------------------------------------------
# Async entrypoint
# ---------------------------------------------------------------------------


async def main(config: KubeStreamConfig) -> None:
    """Create the app, register OS signals, run until shutdown is requested."""
    setup_logging(config.log.level, config.log.format)
    app = KubeStreamApp(config)
    loop = asyncio.get_running_loop()

    shutdown_tasks: list[asyncio.Task[None]] = []

    def _request_shutdown() -> None:
        if shutdown_tasks:
            return
        shutdown_tasks.append(asyncio.create_task(app.stop(), name="shutdown"))

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, _request_shutdown)

    try:
        await app.start()
        await app.wait_stopped()
    except _StartupError as exc:
        # A mandatory component failed; log and exit non-zero
        log = get_logger("app")
        log.critical(
            "fatal startup error",
            component=exc.component,
            error=str(exc.cause),
        )
        await app.stop()
        raise SystemExit(1) from exc
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
