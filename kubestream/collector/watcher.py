"""Per-namespace pod watcher.

One cycle lists the namespace's pods and starts streams for the ready ones,
then follows the pod event feed, starting and stopping streams as pods
turn ready, unready or go away. ``watch_with_retry`` repeats cycles
forever with exponential back-off.
"""

from __future__ import annotations

import functools
from typing import NoReturn, assert_never

from kubestream.cluster.base import ClusterClient
from kubestream.collector.errors import (
    PodListError,
    WatchClosedError,
    WatchEventError,
    WatchFeedError,
)
from kubestream.collector.retry import Backoff, watch_with_retry
from kubestream.collector.stream import stream_container_logs
from kubestream.collector.tasks import TaskTracker
from kubestream.models.events import (
    PodAdded,
    PodDeleted,
    PodModified,
    UnrecognizedEvent,
    WatchEvent,
    WatchFailed,
)
from kubestream.models.pods import ContainerKind, PodInfo, enumerate_containers, is_pod_ready
from kubestream.observability.logging import get_logger
from kubestream.streams.registry import CancelHandle, StreamIdentity, StreamRegistry
from kubestream.streams.sink import LogSink

_log = get_logger("collector.watcher")


class NamespaceWatcher:
    """Keeps one namespace's container log streams in step with its pods.

    Holds no mutable state of its own: streams live in the shared registry,
    retry counters live in the retry loop.
    """

    def __init__(
        self,
        namespace: str,
        cluster: ClusterClient,
        registry: StreamRegistry,
        sink: LogSink,
        tracker: TaskTracker,
        stream_delay: float = 0.0,
    ) -> None:
        self.namespace = namespace
        self.stream_delay = stream_delay
        self._cluster = cluster
        self._registry = registry
        self._sink = sink
        self._tracker = tracker

    async def watch_with_retry(self, backoff: Backoff | None = None) -> None:
        await watch_with_retry(self.watch, self.namespace, backoff=backoff)

    async def watch(self) -> NoReturn:
        """Run one reconcile-then-follow cycle; always ends by raising."""
        try:
            pods = await self._cluster.list_pods(self.namespace)
        except Exception as exc:  # noqa: BLE001
            raise PodListError(self.namespace, f"error listing existing pods: {exc}") from exc

        for pod in pods:
            if is_pod_ready(pod):
                self.start_pod_streams(pod)

        try:
            async with self._cluster.watch_pods(self.namespace) as events:
                _log.info("watching pods", namespace=self.namespace)
                async for event in events:
                    self._dispatch(event)
        except WatchEventError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise WatchFeedError(self.namespace, f"pod watch failed: {exc}") from exc
        raise WatchClosedError(self.namespace, "pod watcher channel closed")

    def _dispatch(self, event: WatchEvent) -> None:
        match event:
            case PodAdded(pod=pod) | PodModified(pod=pod):
                if is_pod_ready(pod):
                    self.start_pod_streams(pod)
                else:
                    self.stop_pod_streams(pod)
            case PodDeleted(pod=pod):
                self.stop_pod_streams(pod)
            case WatchFailed(message=None):
                raise WatchEventError(self.namespace, "unknown watch error")
            case WatchFailed(message=message):
                raise WatchEventError(self.namespace, f"watch error: {message}")
            case UnrecognizedEvent(event_type=event_type, detail=detail):
                _log.warning(
                    "unexpected_watch_event",
                    namespace=self.namespace,
                    event_type=event_type,
                    detail=detail,
                )
            case _:
                assert_never(event)

    def _identity(self, pod: PodInfo, container: str) -> StreamIdentity:
        return StreamIdentity(pod.namespace or self.namespace, pod.name, container)

    def start_pod_streams(self, pod: PodInfo) -> None:
        """Start a worker for every container of *pod* that has none yet."""
        for descriptor in enumerate_containers(pod):
            identity = self._identity(pod, descriptor.name)
            self._registry.add_if_absent(identity, functools.partial(self._launch, identity, descriptor.kind))

    def _launch(self, identity: StreamIdentity, kind: ContainerKind) -> CancelHandle:
        handle = CancelHandle()
        task = self._tracker.spawn(
            stream_container_logs(
                identity,
                kind,
                cluster=self._cluster,
                registry=self._registry,
                sink=self._sink,
                handle=handle,
                start_delay=self.stream_delay,
            ),
            name=f"stream:{identity}",
        )
        handle.attach(task)
        return handle

    def stop_pod_streams(self, pod: PodInfo) -> None:
        """Cancel and deregister every container stream of *pod*."""
        for descriptor in enumerate_containers(pod):
            self._registry.remove(self._identity(pod, descriptor.name))
