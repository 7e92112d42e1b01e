"""Per-container log stream worker.

A worker moves through pending-delay -> streaming -> stopped. It never
retries on its own: once the stream ends or fails, only a later pod event
can start a new worker for the same container.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from kubestream.cluster.base import ClusterClient, StreamOpenError
from kubestream.models.pods import ContainerKind
from kubestream.observability.logging import get_logger
from kubestream.streams.registry import CancelHandle, StreamIdentity, StreamRegistry
from kubestream.streams.sink import LogSink

if TYPE_CHECKING:
    import structlog

_log = get_logger("collector.stream")


def stream_prefix(identity: StreamIdentity, kind: ContainerKind) -> str:
    """Output prefix for every line of one container, e.g. ``[ns/pod/app:container] ``."""
    return f"[{identity}:{kind}] "


async def stream_container_logs(
    identity: StreamIdentity,
    kind: ContainerKind,
    *,
    cluster: ClusterClient,
    registry: StreamRegistry,
    sink: LogSink,
    handle: CancelHandle,
    start_delay: float = 0.0,
) -> None:
    """Tail one container's log into *sink* until it ends, fails or is cancelled.

    *handle* is the cancel handle registered for this worker. Whatever the
    exit path, including a cancel requested before the first step, the
    worker spends the handle, removes its own registry entry and logs
    ``log_stream_stopped`` exactly once.
    """
    log = _log.bind(namespace=identity.namespace, stream=str(identity), kind=str(kind))
    try:
        if not handle.begin():
            return
        # The log endpoint of a container that just turned ready is not
        # always available yet.
        if start_delay > 0:
            await asyncio.sleep(start_delay)
        await _pump(identity, kind, cluster, sink, log)
    finally:
        handle()
        registry.remove_without_cancel(identity, handle)
        log.info("log_stream_stopped")


async def _pump(
    identity: StreamIdentity,
    kind: ContainerKind,
    cluster: ClusterClient,
    sink: LogSink,
    log: structlog.stdlib.BoundLogger,
) -> None:
    prefix = stream_prefix(identity, kind)
    try:
        async with cluster.follow_logs(identity.namespace, identity.pod, identity.container) as lines:
            log.info("log_stream_started")
            async for line in lines:
                sink.write_line(prefix, line)
    except StreamOpenError as exc:
        log.warning("log_stream_open_failed", error=str(exc), status=exc.status)
        return
    except Exception as exc:  # noqa: BLE001
        log.warning("log_stream_read_failed", error=str(exc))
        return
    log.info("log_stream_ended")
