"""Shared fixtures for kubestream integration tests.

Provides an in-memory ClusterClient whose pod lists, watch feeds and log
streams are scripted by each test, so watchers, stream workers and the app
can be exercised end to end without touching a real Kubernetes cluster.
"""

from __future__ import annotations

import asyncio
import io
from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import pytest

from kubestream.cluster.base import ClusterClient, StreamOpenError
from kubestream.collector.tasks import TaskTracker
from kubestream.models.events import PodAdded, PodDeleted, PodModified, WatchEvent
from kubestream.models.pods import PodCondition, PodInfo
from kubestream.streams.registry import StreamRegistry
from kubestream.streams.sink import LogSink

# Pushed onto a namespace feed to make the server "close" the watch.
CLOSE = object()

LogKey = tuple[str, str, str]


# ---------------------------------------------------------------------------
# Pod factory helpers
# ---------------------------------------------------------------------------


def make_pod(
    name: str = "web-1",
    namespace: str = "default",
    containers: tuple[str, ...] = ("app",),
    init_containers: tuple[str, ...] = (),
    ready: bool = True,
    phase: str = "Running",
) -> PodInfo:
    """Create a PodInfo with sensible defaults for testing."""
    return PodInfo(
        namespace=namespace,
        name=name,
        phase=phase,
        conditions=(PodCondition("Ready", "True" if ready else "False"),),
        containers=containers,
        init_containers=init_containers,
    )


def added(pod: PodInfo) -> WatchEvent:
    return PodAdded(pod=pod)


def modified(pod: PodInfo) -> WatchEvent:
    return PodModified(pod=pod)


def deleted(pod: PodInfo) -> WatchEvent:
    return PodDeleted(pod=pod)


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll *predicate* on the event loop until it holds or *timeout* expires."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.005)


# ---------------------------------------------------------------------------
# Fake cluster
# ---------------------------------------------------------------------------


@dataclass
class LogScript:
    """What one container's log stream does once opened.

    ``open_error`` is raised when the stream is opened. Otherwise lines are
    yielded in order; then ``read_error`` is raised if set, the
    stream blocks until cancelled if ``hang`` is set, and otherwise ends.
    """

    lines: list[str] = field(default_factory=list)
    open_error: StreamOpenError | None = None
    read_error: Exception | None = None
    hang: bool = False


class FakeClusterClient(ClusterClient):
    """Scriptable in-memory cluster.

    Containers with no LogScript get ``default_log``, which hangs until the
    worker is cancelled, mimicking a long-running container.
    """

    def __init__(self, namespaces: list[str] | None = None) -> None:
        self.namespaces = namespaces or ["default"]
        self.namespace_error: Exception | None = None
        self.pods: dict[str, list[PodInfo]] = {}
        self.list_errors: dict[str, list[Exception]] = {}
        self.logs: dict[LogKey, LogScript] = {}
        self.default_log = LogScript(hang=True)

        self.list_calls: Counter[str] = Counter()
        self.watch_opens: list[str] = []
        self.watch_closes: list[str] = []
        self.log_opens: list[LogKey] = []
        self.log_closes: list[LogKey] = []
        self._feeds: dict[str, asyncio.Queue[Any]] = {}

    # -- scripting --------------------------------------------------------

    def feed(self, namespace: str) -> asyncio.Queue[Any]:
        return self._feeds.setdefault(namespace, asyncio.Queue())

    def push(self, namespace: str, *items: Any) -> None:
        """Queue watch events, ``CLOSE`` or exceptions on a namespace feed."""
        queue = self.feed(namespace)
        for item in items:
            queue.put_nowait(item)

    def open_streams(self) -> set[LogKey]:
        remaining = Counter(self.log_opens)
        remaining.subtract(self.log_closes)
        return {key for key, n in remaining.items() if n > 0}

    # -- ClusterClient ----------------------------------------------------

    async def list_namespaces(self) -> list[str]:
        if self.namespace_error is not None:
            raise self.namespace_error
        return list(self.namespaces)

    async def list_pods(self, namespace: str) -> list[PodInfo]:
        self.list_calls[namespace] += 1
        errors = self.list_errors.get(namespace)
        if errors:
            raise errors.pop(0)
        return list(self.pods.get(namespace, []))

    @asynccontextmanager
    async def watch_pods(self, namespace: str) -> AsyncIterator[AsyncIterator[WatchEvent]]:
        self.watch_opens.append(namespace)
        try:
            yield self._events(self.feed(namespace))
        finally:
            self.watch_closes.append(namespace)

    async def _events(self, queue: asyncio.Queue[Any]) -> AsyncIterator[WatchEvent]:
        while True:
            item = await queue.get()
            if item is CLOSE:
                return
            if isinstance(item, Exception):
                raise item
            yield item

    @asynccontextmanager
    async def follow_logs(self, namespace: str, pod: str, container: str) -> AsyncIterator[AsyncIterator[str]]:
        key = (namespace, pod, container)
        script = self.logs.get(key, self.default_log)
        if script.open_error is not None:
            raise script.open_error
        self.log_opens.append(key)
        try:
            yield self._lines(script)
        finally:
            self.log_closes.append(key)

    async def _lines(self, script: LogScript) -> AsyncIterator[str]:
        for line in script.lines:
            yield line
        if script.read_error is not None:
            raise script.read_error
        if script.hang:
            await asyncio.Event().wait()


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cluster() -> FakeClusterClient:
    return FakeClusterClient()


@pytest.fixture
def registry() -> StreamRegistry:
    return StreamRegistry()


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def sink(output: io.StringIO) -> LogSink:
    return LogSink(output)


@pytest.fixture
async def tracker(registry: StreamRegistry) -> AsyncIterator[TaskTracker]:
    """Task tracker whose stream workers are stopped through the registry on teardown."""
    tracker = TaskTracker()
    yield tracker
    registry.remove_all()
    await tracker.wait()
