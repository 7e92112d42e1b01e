"""Registry of active log streams.

At most one stream exists per (namespace, pod, container). The namespace
watchers add and force-remove entries; each stream worker removes its own
entry when it exits. Every mutation happens under one lock, and nothing is
awaited while the lock is held.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True)
class StreamIdentity:
    """Registry key for one container's log stream."""

    namespace: str
    pod: str
    container: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.pod}/{self.container}"


class CancelHandle:
    """Single-shot, idempotent cancellation for one stream worker task.

    The handle is created before its task and bound with ``attach``. The
    worker calls ``begin()`` on its first step. A request that arrives
    before then is only recorded: a task cancelled before it first runs
    never enters its ``try`` block, so it would skip its cleanup. ``begin()``
    returns False instead and the worker leaves through its cleanup path.

    Calling the handle more than once has no further effect. A worker that
    invokes its own handle during cleanup is not cancelled; the handle is
    only marked as spent.
    """

    def __init__(self) -> None:
        self._task: asyncio.Task[None] | None = None
        self._cancelled = False
        self._started = False
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def attach(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def begin(self) -> bool:
        """Mark the worker as running. False when cancellation was already requested."""
        with self._lock:
            self._started = True
            return not self._cancelled

    def __call__(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            started = self._started
        task = self._task
        if not started or task is None or task.done():
            return
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        if task is not current:
            task.cancel()


@dataclass
class StreamEntry:
    cancel: CancelHandle
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


class StreamRegistry:
    """Thread-safe map of StreamIdentity -> StreamEntry.

    One plain lock guards every operation, so reads such as ``exists``,
    ``get`` and ``count`` are serialized with each other as well as with
    writes.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._streams: dict[StreamIdentity, StreamEntry] = {}

    def add(self, identity: StreamIdentity, cancel: CancelHandle) -> StreamEntry:
        """Insert an entry, silently replacing any existing one."""
        entry = StreamEntry(cancel=cancel)
        with self._lock:
            self._streams[identity] = entry
        return entry

    def add_if_absent(self, identity: StreamIdentity, launch: Callable[[], CancelHandle]) -> bool:
        """Register a new stream unless one already exists.

        ``launch`` is called only when the identity is absent, inside the
        same lock acquisition as the existence check. It must not block.
        Returns True when a stream was registered.
        """
        with self._lock:
            if identity in self._streams:
                return False
            self._streams[identity] = StreamEntry(cancel=launch())
            return True

    def remove(self, identity: StreamIdentity) -> None:
        """Cancel and delete the entry. Removing an absent identity is a no-op."""
        with self._lock:
            entry = self._streams.pop(identity, None)
            if entry is not None:
                entry.cancel()

    def remove_without_cancel(self, identity: StreamIdentity, handle: CancelHandle | None = None) -> None:
        """Delete the entry without cancelling it.

        Used by a worker deregistering itself after it already invoked its
        own handle. When ``handle`` is given, an entry registered under the
        same identity with a different handle is left alone.
        """
        with self._lock:
            entry = self._streams.get(identity)
            if entry is None or (handle is not None and entry.cancel is not handle):
                return
            self._streams.pop(identity, None)

    def remove_all(self) -> None:
        """Cancel and delete every entry."""
        with self._lock:
            entries = list(self._streams.values())
            self._streams.clear()
            for entry in entries:
                entry.cancel()

    def exists(self, identity: StreamIdentity) -> bool:
        with self._lock:
            return identity in self._streams

    def get(self, identity: StreamIdentity) -> StreamEntry | None:
        with self._lock:
            return self._streams.get(identity)

    def count(self) -> int:
        with self._lock:
            return len(self._streams)

    def active(self) -> list[tuple[StreamIdentity, StreamEntry]]:
        """Snapshot of the current entries."""
        with self._lock:
            return list(self._streams.items())

    def __len__(self) -> int:
        return self.count()
