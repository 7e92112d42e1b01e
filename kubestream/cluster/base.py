"""Contract between the streaming core and the cluster API."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager

from kubestream.models.events import WatchEvent
from kubestream.models.pods import PodInfo


class ClusterConfigError(Exception):
    """Raised when cluster credentials or the API client cannot be built."""


class StreamOpenError(Exception):
    """A container log stream could not be opened."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ClusterClient(ABC):
    """Everything the watchers and stream workers need from the cluster.

    Every method must be safe to await from the event loop and must honour
    task cancellation.
    """

    async def close(self) -> None:
        """Release connections held by the client."""

    @abstractmethod
    async def list_namespaces(self) -> list[str]:
        """Names of every namespace in the cluster."""

    @abstractmethod
    async def list_pods(self, namespace: str) -> list[PodInfo]:
        """Point-in-time list of the pods in *namespace*."""

    @abstractmethod
    def watch_pods(self, namespace: str) -> AbstractAsyncContextManager[AsyncIterator[WatchEvent]]:
        """Open a live pod event feed for *namespace*.

        The feed is released when the context exits. Running out of events
        means the server closed the feed.
        """

    @abstractmethod
    def follow_logs(
        self,
        namespace: str,
        pod: str,
        container: str,
    ) -> AbstractAsyncContextManager[AsyncIterator[str]]:
        """Open a follow-mode, timestamped log stream for one container.

        Yields complete lines without their newline. An unterminated final
        fragment is not yielded. Exhaustion means the log ended. A refusal by
        the API, or a failure to connect, raises StreamOpenError when the
        context is entered.
        """
