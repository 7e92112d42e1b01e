"""Errors that end one namespace watch cycle.

All of them are transient: the retry loop logs them and reconnects.
"""

from __future__ import annotations


class WatchCycleError(Exception):
    """Base class; always names the namespace being watched."""

    def __init__(self, namespace: str, reason: str) -> None:
        super().__init__(f"{reason} (namespace {namespace})")
        self.namespace = namespace
        self.reason = reason


class PodListError(WatchCycleError):
    """Listing the namespace's existing pods failed."""


class WatchFeedError(WatchCycleError):
    """The pod event feed could not be opened or broke mid-stream."""


class WatchClosedError(WatchCycleError):
    """The pod event feed ended."""


class WatchEventError(WatchCycleError):
    """The feed delivered an ERROR event."""
