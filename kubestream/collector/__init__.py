"""Collector package for kubestream.

Watches pods namespace by namespace and tails the logs of their containers.

Submodules
----------
errors  -- WatchCycleError and friends: transient failures of one watch cycle.
retry   -- Backoff / watch_with_retry: reconnect loop with exponential back-off.
watcher -- NamespaceWatcher: list-then-watch cycle, start/stop of pod streams.
stream  -- stream_container_logs: per-container follow-mode log worker.
tasks   -- TaskTracker: completion tracking for watcher and worker tasks.
"""

from kubestream.collector.retry import Backoff, watch_with_retry
from kubestream.collector.tasks import TaskTracker
from kubestream.collector.watcher import NamespaceWatcher

__all__ = ["Backoff", "NamespaceWatcher", "TaskTracker", "watch_with_retry"]
