"""Stream bookkeeping shared by every watcher and worker.

Submodules
----------
registry -- StreamRegistry: at most one active stream per container.
sink     -- LogSink: line-atomic output shared by all workers.
"""

from kubestream.streams.registry import CancelHandle, StreamEntry, StreamIdentity, StreamRegistry
from kubestream.streams.sink import LogSink

__all__ = ["CancelHandle", "LogSink", "StreamEntry", "StreamIdentity", "StreamRegistry"]
