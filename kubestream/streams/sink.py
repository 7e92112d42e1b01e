"""Serialized output for prefixed log lines."""

from __future__ import annotations

import sys
import threading
from typing import TextIO


class LogSink:
    """Writes whole lines to one text stream; concurrent writers never interleave."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._lock = threading.Lock()

    def write_line(self, prefix: str, line: str) -> None:
        with self._lock:
            self._stream.write(f"{prefix}{line}\n")
            self._stream.flush()
