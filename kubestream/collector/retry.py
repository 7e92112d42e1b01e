"""Exponential back-off around a namespace's watch cycle.

The loop never gives up. Delays run 1s, 2s, 4s, 8s, 16s, 32s, and the next
failure after that starts again at 1s. The counter only moves forward or
wraps; a cycle that ran fine for an hour and then failed continues from
wherever the counter was.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from kubestream.observability.logging import get_logger

_log = get_logger("collector.retry")

WATCH_RESTART_BASE_DELAY = 1.0
WATCH_RESTART_MAX_DELAY = 32.0
MAX_WATCH_RETRIES = 5


class Backoff:
    """Failure counter and delay schedule for one namespace."""

    def __init__(
        self,
        base: float = WATCH_RESTART_BASE_DELAY,
        cap: float = WATCH_RESTART_MAX_DELAY,
        max_retries: int = MAX_WATCH_RETRIES,
    ) -> None:
        self.base = base
        self.cap = cap
        self.max_retries = max_retries
        self.attempt = 0

    def next_delay(self) -> tuple[float, int, bool]:
        """Record a failure and return ``(delay, attempt, wrapped)``.

        ``attempt`` is 1-based. When the exponent ``attempt - 1`` would go
        past ``max_retries`` the counter wraps to 1, not 0, so the delay
        after a wrap is the base delay.
        """
        self.attempt += 1
        wrapped = False
        if self.attempt - 1 > self.max_retries:
            self.attempt = 1
            wrapped = True
        delay = min(self.base * (1 << (self.attempt - 1)), self.cap)
        return delay, self.attempt, wrapped


async def watch_with_retry(
    cycle: Callable[[], Awaitable[object]],
    namespace: str,
    backoff: Backoff | None = None,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> None:
    """Run *cycle* forever, backing off between failures.

    Returns only by cancellation: ``CancelledError`` raised while a cycle
    runs or while sleeping is propagated untouched.
    """
    backoff = backoff or Backoff()
    while True:
        try:
            await cycle()
            err: Exception | str = "watch cycle returned"
        except Exception as exc:  # noqa: BLE001
            err = exc

        delay, attempt, wrapped = backoff.next_delay()
        if wrapped:
            _log.warning("max watch retries exceeded, resetting backoff", namespace=namespace)
        _log.warning(
            "pod_watcher_error",
            namespace=namespace,
            error=str(err),
            retry_in=delay,
            attempt=attempt,
        )
        await sleep(delay)
