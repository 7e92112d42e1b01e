"""Tests for StreamRegistry and CancelHandle.

Covers uniqueness, forced vs. self removal, bulk teardown and the
idempotence of cancellation handles.
"""

from __future__ import annotations

import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from kubestream.streams.registry import CancelHandle, StreamEntry, StreamIdentity, StreamRegistry

_ID = StreamIdentity("ns", "pod", "app")
_OTHER = StreamIdentity("ns", "pod", "sidecar")


# ---------------------------------------------------------------------------
# StreamIdentity
# ---------------------------------------------------------------------------


class TestStreamIdentity:
    def test_str_is_slash_joined(self) -> None:
        """The string form joins namespace, pod and container with slashes."""
        assert str(_ID) == "ns/pod/app"

    def test_equal_identities_share_a_key(self) -> None:
        """Identities with equal fields hash and compare as one key."""
        assert StreamIdentity("ns", "pod", "app") == _ID
        assert len({_ID, StreamIdentity("ns", "pod", "app")}) == 1


# ---------------------------------------------------------------------------
# Add / exists / count
# ---------------------------------------------------------------------------


class TestAdd:
    def test_add_then_exists(self) -> None:
        """An added identity is reported by exists() and get()."""
        registry = StreamRegistry()
        registry.add(_ID, MagicMock())
        assert registry.exists(_ID)
        assert registry.get(_ID) is not None

    def test_add_twice_does_not_double_count(self) -> None:
        """Adding the same identity twice leaves one entry."""
        registry = StreamRegistry()
        registry.add(_ID, MagicMock())
        registry.add(_ID, MagicMock())
        assert registry.count() == 1
        assert len(registry) == 1

    def test_add_overwrites_existing_entry(self) -> None:
        """add() replaces the previous entry without calling its handle."""
        registry = StreamRegistry()
        first = MagicMock()
        second = MagicMock()
        registry.add(_ID, first)
        registry.add(_ID, second)
        entry = registry.get(_ID)
        assert entry is not None
        assert entry.cancel is second
        first.assert_not_called()

    def test_entry_records_start_time(self) -> None:
        """Each entry carries a timezone-aware start time."""
        registry = StreamRegistry()
        entry = registry.add(_ID, MagicMock())
        assert entry.started_at.tzinfo is not None

    def test_get_missing_returns_none(self) -> None:
        """get() on an unknown identity returns None."""
        assert StreamRegistry().get(_ID) is None


class TestAddIfAbsent:
    def test_launch_called_only_when_absent(self) -> None:
        """add_if_absent() launches only for an identity not yet registered."""
        registry = StreamRegistry()
        launch = MagicMock(return_value=MagicMock())

        assert registry.add_if_absent(_ID, launch) is True
        assert registry.add_if_absent(_ID, launch) is False

        launch.assert_called_once()
        assert registry.count() == 1

    def test_concurrent_callers_register_once(self) -> None:
        """Racing threads register a single stream and launch it once."""
        registry = StreamRegistry()
        launches: list[int] = []
        barrier = threading.Barrier(8)

        def launch() -> MagicMock:
            launches.append(1)
            return MagicMock()

        def worker() -> None:
            barrier.wait()
            registry.add_if_absent(_ID, launch)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(launches) == 1
        assert registry.count() == 1


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------


class TestRemove:
    def test_remove_cancels_and_deletes(self) -> None:
        """Forced removal invokes the entry's handle and drops the entry."""
        registry = StreamRegistry()
        cancel = MagicMock()
        registry.add(_ID, cancel)

        registry.remove(_ID)

        cancel.assert_called_once()
        assert not registry.exists(_ID)

    def test_remove_absent_is_noop(self) -> None:
        """Removing an identity that was never added changes nothing."""
        registry = StreamRegistry()
        registry.remove(_ID)
        assert registry.count() == 0

    def test_remove_without_cancel_keeps_handle_untouched(self) -> None:
        """Self removal drops the entry without invoking its handle."""
        registry = StreamRegistry()
        cancel = MagicMock()
        registry.add(_ID, cancel)

        registry.remove_without_cancel(_ID)

        cancel.assert_not_called()
        assert not registry.exists(_ID)

    def test_remove_without_cancel_spares_newer_entry(self) -> None:
        """A stale worker's handle does not remove the entry that replaced it."""
        registry = StreamRegistry()
        old = CancelHandle()
        registry.add(_ID, old)
        registry.remove(_ID)
        newer = registry.add(_ID, CancelHandle())

        registry.remove_without_cancel(_ID, old)

        assert registry.get(_ID) is newer

    def test_remove_without_cancel_with_matching_handle(self) -> None:
        """The worker's own handle removes its own entry."""
        registry = StreamRegistry()
        handle = CancelHandle()
        registry.add(_ID, handle)
        registry.remove_without_cancel(_ID, handle)
        assert not registry.exists(_ID)

    def test_self_cleanup_after_forced_remove_cancels_once(self) -> None:
        """Forced removal followed by worker cleanup spends the handle once."""
        registry = StreamRegistry()
        handle = CancelHandle()
        registry.add(_ID, handle)

        registry.remove(_ID)
        # worker cleanup: own handle, then the no-cancel path
        handle()
        registry.remove_without_cancel(_ID, handle)

        assert handle.cancelled
        assert registry.count() == 0


class TestRemoveAll:
    def test_remove_all_cancels_every_entry_once(self) -> None:
        """Bulk teardown invokes each handle exactly once and empties the map."""
        registry = StreamRegistry()
        handles = [MagicMock() for _ in range(3)]
        for i, handle in enumerate(handles):
            registry.add(StreamIdentity("ns", f"pod-{i}", "app"), handle)

        registry.remove_all()

        assert registry.count() == 0
        for handle in handles:
            handle.assert_called_once()

    def test_remove_all_on_empty_registry(self) -> None:
        """Bulk teardown of an empty registry is a no-op."""
        registry = StreamRegistry()
        registry.remove_all()
        assert registry.count() == 0

    def test_active_snapshot(self) -> None:
        """active() returns every current identity with its entry."""
        registry = StreamRegistry()
        registry.add(_ID, MagicMock())
        registry.add(_OTHER, MagicMock())
        snapshot = dict(registry.active())
        assert set(snapshot) == {_ID, _OTHER}
        assert all(isinstance(e, StreamEntry) for e in snapshot.values())


# ---------------------------------------------------------------------------
# CancelHandle
# ---------------------------------------------------------------------------


def _started_worker(handle: CancelHandle, started: asyncio.Event) -> asyncio.Task[None]:
    async def worker() -> None:
        handle.begin()
        started.set()
        await asyncio.sleep(10)

    task = asyncio.create_task(worker())
    handle.attach(task)
    return task


class TestCancelHandle:
    async def test_cancels_started_task_exactly_once(self) -> None:
        """A running worker is cancelled once no matter how often the handle is called."""
        handle = CancelHandle()
        started = asyncio.Event()
        task = _started_worker(handle, started)
        await started.wait()

        handle()
        handle()

        assert task.cancelling() == 1
        with pytest.raises(asyncio.CancelledError):
            await task
        assert handle.cancelled

    async def test_cancel_before_begin_lets_worker_run_its_cleanup(self) -> None:
        """A handle spent before the worker starts leaves the task alone and begin() refuses."""
        handle = CancelHandle()
        cleaned: list[bool] = []

        async def worker() -> None:
            try:
                if not handle.begin():
                    return
                await asyncio.sleep(10)
            finally:
                cleaned.append(True)

        task = asyncio.create_task(worker())
        handle.attach(task)
        handle()

        await task
        assert not task.cancelled()
        assert cleaned == [True]
        assert handle.cancelled

    def test_begin_without_cancel_returns_true(self) -> None:
        """begin() on a fresh handle reports that the worker may proceed."""
        handle = CancelHandle()
        assert handle.begin() is True
        assert not handle.cancelled

    def test_begin_after_cancel_returns_false(self) -> None:
        """begin() after the handle was called reports that the worker must stop."""
        handle = CancelHandle()
        handle()
        assert handle.begin() is False

    async def test_handle_on_finished_task_is_harmless(self) -> None:
        """Calling the handle of a task that already finished only marks it spent."""
        handle = CancelHandle()
        task = asyncio.create_task(asyncio.sleep(0))
        handle.attach(task)
        handle.begin()
        await task
        handle()
        assert handle.cancelled
        assert not task.cancelled()

    async def test_worker_calling_its_own_handle_is_not_cancelled(self) -> None:
        """A worker spending its own handle during cleanup keeps running to completion."""
        handle = CancelHandle()

        async def worker() -> str:
            handle.begin()
            await asyncio.sleep(0)
            handle()
            await asyncio.sleep(0)
            return "done"

        task = asyncio.create_task(worker())
        handle.attach(task)

        assert await task == "done"
        assert handle.cancelled

    def test_handle_without_task(self) -> None:
        """A handle with no attached task can still be spent, idempotently."""
        handle = CancelHandle()
        assert not handle.cancelled
        handle()
        handle()
        assert handle.cancelled
