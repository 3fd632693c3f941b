"""Tests for KeyedMutex"""
import asyncio

import pytest

from git_worktree_keeper.exceptions import LockTimeoutError
from git_worktree_keeper.utils.mutex import KeyedMutex


class TestKeyedMutexSerialization:
    """Same key runs one at a time, in request order."""

    @pytest.mark.asyncio
    async def test_same_key_does_not_interleave(self):
        mutex = KeyedMutex()
        events = []

        async def critical(tag):
            async with mutex.hold("key"):
                events.append(f"{tag}-start")
                await asyncio.sleep(0.01)
                events.append(f"{tag}-end")

        await asyncio.gather(critical("a"), critical("b"), critical("c"))

        assert events == ["a-start", "a-end", "b-start", "b-end", "c-start", "c-end"]

    @pytest.mark.asyncio
    async def test_different_keys_run_concurrently(self):
        mutex = KeyedMutex()
        events = []

        async def critical(key):
            async with mutex.hold(key):
                events.append(f"{key}-start")
                await asyncio.sleep(0.01)
                events.append(f"{key}-end")

        await asyncio.gather(critical("x"), critical("y"))

        # Both started before either finished
        assert events[:2] == ["x-start", "y-start"]

    @pytest.mark.asyncio
    async def test_run_returns_result(self):
        mutex = KeyedMutex()

        async def work():
            return 42

        assert await mutex.run("key", work) == 42


class TestKeyedMutexRelease:
    """Locks are released on error and evicted when idle."""

    @pytest.mark.asyncio
    async def test_release_on_exception(self):
        mutex = KeyedMutex()

        with pytest.raises(RuntimeError):
            async with mutex.hold("key"):
                raise RuntimeError("boom")

        assert not mutex.is_locked("key")
        # A second holder gets in right away
        await asyncio.wait_for(mutex.run("key", lambda: asyncio.sleep(0)), timeout=1)

    @pytest.mark.asyncio
    async def test_idle_keys_are_evicted(self):
        mutex = KeyedMutex()

        async with mutex.hold("key"):
            assert mutex.is_locked("key")
            assert mutex.pending("key") == 1
            assert mutex.active_keys() == ["key"]

        assert mutex.active_keys() == []
        assert mutex.pending("key") == 0

    @pytest.mark.asyncio
    async def test_pending_counts_waiters(self):
        mutex = KeyedMutex()
        entered = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with mutex.hold("key"):
                entered.set()
                await release.wait()

        async def waiter():
            async with mutex.hold("key"):
                pass

        holder_task = asyncio.create_task(holder())
        await entered.wait()
        waiter_task = asyncio.create_task(waiter())
        await asyncio.sleep(0)

        assert mutex.pending("key") == 2

        release.set()
        await asyncio.gather(holder_task, waiter_task)
        assert mutex.pending("key") == 0


class TestKeyedMutexTimeout:
    """Optional acquisition timeout."""

    @pytest.mark.asyncio
    async def test_timeout_raises_lock_timeout_error(self):
        mutex = KeyedMutex()
        entered = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with mutex.hold("key"):
                entered.set()
                await release.wait()

        holder_task = asyncio.create_task(holder())
        await entered.wait()

        with pytest.raises(LockTimeoutError) as exc_info:
            async with mutex.hold("key", timeout=0.05):
                pass

        assert exc_info.value.key == "key"
        assert exc_info.value.timeout == 0.05
        # The timed-out waiter is no longer counted
        assert mutex.pending("key") == 1

        release.set()
        await holder_task
        assert mutex.active_keys() == []

    @pytest.mark.asyncio
    async def test_default_timeout_applies(self):
        mutex = KeyedMutex(default_timeout=0.05)
        entered = asyncio.Event()
        release = asyncio.Event()

        async def holder():
            async with mutex.hold("key"):
                entered.set()
                await release.wait()

        holder_task = asyncio.create_task(holder())
        await entered.wait()

        with pytest.raises(LockTimeoutError):
            await mutex.run("key", lambda: asyncio.sleep(0))

        release.set()
        await holder_task
