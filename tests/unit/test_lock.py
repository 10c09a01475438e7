"""
tests/unit/test_lock.py - FIFO Lock tests
"""

import pytest
import asyncio


# =============================================================================
# ACQUIRE / RELEASE TESTS
# =============================================================================

class TestLockAcquire:
    """Test Lock acquire and release."""

    @pytest.mark.asyncio
    async def test_free_lock_is_acquired_immediately(self):
        """Test acquiring a free lock does not wait."""
        from txlock.locks import Lock

        lock = Lock()
        await lock.acquire()

        assert lock.locked
        assert lock.waiting == 0

    @pytest.mark.asyncio
    async def test_release_frees_lock_without_waiters(self):
        """Test release with nobody waiting marks the lock free."""
        from txlock.locks import Lock

        lock = Lock()
        await lock.acquire()
        lock.release()

        assert not lock.locked

    @pytest.mark.asyncio
    async def test_waiters_granted_in_arrival_order(self):
        """Test waiters get the lock in FIFO order."""
        from txlock.locks import Lock

        lock = Lock()
        order = []

        async def worker(n):
            await lock.acquire()
            order.append(n)
            await asyncio.sleep(0.001)
            lock.release()

        await lock.acquire()
        tasks = [asyncio.ensure_future(worker(n)) for n in range(5)]
        await asyncio.sleep(0)
        assert lock.waiting == 5

        lock.release()
        await asyncio.gather(*tasks)

        assert order == [0, 1, 2, 3, 4]
        assert not lock.locked

    @pytest.mark.asyncio
    async def test_hand_off_happens_on_next_tick(self):
        """Test release does not resume the next waiter inline."""
        from txlock.locks import Lock

        lock = Lock()
        await lock.acquire()
        waiter = asyncio.ensure_future(lock.acquire())
        await asyncio.sleep(0)

        lock.release()
        assert not waiter.done()
        # still held: the hand-off is pending, nobody may barge in
        assert lock.locked

        await asyncio.wait_for(waiter, 1)
        assert lock.locked

    @pytest.mark.asyncio
    async def test_cancelled_waiter_is_skipped(self):
        """Test a cancelled waiter does not block those behind it."""
        from txlock.locks import Lock

        lock = Lock()
        await lock.acquire()
        cancelled = asyncio.ensure_future(lock.acquire())
        patient = asyncio.ensure_future(lock.acquire())
        await asyncio.sleep(0)

        cancelled.cancel()
        await asyncio.sleep(0)
        lock.release()

        await asyncio.wait_for(patient, 1)
        assert cancelled.cancelled()
        assert lock.locked
        assert lock.waiting == 0

    @pytest.mark.asyncio
    async def test_cancel_during_hand_off_passes_lock_on(self):
        """Test a waiter cancelled after being chosen hands the lock on."""
        from txlock.locks import Lock

        lock = Lock()
        await lock.acquire()
        first = asyncio.ensure_future(lock.acquire())
        second = asyncio.ensure_future(lock.acquire())
        await asyncio.sleep(0)

        lock.release()
        first.cancel()

        await asyncio.wait_for(second, 1)
        assert lock.locked


# =============================================================================
# EXECUTE TESTS
# =============================================================================

class TestLockExecute:
    """Test Lock.execute and the async context manager."""

    @pytest.mark.asyncio
    async def test_execute_returns_result(self):
        """Test execute returns the function's result."""
        from txlock.locks import Lock

        lock = Lock()

        async def add(a, b):
            return a + b

        assert await lock.execute(add, 1, 2) == 3
        assert not lock.locked

    @pytest.mark.asyncio
    async def test_execute_accepts_plain_functions(self):
        """Test execute works with a synchronous function."""
        from txlock.locks import Lock

        lock = Lock()
        assert await lock.execute(lambda: "done") == "done"

    @pytest.mark.asyncio
    async def test_execute_releases_on_error(self):
        """Test the lock is released before the error propagates."""
        from txlock.locks import Lock

        lock = Lock()

        async def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await lock.execute(boom)

        assert not lock.locked

    @pytest.mark.asyncio
    async def test_execute_serializes_callers(self):
        """Test concurrent executes never overlap."""
        from txlock.locks import Lock

        lock = Lock()
        log = []

        async def task(n, delay):
            log.append(f"task {n} started")
            await asyncio.sleep(delay)
            log.append(f"task {n} finished")

        await asyncio.gather(lock.execute(task, 1, 0.03), lock.execute(task, 2, 0.01))

        assert log == ["task 1 started", "task 1 finished", "task 2 started", "task 2 finished"]

    @pytest.mark.asyncio
    async def test_context_manager(self):
        """Test async with acquires and releases."""
        from txlock.locks import Lock

        lock = Lock()
        async with lock:
            assert lock.locked
        assert not lock.locked
