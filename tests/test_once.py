from __future__ import annotations

import asyncio

import pytest

from vke.infra.once import OnceCell

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


class Counter:
    def __init__(self, *, fail: int = 0, delay: float = 0.01) -> None:
        self.calls = 0
        self.fail = fail
        self.delay = delay

    async def __call__(self) -> int:
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.calls <= self.fail:
            raise RuntimeError(f"attempt {self.calls} failed")
        return 42


async def test_concurrent_first_calls_compute_once():
    cell: OnceCell[int] = OnceCell()
    factory = Counter()
    results = await asyncio.gather(*(cell.get(factory) for _ in range(20)))
    assert results == [42] * 20
    assert factory.calls == 1
    assert cell.done


async def test_value_is_cached_after_success():
    cell: OnceCell[int] = OnceCell()
    factory = Counter()
    await cell.get(factory)
    await cell.get(factory)
    assert factory.calls == 1


async def test_failure_reaches_every_waiter_and_is_not_cached():
    cell: OnceCell[int] = OnceCell()
    factory = Counter(fail=1)

    results = await asyncio.gather(*(cell.get(factory) for _ in range(5)), return_exceptions=True)
    assert all(isinstance(r, RuntimeError) for r in results)
    assert {str(r) for r in results} == {"attempt 1 failed"}
    assert factory.calls == 1
    assert not cell.done

    assert await cell.get(factory) == 42
    assert factory.calls == 2


async def test_reset_forces_recompute():
    cell: OnceCell[int] = OnceCell()
    factory = Counter()
    await cell.get(factory)
    cell.reset()
    assert not cell.done
    await cell.get(factory)
    assert factory.calls == 2


async def test_cancelled_waiter_does_not_abort_shared_computation():
    cell: OnceCell[int] = OnceCell()
    factory = Counter(delay=0.1)

    impatient = asyncio.create_task(cell.get(factory))
    patient = asyncio.create_task(cell.get(factory))
    await asyncio.sleep(0.02)
    impatient.cancel()

    assert await patient == 42
    with pytest.raises(asyncio.CancelledError):
        await impatient
    assert factory.calls == 1


async def test_computation_cancelled_when_last_waiter_leaves():
    cell: OnceCell[int] = OnceCell()
    factory = Counter(delay=10)

    waiter = asyncio.create_task(cell.get(factory))
    await asyncio.sleep(0.02)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter
    await asyncio.sleep(0.01)

    assert not cell.done
    factory.delay = 0.01
    assert await cell.get(factory) == 42
    assert factory.calls == 2


async def test_reset_while_pending_keeps_waiters_alive():
    cell: OnceCell[int] = OnceCell()
    factory = Counter(delay=0.1)

    waiter = asyncio.create_task(cell.get(factory))
    await asyncio.sleep(0.01)
    cell.reset()

    assert await waiter == 42
    assert await cell.get(factory) == 42
    assert factory.calls == 2


async def test_waiters_are_counted_per_computation():
    cell: OnceCell[int] = OnceCell()
    factory = Counter(delay=0.1)

    before_reset = asyncio.create_task(cell.get(factory))
    await asyncio.sleep(0.01)
    cell.reset()
    after_reset = asyncio.create_task(cell.get(factory))
    await asyncio.sleep(0.01)
    after_reset.cancel()

    assert await before_reset == 42
    with pytest.raises(asyncio.CancelledError):
        await after_reset
    await asyncio.sleep(0.01)
    assert not cell.done
    assert factory.calls == 2
