from __future__ import annotations

import asyncio

from docchat.processing.registry import ProcessingRegistry


async def _forever() -> None:
    await asyncio.Event().wait()


async def test_start_runs_job() -> None:
    registry = ProcessingRegistry()
    ran = asyncio.Event()

    async def job() -> None:
        ran.set()

    task = registry.start("chat-1", job)
    await task

    assert ran.is_set()
    assert not registry.is_running("chat-1")


async def test_start_replaces_running_job() -> None:
    registry = ProcessingRegistry()
    first = registry.start("chat-1", _forever)
    second = registry.start("chat-1", _forever)
    await asyncio.sleep(0)

    assert first.cancelled()
    assert registry.is_running("chat-1")
    assert registry.cancel("chat-1") is True
    await asyncio.wait([second])
    assert second.cancelled()


async def test_cancel_without_job() -> None:
    registry = ProcessingRegistry()
    assert registry.cancel("nope") is False


async def test_cancel_is_idempotent() -> None:
    registry = ProcessingRegistry()
    registry.start("chat-1", _forever)

    assert registry.cancel("chat-1") is True
    assert registry.cancel("chat-1") is False


async def test_jobs_are_independent_per_chat() -> None:
    registry = ProcessingRegistry()
    registry.start("a", _forever)
    registry.start("b", _forever)

    registry.cancel("a")
    await asyncio.sleep(0)

    assert not registry.is_running("a")
    assert registry.is_running("b")
    await registry.shutdown()


async def test_shutdown_cancels_everything() -> None:
    registry = ProcessingRegistry()
    tasks = [registry.start(str(i), _forever) for i in range(3)]

    await registry.shutdown()

    assert all(t.cancelled() for t in tasks)
    assert not any(registry.is_running(str(i)) for i in range(3))


async def test_cancel_after_job_finished_reports_nothing_running() -> None:
    registry = ProcessingRegistry()

    async def job() -> None:
        return None

    task = registry.start("chat-1", job)
    await task

    assert registry.cancel("chat-1") is False
    assert not task.cancelled()
