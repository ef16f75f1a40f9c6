"""
Pytest configuration and fixtures for flowcraft tests.

Provides a fresh registry per test, a polling helper for status changes and
a logger that records what the engine reports.
"""

import asyncio
from collections.abc import Awaitable, Callable

import pytest

from flowcraft import FlowRegistry


@pytest.fixture
def registry() -> FlowRegistry:
    """Isolated registry; nothing leaks between tests."""
    return FlowRegistry()


async def _wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0)


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Await until ``predicate()`` is true, yielding to the loop in between."""
    return _wait_until


class RecordingLogger:
    """FlowLogger that keeps (level, message) pairs."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def error(self, msg, *args, **kwargs):
        self.calls.append(("error", msg))

    def warning(self, msg, *args, **kwargs):
        self.calls.append(("warning", msg))

    def info(self, msg, *args, **kwargs):
        self.calls.append(("info", msg))

    def debug(self, msg, *args, **kwargs):
        self.calls.append(("debug", msg))

    def levels(self) -> set[str]:
        return {level for level, _ in self.calls}


@pytest.fixture
def recording_logger() -> RecordingLogger:
    return RecordingLogger()


def noop(ctx, api):
    """Task that does nothing."""
    return None


def record(name: str):
    """Task that appends ``name`` to ctx["order"]."""

    def _task(ctx, api):
        ctx.setdefault("order", []).append(name)
        return name

    _task.__name__ = name
    return _task


@pytest.fixture
def make_recorder():
    return record
