"""In-band signaling from a task to the engine.

Each attempt of a task gets its own TaskApi (the attempt handle). The task
may call ``api.signal(...)`` any number of times; only the last call made
before the task returns is honored. Returning ``SignalType.PAUSE`` counts as
a PAUSE signal.

Design: Information Hiding (Parnas)
    The engine never inspects closures or task internals; it reads one
    PauseRequest (or None) from the handle once the attempt is over.
"""

from dataclasses import dataclass
from typing import Any

from flowcraft.core.logging import LeveledLogger
from flowcraft.core.status import SignalType
from flowcraft.core.task import TaskInfo

__all__ = ["TaskApi", "PauseRequest", "Signal"]


@dataclass(frozen=True)
class Signal:
    """One signal sent by a task."""

    type: SignalType | str
    data: Any = None


@dataclass(frozen=True)
class PauseRequest:
    """A task asked the flow to pause after it completes."""

    task_id: str
    data: Any = None


class TaskApi:
    """Attempt handle passed to a task as its second argument.

    Example:
        ```python
        async def review(ctx, api):
            if ctx["needs_review"]:
                api.signal(SignalType.PAUSE, {"reviewer": "ops"})
            return api.task_info.retries
        ```
    """

    def __init__(self, task_info: TaskInfo, log: LeveledLogger | None = None):
        self._task_info = task_info
        self._log = log
        self._last: Signal | None = None
        self._closed = False

    @property
    def task_info(self) -> TaskInfo:
        """Read-only description of this attempt."""
        return self._task_info

    @property
    def last_signal(self) -> Signal | None:
        return self._last

    def signal(self, type: SignalType | str, data: Any = None) -> None:
        """
        Send a signal to the engine; replaces any earlier signal of this attempt.

        Calls made after the attempt finished are ignored.
        """
        if self._closed:
            if self._log is not None:
                self._log.warning(
                    f"Task '{self._task_info.id}' signaled {type} after it finished; ignored"
                )
            return
        self._last = Signal(type=type, data=data)
        if self._log is not None:
            self._log.info(f"Task '{self._task_info.id}' signaled: {type}")

    def close(self, result: Any = None) -> PauseRequest | None:
        """
        End the attempt and return the pause request it produced, if any.

        Args:
            result: The value the task returned; ``SignalType.PAUSE`` is the
                pause sentinel.
        """
        self._closed = True
        last = self._last
        if last is not None and SignalType.lookup(last.type) is SignalType.PAUSE:
            return PauseRequest(task_id=self._task_info.id, data=last.data)
        if SignalType.lookup(result) is SignalType.PAUSE:
            return PauseRequest(task_id=self._task_info.id)
        if last is not None and self._log is not None:
            self._log.debug(f"Task '{self._task_info.id}' signal {last.type} has no effect")
        return None

    def __repr__(self) -> str:
        return f"TaskApi(task_info={self._task_info!r}, last_signal={self._last!r})"
