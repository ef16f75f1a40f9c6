"""
Task types: what a flow is made of.

- TaskOptions: per-task overrides (yield hooks, max retries)
- TaskSpec: user-facing task entry accepted by define()
- TaskDescriptor: immutable template stored in a FlowDefinition
- TaskState: per-run mutable wrapper holding the retry counter
- TaskInfo: read-only view of the current attempt handed to tasks and handlers
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from flowcraft.executor.signal import TaskApi

__all__ = [
    "TaskFunc",
    "ErrorHandler",
    "TaskOptions",
    "TaskSpec",
    "TaskDescriptor",
    "TaskInfo",
    "TaskState",
]

TaskFunc = Callable[[dict, "TaskApi"], Union[Any, Awaitable[Any]]]
"""A task: ``func(shared_context, api)``, sync or async."""

ErrorHandler = Callable[[Exception, dict, "TaskInfo"], Union[Any, Awaitable[Any]]]
"""An error handler: ``handler(error, shared_context, task_info)``, sync or async."""

_OPTION_KEYS = {
    "yield_before": "yield_before",
    "yieldBefore": "yield_before",
    "yield_after": "yield_after",
    "yieldAfter": "yield_after",
    "max_retries": "max_retries",
    "maxRetries": "max_retries",
}


@dataclass(frozen=True)
class TaskOptions:
    """
    Task-level overrides. None means "use the flow default".

    Attributes:
        yield_before: Yield to the event loop before running the task
        yield_after: Yield to the event loop after the task completes
        max_retries: How many RETRY decisions the task may take
    """

    yield_before: bool | None = None
    yield_after: bool | None = None
    max_retries: int | None = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> TaskOptions:
        """
        Build options from a plain mapping (snake_case or camelCase keys).

        Raises:
            ValueError: If the mapping holds an unknown key
        """
        kwargs: dict[str, Any] = {}
        for key, value in mapping.items():
            name = _OPTION_KEYS.get(key)
            if name is None:
                raise ValueError(f"unknown task option {key!r}")
            kwargs[name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class TaskSpec:
    """
    A task entry as written by the user.

    Example:
        ```python
        TaskSpec(
            fetch_prices,
            id="fetch",
            on_error=lambda err, ctx, info: ErrorAction.RETRY,
            options=TaskOptions(max_retries=3),
        )
        ```
    """

    func: TaskFunc
    id: str | None = None
    on_error: ErrorHandler | None = None
    options: TaskOptions = field(default_factory=TaskOptions)


@dataclass(frozen=True)
class TaskDescriptor:
    """
    Immutable task template inside a FlowDefinition.

    Options are already resolved against the flow defaults, so the engine
    never has to look at FlowOptions to know how to run a task.
    """

    id: str
    index: int
    func: TaskFunc
    on_error: ErrorHandler | None
    yield_before: bool
    yield_after: bool
    max_retries: int


@dataclass(frozen=True)
class TaskInfo:
    """Read-only description of the current attempt."""

    id: str
    index: int
    retries: int
    max_retries: int


@dataclass
class TaskState:
    """
    Per-run clone of a TaskDescriptor.

    The descriptor itself is shared with every other run of the flow; only
    this wrapper (and its retry counter) belongs to one execution context.
    """

    descriptor: TaskDescriptor
    retries: int = 0

    @property
    def id(self) -> str:
        return self.descriptor.id

    def info(self) -> TaskInfo:
        """Snapshot of the current attempt for tasks and handlers."""
        return TaskInfo(
            id=self.descriptor.id,
            index=self.descriptor.index,
            retries=self.retries,
            max_retries=self.descriptor.max_retries,
        )
