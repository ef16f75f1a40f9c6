"""Per-run execution state.

ExecutionContext is the live, mutable record of one flow run: where it is,
what the tasks share, and how it ended. It owns the run's completion future
and guarantees that future is settled exactly once.

Design: Single Responsibility
    Only holds state and settles the outcome. The control loop lives in
    flowcraft.executor.engine, the external surface in
    flowcraft.executor.controller.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from uuid_extensions import uuid7

from flowcraft.core.definition import FlowDefinition
from flowcraft.core.logging import LeveledLogger
from flowcraft.core.status import FlowStatus
from flowcraft.core.task import TaskState

__all__ = ["ExecutionContext", "FlowSnapshot"]


@dataclass(frozen=True)
class FlowSnapshot:
    """
    Immutable view of a run at one point in time.

    ``context`` and ``fallbacks`` are read-only shallow copies; mutating the
    values inside them is possible, replacing keys is not, and neither
    affects the live run's mapping.
    """

    flow_name: str
    execution_id: str
    status: FlowStatus
    current_task_index: int
    context: Mapping[str, Any]
    last_error: BaseException | None
    signal_data: Any
    fallbacks: Mapping[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """The snapshot in its wire shape (camelCase keys, status as a string)."""
        return {
            "flowName": self.flow_name,
            "status": self.status.value,
            "currentTaskIndex": self.current_task_index,
            "context": dict(self.context),
            "lastError": self.last_error,
            "signalData": self.signal_data,
        }


class ExecutionContext:
    """Live state of one flow run.

    Created by FlowRegistry.run() from a FlowDefinition: task templates are
    cloned into fresh TaskState objects (retries = 0) and the initial context
    mapping is shallow-copied, so nothing leaks between runs of the same flow.

    Usage:
        ```python
        ctx = ExecutionContext(definition, {"user": "ada"})
        ctx.status = FlowStatus.RUNNING
        ...
        ctx.resolve()  # settles ctx.outcome with ctx.context
        ```
    """

    def __init__(
        self,
        definition: FlowDefinition,
        initial_context: Mapping[str, Any] | None = None,
        execution_id: str | None = None,
    ):
        self.definition = definition
        self.flow_name = definition.name
        self.execution_id = execution_id or str(uuid7())

        self.tasks: list[TaskState] = [TaskState(descriptor) for descriptor in definition.tasks]
        self.context: dict[str, Any] = dict(initial_context) if initial_context else {}

        self.status = FlowStatus.IDLE
        self.current_task_index = 0
        self.last_error: BaseException | None = None
        self.signal_data: Any = None
        self.pause_requested = False

        # Values returned by error handlers in place of a task result
        self.fallbacks: dict[str, Any] = {}

        # Set when a pause is honored; resume() steps past the finished task
        self.advance_on_resume = False

        self.outcome: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._terminal_listeners: list[Callable[[ExecutionContext], None]] = []

    @property
    def log(self) -> LeveledLogger:
        return self.definition.log

    @property
    def is_running(self) -> bool:
        return self.status is FlowStatus.RUNNING

    def current_task(self) -> TaskState:
        return self.tasks[self.current_task_index]

    def add_terminal_listener(self, listener: Callable[[ExecutionContext], None]) -> None:
        """Call ``listener(self)`` once the run reaches a terminal status."""
        if self.status.is_terminal:
            listener(self)
        else:
            self._terminal_listeners.append(listener)

    def resolve(self) -> None:
        """Mark the run COMPLETED and settle the outcome with the shared context.

        No-op once the run is terminal.
        """
        if self.status.is_terminal:
            return
        self.status = FlowStatus.COMPLETED
        if not self.outcome.done():
            self.outcome.set_result(self.context)
        self._notify_terminal()

    def reject(self, status: FlowStatus, error: BaseException) -> None:
        """
        Mark the run terminal with ``status`` and settle the outcome with ``error``.

        Args:
            status: FlowStatus.ABORTED or FlowStatus.ERROR
            error: The error to reject the outcome with (also kept as last_error)

        No-op once the run is terminal.
        """
        if not status.is_terminal or status is FlowStatus.COMPLETED:
            raise ValueError(f"cannot reject a run with status {status}")
        if self.status.is_terminal:
            return
        self.status = status
        self.last_error = error
        if not self.outcome.done():
            self.outcome.set_exception(error)
        self._notify_terminal()

    def _notify_terminal(self) -> None:
        listeners, self._terminal_listeners = self._terminal_listeners, []
        for listener in listeners:
            listener(self)

    def snapshot(self) -> FlowSnapshot:
        """Immutable copy of the current state."""
        return FlowSnapshot(
            flow_name=self.flow_name,
            execution_id=self.execution_id,
            status=self.status,
            current_task_index=self.current_task_index,
            context=MappingProxyType(dict(self.context)),
            last_error=self.last_error,
            signal_data=self.signal_data,
            fallbacks=MappingProxyType(dict(self.fallbacks)),
        )

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(flow_name={self.flow_name!r}, "
            f"execution_id={self.execution_id!r}, status={self.status}, "
            f"current_task_index={self.current_task_index})"
        )
