"""Exceptions raised by flowcraft.

Taxonomy:
- Definition errors (InvalidDefinitionError, UndefinedFlowError) are raised
  synchronously from define()/run() and never retried.
- Task errors are whatever a task raises; they never escape the engine and
  surface only through the run's result.
- Control errors (FlowAbortedError) are synthesized by abort().
- TaskCancelledError replaces a cancellation that escaped a task, an error
  handler or the execution loop, so the run still settles.
"""

__all__ = [
    "FlowCraftError",
    "InvalidDefinitionError",
    "UndefinedFlowError",
    "FlowAbortedError",
    "TaskCancelledError",
]


class FlowCraftError(Exception):
    """Base class for every error raised by flowcraft itself."""

    pass


class InvalidDefinitionError(FlowCraftError):
    """A flow definition, task entry or option is malformed.

    Attributes:
        flow_name: Name of the flow being defined
        index: Position of the offending task entry, if any
    """

    def __init__(self, message: str, flow_name: str | None = None, index: int | None = None):
        super().__init__(message)
        self.flow_name = flow_name
        self.index = index

    def __repr__(self) -> str:
        return (
            f"InvalidDefinitionError({str(self)!r}, "
            f"flow_name={self.flow_name!r}, index={self.index!r})"
        )


class UndefinedFlowError(FlowCraftError):
    """run() was called with a name that was never defined."""

    def __init__(self, flow_name: str):
        super().__init__(f"Flow '{flow_name}' is not defined.")
        self.flow_name = flow_name


class FlowAbortedError(FlowCraftError):
    """A run was stopped with abort().

    Example:
        ```python
        controller.abort("user cancelled")
        try:
            await controller.result
        except FlowAbortedError as e:
            print(e.reason)  # "user cancelled"
        ```
    """

    def __init__(self, reason: str):
        super().__init__(f"Flow aborted: {reason}")
        self.reason = reason


class TaskCancelledError(FlowCraftError):
    """A task or its error handler was cancelled without the run being aborted.

    The original ``asyncio.CancelledError`` is chained as ``__cause__``.

    Attributes:
        task_id: Id of the task that was running, or None if the execution
            loop itself was cancelled between tasks
    """

    def __init__(self, task_id: str | None = None):
        if task_id is None:
            super().__init__("Execution loop was cancelled")
        else:
            super().__init__(f"Task '{task_id}' was cancelled")
        self.task_id = task_id
