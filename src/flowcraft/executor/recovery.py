"""Error-recovery protocol.

Turns a task failure into one of three decisions:
- Retry: run the same task again without advancing
- Advance: move on (SKIP, or a fallback value returned by the handler)
- Terminate: end the run with status ERROR

Handler resolution order:
1. The task's own on_error handler, if it has one. Its answer is final;
   the flow-level handler is not consulted, even when the task handler raises.
2. Otherwise the flow-level on_error handler.
3. No handler, or the handler raised: ABORT.

Design: Information Hiding (Parnas)
Retry and skip policy is isolated here so the engine loop only has to act
on a decision.
"""

import inspect
from dataclasses import dataclass
from typing import Any

from flowcraft.core.context import ExecutionContext
from flowcraft.core.status import ErrorAction
from flowcraft.core.task import ErrorHandler, TaskInfo, TaskState

__all__ = [
    "Retry",
    "Advance",
    "Terminate",
    "Recovery",
    "call_error_handler",
    "decide",
    "recover",
]


@dataclass(frozen=True)
class Retry:
    """Re-invoke the failed task at the same index."""

    attempt: int
    max_retries: int


@dataclass(frozen=True)
class Advance:
    """
    Continue with the next task.

    Attributes:
        fallback: Value the handler returned instead of an ErrorAction
        substituted: True for a fallback value, False for an explicit SKIP
    """

    fallback: Any = None
    substituted: bool = False


@dataclass(frozen=True)
class Terminate:
    """End the run with status ERROR; ``error`` is the original task error."""

    error: Exception
    retries_exhausted: bool = False


Recovery = Retry | Advance | Terminate


async def call_error_handler(
    ctx: ExecutionContext, task: TaskState, error: Exception, info: TaskInfo
) -> Any:
    """
    Run the handler responsible for ``task`` and return its raw answer.

    Returns ErrorAction.ABORT when there is no handler or the handler itself
    raised (the handler error is logged, never propagated).
    """
    handler: ErrorHandler | None = task.descriptor.on_error
    scope = "task-specific"
    if handler is None:
        handler = ctx.definition.options.on_error
        scope = "flow-level"
    if handler is None:
        return ErrorAction.ABORT

    log = ctx.log
    log.debug(f"Calling {scope} onError for task '{task.id}'")
    try:
        action = handler(error, ctx.context, info)
        if inspect.isawaitable(action):
            action = await action
    except Exception as handler_error:
        log.error(
            f"Error in {scope} onError handler for task '{task.id}': {handler_error!r}"
        )
        return ErrorAction.ABORT
    return action


def decide(ctx: ExecutionContext, task: TaskState, error: Exception, action: Any) -> Recovery:
    """
    Interpret a handler answer and update the task's retry counter.

    RETRY increments the counter and is honored while it stays within
    max_retries; past that it becomes a Terminate. SKIP and fallback values
    reset the counter. Actions match by value, so plain strings such as
    "FLOWCRAFT_SKIP" count as the corresponding ErrorAction.
    """
    log = ctx.log
    max_retries = task.descriptor.max_retries
    kind = ErrorAction.lookup(action)

    if kind is ErrorAction.RETRY:
        task.retries += 1
        if task.retries <= max_retries:
            log.warning(
                f"Retrying task '{task.id}' (Attempt {task.retries}/{max_retries})..."
            )
            return Retry(attempt=task.retries, max_retries=max_retries)
        log.error(f"Max retries ({max_retries}) exceeded for task '{task.id}'. Aborting.")
        return Terminate(error=error, retries_exhausted=True)

    if kind is ErrorAction.SKIP:
        log.warning(f"Skipping failed task '{task.id}'.")
        task.retries = 0
        return Advance()

    if kind is ErrorAction.ABORT:
        return Terminate(error=error)

    log.info(f"Error handled for task '{task.id}'. Using fallback value: {action!r}")
    task.retries = 0
    ctx.fallbacks[task.id] = action
    return Advance(fallback=action, substituted=True)


async def recover(ctx: ExecutionContext, task: TaskState, error: Exception) -> Recovery:
    """
    Full recovery protocol for one task failure.

    Records ``error`` as the run's last_error, asks the responsible handler
    and turns its answer into a decision.

    Example:
        ```python
        decision = await recover(ctx, task, error)
        match decision:
            case Retry():
                continue
            case Advance():
                ...
            case Terminate(error=err):
                ctx.reject(FlowStatus.ERROR, err)
        ```
    """
    ctx.log.error(f"Error in task '{task.id}': {error!r}")
    ctx.last_error = error
    info = task.info()
    action = await call_error_handler(ctx, task, error, info)
    return decide(ctx, task, error, action)
