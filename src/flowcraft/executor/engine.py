"""Execution engine: the control loop that drives one run through its tasks.

State machine:
    IDLE → RUNNING → {PAUSED ⇄ RUNNING} → COMPLETED | ABORTED | ERROR

Suspension points inside the loop are the optional yield hooks, awaiting
the task itself, and awaiting an async error handler. The status is
re-checked after every one of them: if something outside (abort) moved the
run away from RUNNING, the loop stops without touching any state.

Cancellation is never recovered. A CancelledError escaping a task or an
error handler ends the run with ERROR (TaskCancelledError); cancelling the
drive task itself propagates, and the done callback settles the run.

Design: Template Method
    drive() fixes the order of the per-task steps; tasks, handlers and the
    recovery policy fill them in.
"""

import asyncio
import inspect
import logging
from typing import Any

from flowcraft.core.context import ExecutionContext
from flowcraft.core.errors import TaskCancelledError
from flowcraft.core.status import FlowStatus
from flowcraft.executor.recovery import Advance, Retry, Terminate, recover
from flowcraft.executor.signal import TaskApi

logger = logging.getLogger(__name__)

__all__ = ["ExecutionEngine", "yield_to_loop"]


async def yield_to_loop() -> None:
    """Give the event loop one turn before continuing."""
    await asyncio.sleep(0)


def _drive_cancelling() -> bool:
    """True if the drive task itself has a pending cancel() request."""
    current = asyncio.current_task()
    return current is not None and current.cancelling() > 0


class ExecutionEngine:
    """Drives an ExecutionContext until it is terminal or paused.

    Exactly one drive task exists per context at any time. schedule() defers
    the start to the next loop iteration, so callers of run()/resume() get
    control back before any task executes.

    Usage:
        ```python
        engine = ExecutionEngine(ctx)
        ctx.status = FlowStatus.RUNNING
        engine.schedule()
        result = await ctx.outcome
        ```
    """

    def __init__(self, ctx: ExecutionContext):
        self.ctx = ctx
        self._task: asyncio.Task | None = None
        self._pending = False

    @property
    def is_active(self) -> bool:
        """True while a drive is scheduled or in progress."""
        return self._pending or (self._task is not None and not self._task.done())

    def schedule(self) -> bool:
        """
        Start drive() on the next event-loop tick.

        Returns:
            False if a drive is already scheduled or running (the request is
            rejected; one context is never driven twice), True otherwise.
        """
        if self.is_active:
            self.ctx.log.warning("Execution loop already active; schedule request ignored")
            return False
        self._pending = True
        asyncio.get_running_loop().call_soon(self._spawn)
        return True

    def _spawn(self) -> None:
        self._pending = False
        self._task = asyncio.get_running_loop().create_task(
            self.drive(), name=f"flowcraft:{self.ctx.execution_id}"
        )
        self._task.add_done_callback(self._on_drive_done)

    def _on_drive_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            logger.debug(f"Drive task for {self.ctx.execution_id} was cancelled")
            if not self.ctx.status.is_terminal:
                error = TaskCancelledError()
                error.__cause__ = asyncio.CancelledError()
                self.ctx.reject(FlowStatus.ERROR, error)
            return
        error = task.exception()
        if error is not None:
            # Bug in the loop itself; the outcome must still settle.
            logger.error(f"Execution loop for {self.ctx.execution_id} crashed: {error!r}")
            if not self.ctx.status.is_terminal:
                self.ctx.reject(FlowStatus.ERROR, error)

    async def drive(self) -> None:
        """Run tasks from current_task_index until terminal or paused."""
        ctx = self.ctx
        log = ctx.log
        total = len(ctx.tasks)

        if ctx.advance_on_resume and ctx.is_running:
            ctx.advance_on_resume = False
            ctx.current_task_index += 1

        while ctx.current_task_index < total:
            if not ctx.is_running:
                log.warning(f"Execution loop interrupted (Status: {ctx.status}).")
                return

            index = ctx.current_task_index
            task = ctx.current_task()
            descriptor = task.descriptor

            if descriptor.yield_before:
                log.debug(f"Yielding before task '{task.id}'")
                await yield_to_loop()
                if not ctx.is_running:
                    continue

            api = TaskApi(task.info(), log)
            log.info(f"Running task {index + 1}/{total}: '{task.id}'")
            log.debug(f"Task context before execution: {dict(ctx.context)!r}")

            try:
                result = await self._invoke(descriptor.func, api)
            except asyncio.CancelledError as cancelled:
                api.close()
                if _drive_cancelling():
                    raise
                self._reject_cancelled(task.id, cancelled)
                return
            except Exception as error:
                api.close()
                if not ctx.is_running:
                    log.debug(f"Task '{task.id}' failed after the run left RUNNING; ignored")
                    return
                try:
                    decision = await recover(ctx, task, error)
                except asyncio.CancelledError as cancelled:
                    if _drive_cancelling():
                        raise
                    self._reject_cancelled(task.id, cancelled)
                    return
                if not ctx.is_running:
                    return
                match decision:
                    case Retry(attempt=attempt, max_retries=limit):
                        log.debug(f"Re-running task '{task.id}' ({attempt}/{limit})")
                        continue
                    case Terminate(error=original, retries_exhausted=True):
                        log.error(f"Aborting flow: task '{task.id}' exhausted its retries.")
                        ctx.reject(FlowStatus.ERROR, original)
                        return
                    case Terminate(error=original):
                        log.error(f"Aborting flow due to error in task '{task.id}'.")
                        ctx.reject(FlowStatus.ERROR, original)
                        return
                    case Advance(substituted=True):
                        log.debug(f"Continuing past task '{task.id}' with its fallback value")
                    case Advance():
                        log.debug(f"Continuing past skipped task '{task.id}'")
            else:
                pause = api.close(result)
                if not ctx.is_running:
                    log.debug(f"Task '{task.id}' finished after the run left RUNNING; ignored")
                    return
                task.retries = 0
                if pause is not None:
                    ctx.status = FlowStatus.PAUSED
                    ctx.signal_data = pause.data
                    ctx.pause_requested = False
                    ctx.advance_on_resume = True
                    log.info(f"Paused by task '{task.id}'.")
                    return
                log.debug(f"Task '{task.id}' completed. Result: {result!r}")

            if descriptor.yield_after:
                log.debug(f"Yielding after task '{task.id}'")
                await yield_to_loop()
                if not ctx.is_running:
                    continue

            if ctx.pause_requested:
                ctx.status = FlowStatus.PAUSED
                ctx.pause_requested = False
                ctx.advance_on_resume = True
                log.info(f"Paused externally after task '{task.id}'.")
                return

            ctx.current_task_index += 1

        if ctx.is_running:
            log.info("Flow completed successfully.")
            ctx.resolve()

    def _reject_cancelled(self, task_id: str, cancelled: asyncio.CancelledError) -> None:
        """Settle the run with ERROR after a cancellation escaped task code."""
        ctx = self.ctx
        if not ctx.is_running:
            return
        ctx.log.error(f"Task '{task_id}' was cancelled; aborting flow.")
        error = TaskCancelledError(task_id)
        error.__cause__ = cancelled
        ctx.reject(FlowStatus.ERROR, error)

    async def _invoke(self, func: Any, api: TaskApi) -> Any:
        result = func(self.ctx.context, api)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"ExecutionEngine(ctx={self.ctx!r}, active={self.is_active})"
