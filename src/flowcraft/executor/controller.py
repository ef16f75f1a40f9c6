"""FlowController: the external handle of one flow run.

The controller is the only way code outside the run touches its
ExecutionContext. Mutators are synchronous and never raise for a call made
in the wrong state: they log a warning and do nothing.
"""

import asyncio
from collections.abc import Generator, Mapping
from typing import Any

from flowcraft.core.context import ExecutionContext, FlowSnapshot
from flowcraft.core.errors import FlowAbortedError
from flowcraft.core.status import FlowStatus
from flowcraft.executor.engine import ExecutionEngine

__all__ = ["FlowController"]


class FlowController:
    """Controller for a running flow instance.

    Usage:
        ```python
        controller = registry.run("checkout", {"cart": cart})

        controller.pause()               # after the in-flight task
        state = controller.get_state()   # immutable snapshot
        controller.resume({"approved": True})

        final_context = await controller.result
        ```
    """

    def __init__(self, ctx: ExecutionContext, engine: ExecutionEngine):
        self._ctx = ctx
        self._engine = engine

    @property
    def result(self) -> asyncio.Future[dict[str, Any]]:
        """
        Completion future of the run.

        Resolves once with the final shared context when the run completes;
        rejects once with the terminating error on ERROR or ABORTED. Can be
        awaited (or given callbacks) any number of times, before or after it
        settles.
        """
        return self._ctx.outcome

    def __await__(self) -> Generator[Any, None, dict[str, Any]]:
        return self._ctx.outcome.__await__()

    @property
    def execution_id(self) -> str:
        return self._ctx.execution_id

    @property
    def flow_name(self) -> str:
        return self._ctx.flow_name

    @property
    def status(self) -> FlowStatus:
        return self._ctx.status

    def get_state(self) -> FlowSnapshot:
        """Return an immutable snapshot of the run; never the live state."""
        return self._ctx.snapshot()

    def pause(self) -> None:
        """Request a pause after the in-flight task completes (RUNNING only)."""
        ctx = self._ctx
        if ctx.status is not FlowStatus.RUNNING:
            ctx.log.warning(
                f"Cannot pause flow '{ctx.flow_name}': not running (status: {ctx.status})"
            )
            return
        ctx.pause_requested = True
        ctx.log.info(f"Pause requested for flow '{ctx.flow_name}'")

    def resume(self, resume_data: Mapping[str, Any] | None = None) -> None:
        """
        Resume a paused run.

        Keys of ``resume_data`` are assigned into the shared context
        (overwriting existing keys), the pending signal data is cleared and
        the engine continues after the task that was running when the pause
        took effect.
        """
        ctx = self._ctx
        if ctx.status is not FlowStatus.PAUSED:
            ctx.log.warning(
                f"Cannot resume flow '{ctx.flow_name}': not paused (status: {ctx.status})"
            )
            return
        if self._engine.is_active:
            ctx.log.warning(
                f"Cannot resume flow '{ctx.flow_name}': execution loop still active"
            )
            return

        ctx.log.info(f"Resuming flow '{ctx.flow_name}'...")
        if resume_data is not None:
            if isinstance(resume_data, Mapping):
                ctx.context.update(resume_data)
                ctx.log.debug(f"Merged resume data into context for '{ctx.flow_name}'.")
            else:
                ctx.log.warning(
                    f"Ignoring resume data for '{ctx.flow_name}': expected a mapping, "
                    f"got {type(resume_data).__name__}"
                )
        ctx.signal_data = None
        ctx.status = FlowStatus.RUNNING
        self._engine.schedule()

    def abort(self, reason: str = "Manual abort") -> None:
        """
        Stop the run immediately (RUNNING or PAUSED only).

        The result future is rejected with a FlowAbortedError carrying
        ``reason``. A task already in flight keeps running in the background;
        its outcome is discarded.
        """
        ctx = self._ctx
        if not ctx.status.is_active:
            ctx.log.warning(
                f"Cannot abort flow '{ctx.flow_name}': not running or paused "
                f"(status: {ctx.status})"
            )
            return
        ctx.log.warning(f"Aborting flow '{ctx.flow_name}'. Reason: {reason}")
        ctx.pause_requested = False
        ctx.reject(FlowStatus.ABORTED, FlowAbortedError(reason))

    def __repr__(self) -> str:
        return (
            f"FlowController(flow_name={self._ctx.flow_name!r}, "
            f"execution_id={self._ctx.execution_id!r}, status={self._ctx.status})"
        )
