"""
FlowCraft: ordered task flows with recovery and external control.

Design Pattern: Façade Pattern
This module re-exports the pieces most programs need: a FlowRegistry to
define and run flows, the enums tasks and handlers speak, and the errors
the library raises.

Example:
    ```python
    import asyncio
    from flowcraft import ErrorAction, FlowOptions, FlowRegistry, SignalType

    async def fetch(ctx, api):
        ctx["rows"] = await load_rows()

    async def review(ctx, api):
        api.signal(SignalType.PAUSE, {"rows": len(ctx["rows"])})

    def store(ctx, api):
        save(ctx["rows"], approved=ctx["approved"])

    registry = FlowRegistry()
    registry.define(
        "import",
        [fetch, review, store],
        FlowOptions(on_error=lambda err, ctx, info: ErrorAction.RETRY, default_max_retries=2),
    )

    async def main():
        run = registry.run("import")
        await asyncio.sleep(0.1)
        if run.get_state().status == "paused":
            run.resume({"approved": True})
        print(await run.result)

    asyncio.run(main())
    ```
"""

from flowcraft.core import (
    ErrorAction,
    ExecutionContext,
    FlowAbortedError,
    FlowCraftError,
    FlowDefinition,
    FlowLogger,
    FlowOptions,
    FlowSnapshot,
    FlowStatus,
    InvalidDefinitionError,
    LeveledLogger,
    LogLevel,
    SignalType,
    TaskCancelledError,
    TaskDescriptor,
    TaskInfo,
    TaskOptions,
    TaskSpec,
    UndefinedFlowError,
)
from flowcraft.decorators import task
from flowcraft.executor import FlowController, TaskApi
from flowcraft.registry import FlowRegistry

__version__ = "1.0.0"

__all__ = [
    # Registry
    "FlowRegistry",
    "FlowController",
    # Definitions
    "FlowOptions",
    "FlowDefinition",
    "TaskSpec",
    "TaskOptions",
    "TaskDescriptor",
    "TaskInfo",
    "TaskApi",
    "task",
    # State
    "ExecutionContext",
    "FlowSnapshot",
    # Enums
    "FlowStatus",
    "ErrorAction",
    "SignalType",
    "LogLevel",
    # Logging
    "FlowLogger",
    "LeveledLogger",
    # Errors
    "FlowCraftError",
    "InvalidDefinitionError",
    "UndefinedFlowError",
    "FlowAbortedError",
    "TaskCancelledError",
    # Metadata
    "__version__",
]
