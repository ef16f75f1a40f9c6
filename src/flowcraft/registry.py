"""FlowRegistry: define flows once, run them many times.

The registry is an explicit object owned by the caller (there is no
module-level registry), so independent registries, e.g. one per test,
never see each other's flows.

Design Pattern: Façade Pattern
    define() hides validation and option resolution, run() hides context
    allocation, engine scheduling and controller wiring.
"""

import logging
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from flowcraft.core.context import ExecutionContext
from flowcraft.core.definition import FlowDefinition, FlowOptions, build_definition
from flowcraft.core.errors import UndefinedFlowError
from flowcraft.core.status import FlowStatus
from flowcraft.executor.controller import FlowController
from flowcraft.executor.engine import ExecutionEngine

logger = logging.getLogger(__name__)

__all__ = ["FlowRegistry"]


class FlowRegistry:
    """Name → FlowDefinition table plus the set of live runs.

    Example:
        ```python
        registry = FlowRegistry()
        registry.define("greet", [load_user, send_mail], FlowOptions(default_max_retries=2))

        async def main():
            controller = registry.run("greet", {"user_id": 7})
            context = await controller.result
        ```
    """

    def __init__(self):
        self._flows: dict[str, FlowDefinition] = {}
        self._active: dict[str, FlowController] = {}

    def define(
        self,
        name: str,
        tasks: Sequence[Any],
        options: FlowOptions | Mapping[str, Any] | None = None,
    ) -> FlowDefinition:
        """
        Register (or replace) a flow definition.

        Args:
            name: Unique flow name
            tasks: Ordered task entries: functions, TaskSpec objects, or
                mappings with a required ``func`` and optional ``id``,
                ``on_error`` and ``options``
            options: FlowOptions, a mapping of option keys, or None

        Returns:
            The stored FlowDefinition

        Raises:
            InvalidDefinitionError: If the name, a task entry or an option is
                malformed. Nothing is registered in that case.
        """
        definition = build_definition(name, tasks, options)
        if name in self._flows:
            logger.warning(f"Redefining flow '{name}'.")
        self._flows[name] = definition
        definition.log.info(f"Defined flow '{name}' with {len(definition.tasks)} tasks.")
        return definition

    def run(self, name: str, initial_context: Mapping[str, Any] | None = None) -> FlowController:
        """
        Start a run of a defined flow and return its controller immediately.

        No task has executed when this returns; the engine starts on the
        next event-loop iteration. Must be called with a running event loop.

        Args:
            name: Name of a defined flow
            initial_context: Shallow-copied into the run's shared context

        Raises:
            UndefinedFlowError: If ``name`` was never defined
        """
        definition = self._flows.get(name)
        if definition is None:
            raise UndefinedFlowError(name)

        ctx = ExecutionContext(definition, initial_context)
        engine = ExecutionEngine(ctx)
        controller = FlowController(ctx, engine)

        self._active[ctx.execution_id] = controller
        ctx.add_terminal_listener(self._forget)

        definition.log.info(f"Starting flow '{name}' (Execution ID: {ctx.execution_id})")
        ctx.status = FlowStatus.RUNNING
        engine.schedule()
        return controller

    def _forget(self, ctx: ExecutionContext) -> None:
        self._active.pop(ctx.execution_id, None)

    def get(self, name: str) -> FlowDefinition | None:
        """Return the definition registered under ``name``, if any."""
        return self._flows.get(name)

    def undefine(self, name: str) -> bool:
        """
        Remove a definition. Runs already started are not affected.

        Returns:
            True if a definition was removed
        """
        return self._flows.pop(name, None) is not None

    def names(self) -> list[str]:
        """Names of all defined flows, in definition order."""
        return list(self._flows)

    def active_runs(self) -> dict[str, FlowController]:
        """Controllers of runs that have not reached a terminal status, by execution id."""
        return dict(self._active)

    def abort_all(self, reason: str = "Registry shutdown") -> int:
        """
        Abort every active run.

        Returns:
            Number of runs aborted
        """
        controllers = list(self._active.values())
        for controller in controllers:
            controller.abort(reason)
        if controllers:
            logger.info(f"Aborted {len(controllers)} active run(s): {reason}")
        return len(controllers)

    def __contains__(self, name: object) -> bool:
        return name in self._flows

    def __len__(self) -> int:
        return len(self._flows)

    def __iter__(self) -> Iterator[str]:
        return iter(self._flows)

    def __repr__(self) -> str:
        return f"FlowRegistry(flows={len(self._flows)}, active_runs={len(self._active)})"
