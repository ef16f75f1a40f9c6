"""
Decorator for declaring tasks.

@task turns a plain (sync or async) function into a TaskSpec carrying its
id, error handler and options, ready to be listed in FlowRegistry.define().
"""

from collections.abc import Callable
from typing import Any

from flowcraft.core.task import ErrorHandler, TaskOptions, TaskSpec

__all__ = ["task"]


def task(
    func: Callable[..., Any] | None = None,
    *,
    id: str | None = None,
    on_error: ErrorHandler | None = None,
    yield_before: bool | None = None,
    yield_after: bool | None = None,
    max_retries: int | None = None,
) -> Any:
    """
    Declare a flow task.

    Args:
        func: The task function (when used without parentheses)
        id: Task id; defaults to the function name
        on_error: Task-specific error handler
        yield_before: Yield to the event loop before the task
        yield_after: Yield to the event loop after the task
        max_retries: Retry budget overriding the flow default

    Example:
        ```python
        @task
        async def load(ctx, api):
            ctx["rows"] = await fetch_rows()

        @task(id="store", max_retries=3, on_error=lambda e, ctx, info: ErrorAction.RETRY)
        def store(ctx, api):
            db.write(ctx["rows"])

        registry.define("etl", [load, store])
        ```
    """

    def decorator(f: Callable[..., Any]) -> TaskSpec:
        return TaskSpec(
            func=f,
            id=id or f.__name__,
            on_error=on_error,
            options=TaskOptions(
                yield_before=yield_before,
                yield_after=yield_after,
                max_retries=max_retries,
            ),
        )

    if func is not None:
        return decorator(func)
    return decorator
