"""
Retry and fallback: flow-level and task-level error handlers.

Demonstrates:
- A flow-level handler that retries transient errors
- A task-level handler that substitutes a fallback value
- Configuration from FLOWCRAFT_* environment variables
"""

import asyncio
import logging
import random

from flowcraft import ErrorAction, FlowRegistry, FlowOptions, TaskOptions, TaskSpec


class TransientError(Exception):
    pass


def retry_transient(error, ctx, info):
    if isinstance(error, TransientError):
        return ErrorAction.RETRY
    return ErrorAction.ABORT


def fetch_quote(ctx, api):
    if random.random() < 0.5:
        raise TransientError(f"quote service busy (attempt {api.task_info.retries + 1})")
    ctx["quote"] = 42.0


def fetch_discount(ctx, api):
    raise LookupError("no discount service configured")


def price(ctx, api):
    ctx["price"] = ctx["quote"] - ctx.get("discount", 0.0)


async def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # $ export FLOWCRAFT_DEFAULT_MAX_RETRIES=5
    options = FlowOptions.from_env().replace(on_error=retry_transient)
    if options.default_max_retries == 0:
        options = options.replace(default_max_retries=5)

    registry = FlowRegistry()
    registry.define(
        "pricing",
        [
            fetch_quote,
            TaskSpec(
                fetch_discount,
                id="discount",
                on_error=lambda error, ctx, info: 0.0,
                options=TaskOptions(max_retries=0),
            ),
            price,
        ],
        options,
    )

    run = registry.run("pricing")
    try:
        context = await run.result
        print(f"Price: {context['price']} (fallbacks: {dict(run.get_state().fallbacks)})")
    except TransientError as e:
        print(f"Gave up: {e}")


if __name__ == "__main__":
    asyncio.run(main())
