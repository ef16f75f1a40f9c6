"""
Approval flow: a task pauses the run until someone outside approves it.

Demonstrates:
- Tasks sharing one context dict
- A task requesting a pause with api.signal(SignalType.PAUSE, data)
- Resuming with data merged into the context
"""

import asyncio
import logging

from flowcraft import FlowOptions, FlowRegistry, FlowStatus, LogLevel, SignalType


async def draft_invoice(ctx, api):
    await asyncio.sleep(0.01)
    ctx["invoice"] = {"customer": ctx["customer"], "amount": 120.0}


def request_approval(ctx, api):
    api.signal(SignalType.PAUSE, {"amount": ctx["invoice"]["amount"]})


def send_invoice(ctx, api):
    ctx["sent"] = ctx.get("approved", False)


async def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    registry = FlowRegistry()
    registry.define(
        "invoice",
        [draft_invoice, request_approval, send_invoice],
        FlowOptions(log_level=LogLevel.INFO),
    )

    run = registry.run("invoice", {"customer": "ACME"})
    while run.status is FlowStatus.RUNNING:
        await asyncio.sleep(0.01)

    state = run.get_state()
    print(f"Paused at task {state.current_task_index}, waiting on {state.signal_data}")

    run.resume({"approved": True, "approved_by": "finance"})
    print(f"Final context: {await run.result}")


if __name__ == "__main__":
    asyncio.run(main())
