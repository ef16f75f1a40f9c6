"""
Executor module - runtime engine for flow runs.

- engine: the control loop (ExecutionEngine) and the yield hook
- recovery: the error-recovery protocol (Retry/Advance/Terminate)
- signal: the per-attempt TaskApi handle
- controller: FlowController, the external handle of a run
"""

from flowcraft.executor.controller import FlowController
from flowcraft.executor.engine import ExecutionEngine, yield_to_loop
from flowcraft.executor.recovery import Advance, Recovery, Retry, Terminate, recover
from flowcraft.executor.signal import PauseRequest, Signal, TaskApi

__all__ = [
    "FlowController",
    "ExecutionEngine",
    "yield_to_loop",
    "Retry",
    "Advance",
    "Terminate",
    "Recovery",
    "recover",
    "TaskApi",
    "Signal",
    "PauseRequest",
]
