"""
Core types for flowcraft.

This module contains the data model shared by the engine and the registry:
- FlowStatus, ErrorAction, SignalType, LogLevel: enums
- FlowCraftError and friends: errors raised by the library
- FlowLogger, LeveledLogger: logger capability and level gate
- TaskOptions, TaskSpec, TaskDescriptor, TaskInfo, TaskState: tasks
- FlowOptions, FlowDefinition: flow blueprints
- ExecutionContext, FlowSnapshot: per-run state
"""

from flowcraft.core.context import ExecutionContext, FlowSnapshot
from flowcraft.core.definition import FlowDefinition, FlowOptions, build_definition
from flowcraft.core.errors import (
    FlowAbortedError,
    FlowCraftError,
    InvalidDefinitionError,
    TaskCancelledError,
    UndefinedFlowError,
)
from flowcraft.core.logging import FlowLogger, LeveledLogger
from flowcraft.core.status import ErrorAction, FlowStatus, LogLevel, SignalType
from flowcraft.core.task import (
    ErrorHandler,
    TaskDescriptor,
    TaskFunc,
    TaskInfo,
    TaskOptions,
    TaskSpec,
    TaskState,
)

__all__ = [
    "ExecutionContext",
    "FlowSnapshot",
    "FlowDefinition",
    "FlowOptions",
    "build_definition",
    "FlowCraftError",
    "InvalidDefinitionError",
    "UndefinedFlowError",
    "FlowAbortedError",
    "TaskCancelledError",
    "FlowLogger",
    "LeveledLogger",
    "FlowStatus",
    "ErrorAction",
    "SignalType",
    "LogLevel",
    "ErrorHandler",
    "TaskFunc",
    "TaskOptions",
    "TaskSpec",
    "TaskDescriptor",
    "TaskInfo",
    "TaskState",
]
