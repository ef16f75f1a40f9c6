"""
Flow definitions: the immutable blueprint of a flow.

A FlowDefinition is built once by define() and shared (read-only) by every
run of the flow. Task options are resolved against the flow defaults here,
at define time, so runs never see later edits.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from flowcraft.core.errors import InvalidDefinitionError
from flowcraft.core.logging import FlowLogger, LeveledLogger, default_logger
from flowcraft.core.status import LogLevel
from flowcraft.core.task import ErrorHandler, TaskDescriptor, TaskOptions, TaskSpec

__all__ = ["FlowOptions", "FlowDefinition", "build_definition"]

_FLOW_OPTION_KEYS = {
    "log_level": "log_level",
    "logLevel": "log_level",
    "logger": "logger",
    "on_error": "on_error",
    "onError": "on_error",
    "yield_before_task": "yield_before_task",
    "yieldBeforeTask": "yield_before_task",
    "yield_after_task": "yield_after_task",
    "yieldAfterTask": "yield_after_task",
    "default_max_retries": "default_max_retries",
    "defaultMaxRetries": "default_max_retries",
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class FlowOptions:
    """
    Flow-wide configuration.

    Examples:
        # Defaults: INFO logging, no handler, no yielding, no retries
        options = FlowOptions()

        # Explicit
        options = FlowOptions(log_level=LogLevel.DEBUG, default_max_retries=2)

        # From the environment
        # $ export FLOWCRAFT_LOG_LEVEL=debug
        options = FlowOptions.from_env()
    """

    log_level: LogLevel = LogLevel.INFO
    logger: FlowLogger | None = None
    on_error: ErrorHandler | None = None
    yield_before_task: bool = False
    yield_after_task: bool = False
    default_max_retries: int = 0
    extra: Mapping[str, Any] = field(default_factory=dict)
    """Custom options carried along for user code; never interpreted."""

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> FlowOptions:
        """
        Build options from a plain mapping.

        Recognized keys may be snake_case or camelCase (``logLevel``,
        ``onError``, ...). Unrecognized keys are kept in ``extra``.
        """
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in mapping.items():
            name = _FLOW_OPTION_KEYS.get(key)
            if name is None:
                extra[key] = value
            else:
                kwargs[name] = value
        if "log_level" in kwargs:
            try:
                kwargs["log_level"] = LogLevel.parse(kwargs["log_level"])
            except ValueError as e:
                raise InvalidDefinitionError(str(e)) from e
        return cls(extra=extra, **kwargs)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> FlowOptions:
        """
        Read options from FLOWCRAFT_* environment variables.

        Recognized variables: FLOWCRAFT_LOG_LEVEL, FLOWCRAFT_DEFAULT_MAX_RETRIES,
        FLOWCRAFT_YIELD_BEFORE_TASK, FLOWCRAFT_YIELD_AFTER_TASK. Unset variables
        keep their defaults.

        Raises:
            InvalidDefinitionError: If a variable holds an unusable value
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}

        level = env.get("FLOWCRAFT_LOG_LEVEL")
        if level is not None:
            try:
                kwargs["log_level"] = LogLevel.parse(level)
            except ValueError as e:
                raise InvalidDefinitionError(f"FLOWCRAFT_LOG_LEVEL: {e}") from e

        retries = env.get("FLOWCRAFT_DEFAULT_MAX_RETRIES")
        if retries is not None:
            try:
                kwargs["default_max_retries"] = int(retries)
            except ValueError as e:
                raise InvalidDefinitionError(
                    f"FLOWCRAFT_DEFAULT_MAX_RETRIES must be an integer, got {retries!r}"
                ) from e

        for var, name in (
            ("FLOWCRAFT_YIELD_BEFORE_TASK", "yield_before_task"),
            ("FLOWCRAFT_YIELD_AFTER_TASK", "yield_after_task"),
        ):
            raw = env.get(var)
            if raw is None:
                continue
            flag = raw.strip().lower()
            if flag in _TRUE:
                kwargs[name] = True
            elif flag in _FALSE:
                kwargs[name] = False
            else:
                raise InvalidDefinitionError(f"{var} must be a boolean, got {raw!r}")

        return cls(**kwargs)

    def replace(self, **changes: Any) -> FlowOptions:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class FlowDefinition:
    """
    Immutable blueprint of a flow: ordered task templates plus options.

    Runs clone the task templates into TaskState objects; nothing a run does
    is ever written back here.
    """

    name: str
    tasks: tuple[TaskDescriptor, ...]
    options: FlowOptions
    log: LeveledLogger = field(repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.tasks)


def _check_retries(value: Any, what: str, flow_name: str, index: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidDefinitionError(
            f"{what} for flow '{flow_name}' must be a non-negative integer, got {value!r}",
            flow_name=flow_name,
            index=index,
        )
    return value


def _check_handler(handler: Any, what: str, flow_name: str, index: int | None = None) -> None:
    if handler is not None and not callable(handler):
        raise InvalidDefinitionError(
            f"{what} for flow '{flow_name}' must be callable, got {type(handler).__name__}",
            flow_name=flow_name,
            index=index,
        )


def _check_logger(candidate: Any, flow_name: str) -> None:
    if candidate is not None and not isinstance(candidate, FlowLogger):
        raise InvalidDefinitionError(
            f"logger for flow '{flow_name}' must provide error, warning, info and debug "
            f"methods, got {type(candidate).__name__}",
            flow_name=flow_name,
        )


def _coerce_spec(entry: Any, index: int, flow_name: str) -> TaskSpec:
    """Turn one task entry (function, TaskSpec or mapping) into a TaskSpec."""
    if isinstance(entry, TaskSpec):
        spec = entry
    elif callable(entry):
        spec = TaskSpec(func=entry)
    elif isinstance(entry, Mapping) and callable(entry.get("func")):
        raw_options = entry.get("options") or {}
        try:
            if isinstance(raw_options, TaskOptions):
                options = raw_options
            elif isinstance(raw_options, Mapping):
                options = TaskOptions.from_mapping(raw_options)
            else:
                raise ValueError(f"options must be a mapping, got {type(raw_options).__name__}")
        except ValueError as e:
            raise InvalidDefinitionError(
                f"Invalid task options at index {index} for flow '{flow_name}': {e}",
                flow_name=flow_name,
                index=index,
            ) from e
        spec = TaskSpec(
            func=entry["func"],
            id=entry.get("id"),
            on_error=entry.get("on_error", entry.get("onError")),
            options=options,
        )
    else:
        raise InvalidDefinitionError(
            f"Invalid task definition at index {index} for flow '{flow_name}'. "
            f"Must be a function or an object with a 'func' property.",
            flow_name=flow_name,
            index=index,
        )

    if not callable(spec.func):
        raise InvalidDefinitionError(
            f"Task 'func' at index {index} for flow '{flow_name}' is not callable",
            flow_name=flow_name,
            index=index,
        )
    return spec


def build_definition(
    name: str,
    tasks: Sequence[Any],
    options: FlowOptions | Mapping[str, Any] | None = None,
) -> FlowDefinition:
    """
    Validate task entries and options and build a FlowDefinition.

    Args:
        name: Flow name
        tasks: Ordered task entries (functions, TaskSpec objects or mappings
            with a required ``func``)
        options: FlowOptions, a mapping of option keys, or None for defaults

    Returns:
        The immutable FlowDefinition

    Raises:
        InvalidDefinitionError: If anything is malformed
    """
    if not isinstance(name, str) or not name:
        raise InvalidDefinitionError(f"Flow name must be a non-empty string, got {name!r}")

    if options is None:
        options = FlowOptions()
    elif isinstance(options, Mapping):
        options = FlowOptions.from_mapping(options)
    elif not isinstance(options, FlowOptions):
        raise InvalidDefinitionError(
            f"Options for flow '{name}' must be FlowOptions or a mapping, "
            f"got {type(options).__name__}",
            flow_name=name,
        )

    try:
        level = LogLevel.parse(options.log_level)
    except ValueError as e:
        raise InvalidDefinitionError(str(e), flow_name=name) from e
    default_max_retries = _check_retries(
        options.default_max_retries, "default_max_retries", name
    )
    _check_handler(options.on_error, "on_error", name)
    _check_logger(options.logger, name)

    if isinstance(tasks, (str, bytes)) or not isinstance(tasks, Sequence) or len(tasks) == 0:
        raise InvalidDefinitionError(
            f"Flow '{name}' must have at least one task defined.", flow_name=name
        )

    descriptors: list[TaskDescriptor] = []
    seen: set[str] = set()
    for index, entry in enumerate(tasks):
        spec = _coerce_spec(entry, index, name)
        task_id = spec.id or f"task_{index}"
        if not isinstance(task_id, str):
            raise InvalidDefinitionError(
                f"Task id at index {index} for flow '{name}' must be a string",
                flow_name=name,
                index=index,
            )
        if task_id in seen:
            raise InvalidDefinitionError(
                f"Duplicate task id '{task_id}' at index {index} for flow '{name}'",
                flow_name=name,
                index=index,
            )
        seen.add(task_id)
        _check_handler(spec.on_error, "Task on_error", name, index)

        task_options = spec.options
        if task_options.max_retries is None:
            max_retries = default_max_retries
        else:
            max_retries = _check_retries(
                task_options.max_retries, f"max_retries of task '{task_id}'", name, index
            )
        descriptors.append(
            TaskDescriptor(
                id=task_id,
                index=index,
                func=spec.func,
                on_error=spec.on_error,
                yield_before=bool(
                    options.yield_before_task
                    if task_options.yield_before is None
                    else task_options.yield_before
                ),
                yield_after=bool(
                    options.yield_after_task
                    if task_options.yield_after is None
                    else task_options.yield_after
                ),
                max_retries=max_retries,
            )
        )

    frozen_options = options.replace(log_level=level, extra=MappingProxyType(dict(options.extra)))
    log = LeveledLogger(options.logger or default_logger(), level, name)
    return FlowDefinition(name=name, tasks=tuple(descriptors), options=frozen_options, log=log)
