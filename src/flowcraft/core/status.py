"""
Status enums for flow execution tracking.

Following Dave Cheney's principle: "Make zero values useful"
The default status should represent the initial state.
"""

from enum import Enum, IntEnum
from typing import Any


class FlowStatus(str, Enum):
    """
    Status of a single flow run.

    Lifecycle:
    IDLE → RUNNING → {PAUSED ⇄ RUNNING} → COMPLETED/ABORTED/ERROR

    Members compare equal to their string value, so snapshots can be
    checked with ``snapshot.status == "paused"``.
    """

    IDLE = "idle"
    """Run allocated, engine not started yet."""

    RUNNING = "running"
    """Engine is (or is about to be) driving tasks."""

    PAUSED = "paused"
    """Suspended after a task completed; waiting for resume() or abort()."""

    COMPLETED = "completed"
    """Every task finished. Terminal."""

    ABORTED = "aborted"
    """Stopped by an external abort(). Terminal."""

    ERROR = "error"
    """Stopped by an unrecovered task error. Terminal."""

    @property
    def is_terminal(self) -> bool:
        """Check if this status is terminal (no further transitions)."""
        return self in (FlowStatus.COMPLETED, FlowStatus.ABORTED, FlowStatus.ERROR)

    @property
    def is_active(self) -> bool:
        """Check if the run can still be paused, resumed or aborted."""
        return self in (FlowStatus.RUNNING, FlowStatus.PAUSED)

    def __str__(self) -> str:
        return self.value


class _Constant(str, Enum):
    """Base for the string constants exchanged with user code."""

    def __str__(self) -> str:
        return self.name

    @classmethod
    def lookup(cls, value: Any):
        """Return the member matching ``value`` (a member or its plain string), else None."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class ErrorAction(_Constant):
    """
    Recovery decision returned by an error handler.

    The plain string values (``"FLOWCRAFT_RETRY"`` ...) are accepted too.
    Any other return value is treated as a fallback value: the error is
    considered handled and the flow advances exactly as with SKIP.
    """

    ABORT = "FLOWCRAFT_ABORT"
    SKIP = "FLOWCRAFT_SKIP"
    RETRY = "FLOWCRAFT_RETRY"


class SignalType(_Constant):
    """
    In-band signals a task can send to the engine.

    Returning ``SignalType.PAUSE`` from a task is the same as calling
    ``api.signal(SignalType.PAUSE)`` before returning.
    """

    PAUSE = "FLOWCRAFT_PAUSE"


class LogLevel(IntEnum):
    """Verbosity of a flow's diagnostics."""

    NONE = 0
    ERROR = 1
    INFO = 2
    DEBUG = 3

    @classmethod
    def parse(cls, value: "LogLevel | int | str") -> "LogLevel":
        """
        Coerce a member, an int or a level name into a LogLevel.

        Raises:
            ValueError: If the value names no level
        """
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, bool):
            raise ValueError(f"invalid log level: {value!r}")
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            name = value.strip().upper()
            if name.isdigit():
                return cls(int(name))
            try:
                return cls[name]
            except KeyError:
                raise ValueError(f"invalid log level: {value!r}") from None
        raise ValueError(f"invalid log level: {value!r}")
