"""Leveled diagnostics for flow runs.

Every flow carries a logger capability (anything with error/warning/info/debug
methods, a ``logging.Logger`` by default) and a LogLevel. LeveledLogger applies
the level gate so the engine can log unconditionally.
"""

import logging
from typing import Any, Protocol, runtime_checkable

from flowcraft.core.status import LogLevel

__all__ = ["FlowLogger", "LeveledLogger", "DEFAULT_LOGGER_NAME", "default_logger"]

DEFAULT_LOGGER_NAME = "flowcraft.flow"


@runtime_checkable
class FlowLogger(Protocol):
    """Logger capability accepted in FlowOptions.

    ``logging.Logger`` and ``logging.LoggerAdapter`` satisfy it.
    """

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None: ...

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None: ...

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None: ...

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None: ...


def default_logger() -> logging.Logger:
    """Logger used by flows that do not configure one."""
    return logging.getLogger(DEFAULT_LOGGER_NAME)


class LeveledLogger:
    """Gate a FlowLogger by LogLevel and prefix messages with the flow name.

    ERROR lets error() through; INFO adds warning() and info(); DEBUG adds
    debug(). NONE drops everything.

    Example:
        ```python
        log = LeveledLogger(logging.getLogger("app"), LogLevel.ERROR, "orders")
        log.info("dropped")
        log.error("kept")  # "[orders] kept"
        ```
    """

    def __init__(self, logger: FlowLogger, level: LogLevel, flow_name: str = ""):
        self.logger = logger
        self.level = level
        self.prefix = f"[{flow_name}] " if flow_name else ""

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.level >= LogLevel.ERROR:
            self.logger.error(self.prefix + msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.level >= LogLevel.INFO:
            self.logger.warning(self.prefix + msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.level >= LogLevel.INFO:
            self.logger.info(self.prefix + msg, *args, **kwargs)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        if self.level >= LogLevel.DEBUG:
            self.logger.debug(self.prefix + msg, *args, **kwargs)

    def __repr__(self) -> str:
        return f"LeveledLogger(level={self.level.name}, prefix={self.prefix!r})"
