"""Loguru-style logger backed by stdlib logging + rich.

Usage::

    from ec2_runner.observability.logger import logger

    log = logger.bind(unit="linux-x64")
    log.info("Launched instance {instance_id}", instance_id="i-0abc")
    # -> "[linux-x64] Launched instance i-0abc"

A bound ``unit`` is rendered as a ``[unit]`` message prefix so that lines
from concurrently running units stay attributable.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ROOT_LOGGER_NAME = "ec2_runner"

_root = logging.getLogger(ROOT_LOGGER_NAME)
_handlers: dict[int, logging.Handler] = {}
_next_id = 0


def _caller_logger(depth: int) -> tuple[logging.Logger, object]:
    frame = sys._getframe(depth + 1)
    module = frame.f_globals.get("__name__", ROOT_LOGGER_NAME)
    if not module.startswith(ROOT_LOGGER_NAME):
        module = f"{ROOT_LOGGER_NAME}.{module}"
    return logging.getLogger(module), frame


class BoundLogger:
    __slots__ = ("_extras",)

    def __init__(self, extras: dict[str, object] | None = None) -> None:
        self._extras = extras or {}

    def bind(self, **kwargs: object) -> BoundLogger:
        return BoundLogger({**self._extras, **kwargs})

    def _log(self, level: int, message: str, /, **kwargs: object) -> None:
        exc_info = bool(kwargs.pop("exc_info", False))
        lib_logger, frame = _caller_logger(2)
        if not lib_logger.isEnabledFor(level):
            return
        text = message.format(**kwargs) if kwargs else message
        if unit := self._extras.get("unit"):
            text = f"[{unit}] {text}"
        record = lib_logger.makeRecord(
            lib_logger.name,
            level,
            frame.f_code.co_filename,  # type: ignore[attr-defined]
            frame.f_lineno,  # type: ignore[attr-defined]
            text,
            (),
            sys.exc_info() if exc_info else None,
            frame.f_code.co_name,  # type: ignore[attr-defined]
            extra=self._extras,
        )
        lib_logger.handle(record)

    def trace(self, message: str, /, **kwargs: object) -> None:
        self._log(TRACE, message, **kwargs)

    def debug(self, message: str, /, **kwargs: object) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, /, **kwargs: object) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, /, **kwargs: object) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, /, **kwargs: object) -> None:
        self._log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, /, **kwargs: object) -> None:
        self._log(logging.ERROR, message, exc_info=True, **kwargs)


def _file_handler(path: str, level: int, max_bytes: int, backups: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d - %(message)s",
    ))
    return handler


def _console_handler(level: int, stream: TextIO) -> logging.Handler:
    handler = RichHandler(
        level=level,
        console=Console(file=stream),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    return handler


class RootLogger(BoundLogger):
    """The module-level logger: a bound logger that also manages sinks."""

    __slots__ = ()

    def add(
        self,
        sink: str | TextIO,
        *,
        level: str = "DEBUG",
        max_bytes: int = 10 * 1024 * 1024,
        backups: int = 5,
    ) -> int:
        """Attach a console stream or a rotating log file; returns a handler id."""
        global _next_id
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            numeric = logging.DEBUG

        match sink:
            case str() as path:
                handler = _file_handler(path, numeric, max_bytes, backups)
            case stream:
                handler = _console_handler(numeric, stream)

        _root.addHandler(handler)
        _next_id += 1
        _handlers[_next_id] = handler
        return _next_id

    def remove(self, handler_id: int | None = None) -> None:
        ids = list(_handlers) if handler_id is None else [handler_id]
        for hid in ids:
            if handler := _handlers.pop(hid, None):
                _root.removeHandler(handler)
                handler.close()

    def enable(self) -> None:
        _root.disabled = False
        _root.setLevel(TRACE)


logger = RootLogger()

_root.setLevel(TRACE)
_root.propagate = False
