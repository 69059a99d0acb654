"""Loguru-style logger backed by stdlib logging + rich.

Usage::

    from vke.observability.logger import logger

    log = logger.bind(component="http")
    log.debug("{method} {path}", method="GET", path="/auth/time")

The package root logger ``vke`` does not propagate and only carries a
``NullHandler`` until ``logger.add(...)`` is called, so the SDK stays silent
inside host programs.
"""

from __future__ import annotations

import inspect
import logging
import logging.handlers
import os
import sys
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_vke_root = logging.getLogger("vke")


def _caller_frame() -> inspect.FrameInfo:
    # [0] this function, [1] BoundLogger._log, [2] level method, [3] caller
    return inspect.stack()[3]


def _format_message(msg: str, args: tuple[object, ...], kwargs: dict[str, object]) -> str:
    if kwargs:
        return msg.format(**kwargs)
    if args:
        return msg.format(*args)
    return msg


class BoundLogger:
    __slots__ = ("_extras",)

    def __init__(self, extras: dict[str, object] | None = None) -> None:
        self._extras = extras or {}

    def bind(self, **kwargs: object) -> BoundLogger:
        return BoundLogger({**self._extras, **kwargs})

    def _log(self, level: int, message: str, /, *args: object, **kwargs: object) -> None:
        exc_info = kwargs.pop("exc_info", False)
        frame = _caller_frame()
        module = frame.frame.f_globals.get("__name__", "vke")
        lib_logger = logging.getLogger(module)
        if not lib_logger.isEnabledFor(level):
            return
        record = lib_logger.makeRecord(
            name=lib_logger.name,
            level=level,
            fn=frame.filename,
            lno=frame.lineno,
            msg=_format_message(message, args, kwargs),
            args=(),
            exc_info=sys.exc_info() if exc_info else None,
            func=frame.function,
        )
        record.filename = os.path.basename(frame.filename)
        for k, v in self._extras.items():
            setattr(record, k, v)
        record.extras = self._extras  # type: ignore[attr-defined]
        lib_logger.handle(record)

    def trace(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(TRACE, message, *args, **kwargs)

    def debug(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.ERROR, message, *args, **kwargs)

    def exception(self, message: str, /, *args: object, **kwargs: object) -> None:
        kwargs["exc_info"] = True
        self._log(logging.ERROR, message, *args, **kwargs)


_handler_counter = 0
_handlers: dict[int, logging.Handler] = {}


def _make_file_handler(path: str, *, level: int, max_bytes: int, backups: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(levelname)-8s | "
        "%(name)s:%(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    return handler


def _make_console_handler(stream: TextIO, level: int) -> logging.Handler:
    handler = RichHandler(
        console=Console(file=stream),
        level=level,
        show_time=True,
        show_level=True,
        show_path=True,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    return handler


class LoguruCompat:
    def __init__(self) -> None:
        self._bound = BoundLogger()

    def bind(self, **kwargs: object) -> BoundLogger:
        return self._bound.bind(**kwargs)

    def remove(self, handler_id: int | None = None) -> None:
        if handler_id is None:
            for h in list(_handlers.values()):
                _vke_root.removeHandler(h)
                h.close()
            _handlers.clear()
            return
        if h := _handlers.pop(handler_id, None):
            _vke_root.removeHandler(h)
            h.close()

    def add(
        self,
        sink: str | TextIO,
        *,
        level: str = "DEBUG",
        max_bytes: int = 50 * 1024 * 1024,
        backups: int = 10,
    ) -> int:
        """Attach a sink: a file path gets a rotating file handler, anything else the console."""
        global _handler_counter
        numeric_level = getattr(logging, level.upper(), TRACE if level.upper() == "TRACE" else logging.DEBUG)

        match sink:
            case str() as path:
                handler = _make_file_handler(path, level=numeric_level, max_bytes=max_bytes, backups=backups)
            case _:
                handler = _make_console_handler(sink, numeric_level)

        _vke_root.addHandler(handler)
        _handler_counter += 1
        _handlers[_handler_counter] = handler
        return _handler_counter

    def enable(self, name: str = "vke") -> None:
        target = logging.getLogger(name)
        target.disabled = False
        target.setLevel(TRACE)

    def disable(self, name: str = "vke") -> None:
        logging.getLogger(name).disabled = True


logger = LoguruCompat()

_vke_root.setLevel(TRACE)
_vke_root.propagate = False
_vke_root.addHandler(logging.NullHandler())
