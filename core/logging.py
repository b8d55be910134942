"""Logging utilities for the guidance runtime."""

from __future__ import annotations

import atexit
from dataclasses import dataclass
import importlib
import importlib.util
import logging
import logging.handlers
from pathlib import Path
import queue
from typing import Any

LOGGER_NAME = "visionaid"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

if importlib.util.find_spec("rich") is not None:
    RichHandler = importlib.import_module("rich.logging").RichHandler
    Text = importlib.import_module("rich.text").Text
    console = importlib.import_module("rich.console").Console(stderr=True)
else:
    RichHandler = None
    Text = None
    console = None


def _console_handler() -> logging.Handler:
    if RichHandler is not None:
        handler = RichHandler(rich_tracebacks=True, console=console)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        return handler
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s: %(message)s"))
    return handler


def setup_logging() -> logging.Logger:
    """Return the shared guidance logger with one console handler attached."""

    shared = logging.getLogger(LOGGER_NAME)
    shared.setLevel(logging.INFO)
    if not shared.handlers:
        shared.addHandler(_console_handler())
    shared.propagate = False
    return shared


logger = setup_logging()


@dataclass
class _FileSink:
    """Queue handler on the logger plus the listener draining it to disk."""

    path: Path
    handler: logging.handlers.QueueHandler
    listener: logging.handlers.QueueListener

    def close(self) -> None:
        logger.removeHandler(self.handler)
        self.listener.stop()
        for target in self.listener.handlers:
            target.close()


_file_sink: _FileSink | None = None


def set_level(level_name: str) -> int:
    """Set the shared logger level from a name such as ``"DEBUG"``."""

    level = logging.getLevelName(str(level_name).upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)
    return level


def enable_file_logging(log_path: Path) -> Path:
    """Mirror guidance logs into ``log_path`` from a background listener.

    Records are handed to a queue on the calling thread so slow disks never
    stall the tick loop. Calling again with the same path is a no-op; a new
    path replaces the previous sink.
    """

    global _file_sink

    log_path = Path(log_path).expanduser()
    if _file_sink is not None and _file_sink.path == log_path:
        return log_path
    disable_file_logging()

    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))

    records: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    queue_handler = logging.handlers.QueueHandler(records)
    listener = logging.handlers.QueueListener(records, file_handler)
    listener.start()
    logger.addHandler(queue_handler)

    _file_sink = _FileSink(path=log_path, handler=queue_handler, listener=listener)
    return log_path


def disable_file_logging() -> None:
    """Flush pending records, then detach and close the file sink."""

    global _file_sink

    if _file_sink is None:
        return
    sink, _file_sink = _file_sink, None
    sink.close()


atexit.register(disable_file_logging)


def _format_text(message: str, style: str) -> Any:
    if Text is None:
        return message
    return Text(message, style=style)


def log_announcement(text: str, locale: str, priority: str) -> None:
    style = "bold red" if priority == "high" else "bold cyan"
    icon = "🚨" if priority == "high" else "🔊"
    logger.info(_format_text(f"{icon} [{locale}] {text}", style=style))


def log_error(message: str) -> None:
    logger.error(_format_text(message, style="bold red"))


def log_info(message: str, style: str = "bold white") -> None:
    logger.info(_format_text(message, style=style))


def log_warning(message: str) -> None:
    logger.warning(_format_text(message, style="bold yellow"))
