"""Logging setup shared by the CLI, the web app and the judge pipeline."""

import logging
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .exceptions import NarrativeJudgeException

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

# Client libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def _context_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("ctx_") and not key.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """Formatter that appends ``key=value`` context to each line.

    Context comes from two places: keyword arguments passed through
    :class:`JudgeLogger` (``campaign_id``, ``model`` ...) and the ``context``
    mapping of a :class:`NarrativeJudgeException` being logged, which is
    exposed as ``ctx_<key>`` attributes for format strings that want it.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.exc_info and isinstance(record.exc_info[1], NarrativeJudgeException):
            for key, value in record.exc_info[1].context.items():
                setattr(record, f"ctx_{key}", value)

        text = super().format(record)
        fields = _context_fields(record)
        if not fields:
            return text
        suffix = " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        head, sep, tail = text.partition("\n")
        return f"{head} {suffix}{sep}{tail}"


class JudgeLogger:
    """Logger wrapper that carries bound context such as the campaign id."""

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self._logger = logging.getLogger(name)
        self._context: Dict[str, Any] = dict(context or {})
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def context(self) -> Dict[str, Any]:
        return dict(self._context)

    def bind(self, **context: Any) -> "JudgeLogger":
        """Return a logger that adds ``context`` to every record it emits."""
        merged = {**self._context, **context}
        return JudgeLogger(self._logger.name, merged)

    def _log(self, level: int, msg: str, exc_info: Any, context: Dict[str, Any]) -> None:
        extra = {**self._context, **context}
        with self._lock:
            self._logger.log(level, msg, exc_info=exc_info, extra=extra, stacklevel=3)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, None, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, None, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, None, kwargs)

    def error(self, msg: str, exc_info: bool = False, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, exc_info or None, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, True, kwargs)


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    include_timestamp: bool = True,
    formatter: Optional[logging.Formatter] = None,
    quiet_loggers: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """Configure root logging for a judge run.

    Args:
        level: Logging level name; unknown names fall back to INFO
        log_file: Optional file that receives the same records without colour
        format_string: Custom format string (uses default if None)
        include_timestamp: Whether the default format starts with a timestamp
        formatter: Pre-built formatter for the console handler (the CLI passes its colour formatter)
        quiet_loggers: Loggers held at WARNING unless ``level`` is DEBUG
    """
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(numeric_level)

    if format_string is None:
        if include_timestamp:
            format_string = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        else:
            format_string = "[%(levelname)s] %(name)s: %(message)s"

    file_formatter = StructuredFormatter(format_string)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter or file_formatter)
    console_handler.setLevel(numeric_level)
    root.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(numeric_level)
        root.addHandler(file_handler)

    library_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in quiet_loggers:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str, **context: Any) -> JudgeLogger:
    """Return a :class:`JudgeLogger`, optionally pre-bound to ``context``."""
    return JudgeLogger(name, context)


__all__ = [
    "NOISY_LOGGERS",
    "StructuredFormatter",
    "JudgeLogger",
    "configure_logging",
    "get_logger",
]
