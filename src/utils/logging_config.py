"""Unified logging configuration for the render harness entrypoints.

Provides consistent logging for the fixture runner and the pytest suite:
    - Console and file handlers with optional rotation
    - JSON output mode for CI log ingestion
    - Contextual fields (test, run_id) attached to every record
    - Warning capture (Python warnings -> logging)

Public API:
    setup_logging(**yaml_cfg["logging"], context={"app": "run_fixture"})
    get_logger(name)
    push_context(test="regressions/issue-4321")
    pop_context(keys=["test"])

Format examples:
    Human: 2026-10-18T13:45:12.345Z | INFO     | test=line-join | Captured 100x100 pixels
    JSON:  {"t":"2026-10-18T13:45:12.345Z","lvl":"INFO","test":"line-join","msg":"..."}

Context uses contextvars, so concurrent asyncio runs keep separate fields.
Idempotent: repeated setup_logging() calls don't duplicate handlers.
"""

import contextvars
import json
import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


_context_var: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    'harness_logging_context', default={}
)

_installed_handlers: List[logging.Handler] = []


class ContextFormatter(logging.Formatter):
    """Formatter that appends the current context fields.

    Supports:
        - Human-readable lines with optional ANSI level colors
        - JSON lines for machine ingestion
    """

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m',
    }

    def __init__(
        self,
        fmt_mode: str = "human",
        use_color: bool = True,
        tz: str = "UTC"
    ):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"Unknown format mode: {fmt_mode}. Use 'human' or 'json'.")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()
        self.tz = tz

    def format(self, record: logging.LogRecord) -> str:
        context = _context_var.get()

        if self.tz == "UTC":
            ts = datetime.fromtimestamp(record.created, tz=timezone.utc)
        else:
            ts = datetime.fromtimestamp(record.created)

        if self.fmt_mode == "json":
            return self._format_json(record, ts, context)
        return self._format_human(record, ts, context)

    def _format_json(
        self,
        record: logging.LogRecord,
        ts: datetime,
        context: Dict[str, Any]
    ) -> str:
        log_dict: Dict[str, Any] = {
            't': ts.isoformat(),
            'lvl': record.levelname,
            'name': record.name,
            'pid': os.getpid(),
            'msg': record.getMessage(),
        }
        log_dict.update(context)

        if record.exc_info:
            log_dict['exc'] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)

    def _format_human(
        self,
        record: logging.LogRecord,
        ts: datetime,
        context: Dict[str, Any]
    ) -> str:
        ts_str = ts.strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3] + 'Z'

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.COLORS['RESET']}"

        parts = [ts_str, '|', level, '|']
        context_str = ' '.join(f"{k}={v}" for k, v in context.items())
        if context_str:
            parts.extend([context_str, '|'])
        parts.append(record.getMessage())

        line = ' '.join(parts)
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    file: Optional[str] = None,
    *,
    json: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    rotate: Optional[Dict[str, Any]] = None,
    tz: str = "UTC",
    capture_warnings: bool = True,
    quiet_libs: Optional[List[str]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> List[logging.Handler]:
    """Configure the root logger (idempotent).

    Parameters
    ----------
    level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"
    file : str, optional
        Log file path; None for no file logging
    json : bool
        Use JSON lines for the file handler, default False
    color : bool
        Use ANSI colors in console output, default True
    to_stderr : bool
        Log to stderr (console), default True
    rotate : dict, optional
        Rotation config:
        - {"mode": "size", "max_bytes": 10_000_000, "backup_count": 3}
        - {"mode": "time", "when": "D", "interval": 1, "backup_count": 7}
    tz : str
        Timezone for timestamps, "UTC" (default) or "local"
    capture_warnings : bool
        Capture Python warnings to logging, default True
    quiet_libs : list[str], optional
        Library names to set to WARNING level (e.g., ["PIL"])
    context : dict, optional
        Initial contextual fields (e.g., {"app": "run_fixture"})

    Returns
    -------
    list[logging.Handler]
        Handlers installed on the root logger.

    Examples
    --------
    >>> setup_logging(level="DEBUG", file="outputs/logs/harness.log",
    ...               rotate={"mode": "size", "max_bytes": 10_000_000, "backup_count": 3},
    ...               context={"app": "run_fixture"})
    """
    root = logging.getLogger()
    reset_logging()

    root.setLevel(getattr(logging, level.upper()))

    handlers: List[logging.Handler] = []

    if to_stderr:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(ContextFormatter("human", color, tz))
        root.addHandler(console_handler)
        handlers.append(console_handler)

    if file:
        file_handler = _create_file_handler(file, rotate, json, tz)
        root.addHandler(file_handler)
        handlers.append(file_handler)

    if context:
        push_context(**context)

    if quiet_libs:
        for lib in quiet_libs:
            logging.getLogger(lib).setLevel(logging.WARNING)

    if capture_warnings:
        logging.captureWarnings(True)
        logging.getLogger('py.warnings').setLevel(logging.WARNING)

    _installed_handlers.extend(handlers)
    return handlers


def reset_logging() -> None:
    """Remove and close the handlers installed by ``setup_logging``.

    Handlers added by anything else (pytest capture, embedding apps) are
    left alone.
    """
    root = logging.getLogger()
    while _installed_handlers:
        handler = _installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()


def _create_file_handler(
    log_file: str,
    rotate: Optional[Dict[str, Any]],
    json_format: bool,
    tz: str
) -> logging.Handler:
    """Create file handler with optional rotation."""
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler: logging.Handler
    if rotate:
        mode = rotate.get('mode', 'size')
        if mode == 'size':
            handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=rotate.get('max_bytes', 10_000_000),
                backupCount=rotate.get('backup_count', 3)
            )
        elif mode == 'time':
            handler = logging.handlers.TimedRotatingFileHandler(
                log_path,
                when=rotate.get('when', 'D'),
                interval=rotate.get('interval', 1),
                backupCount=rotate.get('backup_count', 7)
            )
        else:
            raise ValueError(f"Unknown rotation mode: {mode}. Use 'size' or 'time'.")
    else:
        handler = logging.FileHandler(log_path)

    fmt_mode = "json" if json_format else "human"
    handler.setFormatter(ContextFormatter(fmt_mode, use_color=False, tz=tz))
    return handler


def get_logger(name: str) -> logging.Logger:
    """Get logger by name (typically ``__name__``)."""
    return logging.getLogger(name)


def push_context(**kwargs: Any) -> None:
    """Add contextual fields to all subsequent log records.

    Notes
    -----
    Context lives in a ContextVar. Each asyncio task starts with a copy
    of its creator's context, so fields pushed inside one harness run
    don't leak into a sibling run.

    Examples
    --------
    >>> push_context(test="symbol-placement/line")
    >>> logger.info("Started")  # -> "... | test=symbol-placement/line | Started"
    """
    _context_var.set({**_context_var.get(), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove contextual fields; clears everything when *keys* is None."""
    if keys is None:
        _context_var.set({})
        return
    current = dict(_context_var.get())
    for key in keys:
        current.pop(key, None)
    _context_var.set(current)


def current_context() -> Dict[str, Any]:
    """Return a copy of the active contextual fields."""
    return dict(_context_var.get())
