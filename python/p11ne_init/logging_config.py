"""Process-wide logging sink for the p11ne enclave image."""

import logging
import os
import sys
import threading
import time
from enum import IntEnum
from typing import Optional, TextIO, Union

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Placeholder pathname logging uses when it cannot find the calling frame
UNKNOWN_FILE = "(unknown file)"

LOG_FORMAT = "%(level)-8s %(asctime)s | %(pathname)s:%(lineno)d %(message)s"


class Level(IntEnum):
    """Severity levels understood by the sink, from least to most severe."""

    TRACE = TRACE
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR


class RecordLocationError(RuntimeError):
    """Raised when a record without a source file or line reaches the sink."""

    pass


def _has_location(record: logging.LogRecord) -> bool:
    if not record.pathname or record.pathname == UNKNOWN_FILE:
        return False
    return bool(record.lineno)


def _level_name(record: logging.LogRecord) -> str:
    try:
        return Level(record.levelno).name
    except ValueError:
        return record.levelname


class LogSinkFormatter(logging.Formatter):
    """Render records as ``LEVEL    YYYY-MM-DD HH:MM:SS.mmm | file:line message``.

    Timestamps are rendered in the local time zone with millisecond precision.
    Every record renders as a single line: exception and stack text are
    folded onto it with " | " separators. Every record must carry its source
    location; records without one are rejected with RecordLocationError
    instead of being rendered partially.
    """

    default_msec_format = "%s.%03d"

    def __init__(self) -> None:
        super().__init__(LOG_FORMAT)

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        ct = self.converter(record.created)
        return self.default_msec_format % (
            time.strftime("%Y-%m-%d %H:%M:%S", ct),
            record.msecs,
        )

    def format(self, record: logging.LogRecord) -> str:
        if not _has_location(record):
            raise RecordLocationError(
                f"Log record from '{record.name}' has no source location "
                f"(file={record.pathname!r}, line={record.lineno!r})"
            )
        record.level = _level_name(record)
        rendered = super().format(record)
        # Tracebacks, stack info and multi-line messages stay on the record's line
        return " | ".join(line.strip() for line in rendered.splitlines() if line.strip())


class LogSinkHandler(logging.StreamHandler):
    """Unbuffered handler writing one rendered line per record.

    Each record is written with a single ``write`` call while the handler's
    lock is held, so lines from concurrent threads never interleave. The
    handler has no level and no filters: every record it receives is written.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        super().__init__(stream if stream is not None else sys.stderr)
        self.setFormatter(LogSinkFormatter())

    def emit(self, record: logging.LogRecord) -> None:
        # RecordLocationError from format() is fatal and must reach the caller
        line = self.format(record)
        try:
            self.stream.write(line + self.terminator)
        except RecursionError:
            raise
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        pass


_sink: Optional[LogSinkHandler] = None
_sink_lock = threading.Lock()


def parse_level(level: str) -> Union[int, str]:
    """Parse a log level string into a form accepted by ``Logger.setLevel``.

    Numeric strings are converted to int, anything else is upper-cased.
    """
    try:
        return int(level)
    except ValueError:
        return level.upper()


def resolve_max_level() -> int:
    """Maximum level admitted once the sink is initialized.

    Read from P11NE_LOG_LEVEL, falling back to LOG_LEVEL. Defaults to TRACE
    (allow everything) when unset or not a known level.
    """
    raw = os.getenv("P11NE_LOG_LEVEL", os.getenv("LOG_LEVEL", "")).strip()
    if not raw:
        return TRACE

    level = parse_level(raw)
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(level)
    if isinstance(resolved, int):
        return resolved
    return TRACE


def get_logger(name: str = "p11ne_init") -> logging.Logger:
    """Get a component logger.

    Component loggers carry no handlers of their own; their records propagate
    to the root logger, where the sink is installed by ``initialize``. Until
    then, records below WARNING are dropped.
    """
    return logging.getLogger(name)


def initialize(stream: Optional[TextIO] = None) -> bool:
    """Install the process-wide sink on the root logger.

    Only the first call installs anything. Later calls, including ones racing
    the first from other threads, leave the installed sink in place and only
    emit a TRACE record noting the attempt.

    Args:
        stream: Output stream for the sink, stderr when omitted.

    Returns:
        True if this call installed the sink, False if one was already active.
    """
    global _sink

    with _sink_lock:
        if _sink is None:
            handler = LogSinkHandler(stream)
            root = logging.getLogger()
            root.addHandler(handler)
            root.setLevel(resolve_max_level())
            _sink = handler
            return True

    get_logger(__name__).log(TRACE, "Logger already initialized")
    return False


def is_initialized() -> bool:
    return _sink is not None


def get_sink() -> Optional[LogSinkHandler]:
    return _sink
