"""
=============================================================================
ROUTER LOGGER
=============================================================================

A line logger handed to every Router. One instance lives as long as the
application and is shared by reference; nothing is stored at class level.

    [2026-10-17T09:14:03+00:00] INF: Router: 200: GET /post/12
    [2026-10-17T09:14:05+00:00] WRN: Router: 404: POST /nope
    └─────────── UTC ─────────┘ └┬┘  └──────── one line ───────┘
                                 level tag

Built on the standard logging module. Each Logger owns a private
logging.Logger that is not registered with logging.getLogger(), so two
Logger instances never share handlers or levels, and the application's
own logging configuration is left alone.

    Level      Tag   Value
    DEBUG      DEB   10
    INFO       INF   20
    WARNING    WRN   30
    ERROR      ERR   40    (default)

Messages are forced onto one line: tabs become spaces, CR and LF are
written as the two-character escapes \\r and \\n, and runs of spaces
collapse. A log file is therefore safe to process line by line.
=============================================================================
"""

from datetime import datetime, timezone
from typing import Optional, TextIO, Union
import logging
import os
import re
import sys


logger = logging.getLogger(__name__)


DEBUG = logging.DEBUG
INFO = logging.INFO
WARNING = logging.WARNING
ERROR = logging.ERROR

LEVEL_TAGS = {
    DEBUG: "DEB",
    INFO: "INF",
    WARNING: "WRN",
    ERROR: "ERR",
}

LEVEL_NAMES = {
    "DEBUG": DEBUG,
    "INFO": INFO,
    "WARNING": WARNING,
    "ERROR": ERROR,
}

_SPACES = re.compile(r" +")


def one_line(message: str) -> str:
    """
    Collapse a message onto a single line.

        >>> one_line("a\\tb\\nc  d ")
        'a b\\\\nc d'
    """
    message = message.strip()
    message = message.replace("\t", " ")
    message = message.replace("\r", "\\r").replace("\n", "\\n")
    return _SPACES.sub(" ", message)


class LineFormatter(logging.Formatter):
    """Formats records as `[<UTC ISO-8601>] <TAG>: <message>`."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        tag = LEVEL_TAGS.get(record.levelno, record.levelname[:3])
        return f"[{timestamp.isoformat(timespec='seconds')}] {tag}: {one_line(record.getMessage())}"


class Logger:
    """
    Level-filtered line logger.

    Usage:
        log = Logger(INFO, path="/var/log/app.log")
        log.info("Router: 200: GET /")

        quiet = Logger()            # ERROR and above, to stderr
        buffer = Logger(DEBUG, handle=io.StringIO())
    """

    def __init__(
        self,
        level: Union[int, str] = ERROR,
        path: Optional[Union[str, os.PathLike]] = None,
        handle: Optional[TextIO] = None,
        name: str = "routekit",
    ):
        """
        Args:
            level: Minimum level, as a number or a name such as "INFO".
            path: Log file, opened in append mode.
            handle: Open text stream. Takes precedence over path.
            name: Logger name, only visible in repr().
        """
        level = self._coerce_level(level)
        self._logger = logging.Logger(name)
        self._logger.propagate = False
        self.path = None

        if handle is not None:
            handler: logging.Handler = logging.StreamHandler(handle)
        elif path is not None:
            try:
                handler = logging.FileHandler(path, mode="a", encoding="utf-8")
                self.path = os.fspath(path)
            except OSError as e:
                handler = logging.StreamHandler(sys.stderr)
                logger.warning(f"Cannot open log file {path}: {e}; using stderr")
        else:
            handler = logging.StreamHandler(sys.stderr)

        handler.setFormatter(LineFormatter())
        handler.setLevel(level)
        self._handler = handler
        self._logger.addHandler(handler)

    @staticmethod
    def _coerce_level(level: Union[int, str]) -> int:
        if isinstance(level, str):
            try:
                return LEVEL_NAMES[level.upper()]
            except KeyError:
                raise ValueError(f"Unknown log level: {level}")
        return int(level)

    @property
    def level(self) -> int:
        return self._handler.level

    @level.setter
    def level(self, value: Union[int, str]) -> None:
        self._handler.setLevel(self._coerce_level(value))

    @property
    def active(self) -> bool:
        return not self._logger.disabled

    def activate(self) -> "Logger":
        """Resume writing."""
        self._logger.disabled = False
        return self

    def deactivate(self) -> "Logger":
        """Drop every message until activate() is called."""
        self._logger.disabled = True
        return self

    def debug(self, message: str) -> None:
        self._logger.debug(message)

    def info(self, message: str) -> None:
        self._logger.info(message)

    def warning(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self._logger.error(message)

    # Short aliases for the level tags.
    deb = debug
    inf = info
    wrn = warning
    err = error

    def close(self) -> None:
        """Flush and release the handler. File handles are closed."""
        self._handler.flush()
        self._logger.removeHandler(self._handler)
        if isinstance(self._handler, logging.FileHandler):
            self._handler.close()

    def __repr__(self) -> str:
        level = logging.getLevelName(self.level)
        return f"Logger({self._logger.name!r}, level={level}, path={self.path!r})"
