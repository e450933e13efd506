"""Console log formatting."""

from __future__ import annotations

import logging
import os
import sys
from typing import IO


class ConsoleFormatter(logging.Formatter):
    """Formatter that colors the level name for interactive terminals.

    Color is off when ``NO_COLOR`` is set or the target stream is not a TTY,
    so files and container logs stay plain.
    """

    LEVEL_COLORS: dict[int, str] = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[34m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;41m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        *,
        stream: IO[str] | None = None,
        use_color: bool | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)  # type: ignore[arg-type]
        self._stream = stream or sys.stderr
        self._use_color = use_color

    @property
    def colored(self) -> bool:
        if self._use_color is not None:
            return self._use_color
        if "NO_COLOR" in os.environ:
            return False
        isatty = getattr(self._stream, "isatty", None)
        return bool(isatty and isatty())

    def format(self, record: logging.LogRecord) -> str:
        if not self.colored:
            return super().format(record)

        # Copy so other handlers still see the plain level name.
        record = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, "")
        record.levelname = f"{color}{record.levelname:<8}{self.RESET}"
        return super().format(record)
