"""Tests for ConsoleFormatter."""

import logging
from io import StringIO

import pytest

from listen_together.utils.logging import ConsoleFormatter

RESET = "\033[0m"


class FakeTTY(StringIO):
    def isatty(self) -> bool:
        return True


def _make_record(level: int, message: str = "test") -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


class TestColoredOutput:
    @pytest.mark.parametrize("level", list(ConsoleFormatter.LEVEL_COLORS))
    def test_level_colored(self, level):
        formatter = ConsoleFormatter("%(levelname)s %(message)s", use_color=True)

        output = formatter.format(_make_record(level))

        assert output.startswith(ConsoleFormatter.LEVEL_COLORS[level])
        assert RESET in output

    def test_record_not_mutated(self):
        formatter = ConsoleFormatter("%(levelname)s %(message)s", use_color=True)
        record = _make_record(logging.WARNING)

        formatter.format(record)

        assert record.levelname == "WARNING"

    def test_plain_when_disabled(self):
        formatter = ConsoleFormatter("%(levelname)s %(message)s", use_color=False)

        assert formatter.format(_make_record(logging.ERROR, "boom")) == "ERROR boom"


class TestColorDetection:
    def test_tty_stream(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)

        assert ConsoleFormatter(stream=FakeTTY()).colored is True

    def test_non_tty_stream(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)

        assert ConsoleFormatter(stream=StringIO()).colored is False

    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")

        assert ConsoleFormatter(stream=FakeTTY()).colored is False

    def test_explicit_override(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "1")

        assert ConsoleFormatter(stream=StringIO(), use_color=True).colored is True
