"""Kernel console: file descriptors, formatted output and coloured log lines."""

from __future__ import annotations

import errno
from enum import IntEnum

from .screen import DebugPort, TextScreen
from .textformat import CharacterDevice, format_buffer, format_text

STDIN = 0
STDOUT = 1
STDERR = 2
DEBUG = 3


class LogLevel(IntEnum):
    """Severity of a log message, lowest first."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    CRITICAL = 4


MIN_LOG_LEVEL = LogLevel.DEBUG

_LEVEL_COLORS = {
    LogLevel.DEBUG: "\033[2;37m",
    LogLevel.INFO: "\033[37m",
    LogLevel.WARN: "\033[1;33m",
    LogLevel.ERROR: "\033[1;31m",
    LogLevel.CRITICAL: "\033[1;37;41m",
}

COLOR_RESET = "\033[0m"


def format_log(module: str, level: LogLevel | int, fmt: str, *args: object) -> str:
    """Build one coloured log line; empty if ``level`` is below the minimum."""
    level = LogLevel(level)
    if level < MIN_LOG_LEVEL:
        return ""
    body = format_text(fmt, *args)
    return f"{_LEVEL_COLORS[level]}[{module}] {body}{COLOR_RESET}\n"


class VirtualFileSystem:
    """Routes writes on the fixed descriptors to the screen or the debug port."""

    def __init__(
        self,
        screen: CharacterDevice | None = None,
        debug: CharacterDevice | None = None,
    ) -> None:
        self.screen = screen if screen is not None else TextScreen()
        self.debug = debug if debug is not None else DebugPort()

    def write(self, fd: int, data: bytes) -> int:
        """Write ``data`` to descriptor ``fd`` and return the bytes written."""
        data = bytes(data)
        if fd == STDIN:
            return 0
        if fd in (STDOUT, STDERR):
            return self.screen.write(data)
        if fd == DEBUG:
            return self.debug.write(data)
        raise OSError(errno.EBADF, f"bad file descriptor {fd}")


class Console:
    """printf-style output on top of a :class:`VirtualFileSystem`."""

    def __init__(self, vfs: VirtualFileSystem | None = None) -> None:
        self.vfs = vfs if vfs is not None else VirtualFileSystem()

    def write(self, fd: int, text: str) -> int:
        """Write ``text`` to descriptor ``fd``."""
        return self.vfs.write(fd, text.encode("latin-1", errors="replace"))

    def fprintf(self, fd: int, fmt: str, *args: object) -> int:
        """Write the expansion of ``fmt`` to descriptor ``fd``."""
        return self.write(fd, format_text(fmt, *args))

    def printf(self, fmt: str, *args: object) -> int:
        """Formatted output to standard output."""
        return self.fprintf(STDOUT, fmt, *args)

    def debugf(self, fmt: str, *args: object) -> int:
        """Formatted output to the debug descriptor."""
        return self.fprintf(DEBUG, fmt, *args)

    def print_buffer(self, msg: str, data: bytes) -> int:
        """Hex dump of ``data`` after ``msg`` on standard output."""
        return self.write(STDOUT, format_buffer(msg, data))

    def debug_buffer(self, msg: str, data: bytes) -> int:
        """Hex dump of ``data`` after ``msg`` on the debug descriptor."""
        return self.write(DEBUG, format_buffer(msg, data))

    def log(self, module: str, level: LogLevel | int, fmt: str, *args: object) -> int:
        """Write a coloured log line to the debug descriptor."""
        line = format_log(module, level, fmt, *args)
        if not line:
            return 0
        return self.write(DEBUG, line)