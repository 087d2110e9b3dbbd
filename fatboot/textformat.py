"""Minimal printf-style formatting and character devices that consume it."""

from __future__ import annotations

import operator
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Iterator

_HEX_CHARS = "0123456789abcdef"


class _State(Enum):
    NORMAL = auto()
    LENGTH = auto()
    LENGTH_SHORT = auto()
    LENGTH_LONG = auto()
    SPEC = auto()


class _Length(Enum):
    DEFAULT = auto()
    SHORT_SHORT = auto()
    SHORT = auto()
    LONG = auto()
    LONG_LONG = auto()


# On the 32-bit target, int and long are 32 bits wide and long long is 64.
_BITS = {
    _Length.DEFAULT: 32,
    _Length.SHORT_SHORT: 32,
    _Length.SHORT: 32,
    _Length.LONG: 32,
    _Length.LONG_LONG: 64,
}

# conversion character -> (radix, signed)
_NUMERIC_SPECS = {
    "d": (10, True),
    "i": (10, True),
    "u": (10, False),
    "X": (16, False),
    "x": (16, False),
    "p": (16, False),
    "o": (8, False),
}


def format_number(number: int, radix: int) -> str:
    """Render an integer in the given radix (2-16) with lower-case digits."""
    number = operator.index(number)
    if not 2 <= radix <= len(_HEX_CHARS):
        raise ValueError(f"radix must be between 2 and {len(_HEX_CHARS)}, got {radix}")
    if number < 0:
        return "-" + format_number(-number, radix)
    digits = []
    while True:
        number, rem = divmod(number, radix)
        digits.append(_HEX_CHARS[rem])
        if number == 0:
            break
    return "".join(reversed(digits))


def _next_arg(args: Iterator[object]) -> object:
    try:
        return next(args)
    except StopIteration:
        raise TypeError("not enough arguments for format string") from None


def _convert_integer(value: object, length: _Length, signed: bool) -> int:
    bits = _BITS[length]
    wrapped = operator.index(value) & ((1 << bits) - 1)
    if signed and wrapped >= 1 << (bits - 1):
        wrapped -= 1 << bits
    return wrapped


def _render_spec(spec: str, length: _Length, args: Iterator[object]) -> str:
    if spec == "c":
        value = _next_arg(args)
        if isinstance(value, str):
            if len(value) != 1:
                raise TypeError("%c requires a single character")
            return value
        return chr(operator.index(value) & 0xFF)
    if spec == "s":
        return str(_next_arg(args))
    if spec == "%":
        return "%"
    if spec in _NUMERIC_SPECS:
        radix, signed = _NUMERIC_SPECS[spec]
        return format_number(_convert_integer(_next_arg(args), length, signed), radix)
    # unknown conversions are dropped silently
    return ""


def _render(fmt: str, args: Iterator[object]) -> Iterator[str]:
    state = _State.NORMAL
    length = _Length.DEFAULT
    for ch in fmt:
        if state is _State.NORMAL:
            if ch == "%":
                state = _State.LENGTH
            else:
                yield ch
            continue
        if state is _State.LENGTH and ch == "h":
            length, state = _Length.SHORT, _State.LENGTH_SHORT
            continue
        if state is _State.LENGTH and ch == "l":
            length, state = _Length.LONG, _State.LENGTH_LONG
            continue
        if state is _State.LENGTH_SHORT and ch == "h":
            length, state = _Length.SHORT_SHORT, _State.SPEC
            continue
        if state is _State.LENGTH_LONG and ch == "l":
            length, state = _Length.LONG_LONG, _State.SPEC
            continue
        yield _render_spec(ch, length, args)
        state = _State.NORMAL
        length = _Length.DEFAULT


def format_text(fmt: str, *args: object) -> str:
    """Expand a format string supporting %c %s %% %d %i %u %x %X %p %o and h/hh/l/ll."""
    return "".join(_render(fmt, iter(args)))


def format_buffer(msg: str, data: bytes) -> str:
    """Return ``msg`` followed by the hex dump of ``data`` and a newline."""
    hex_digits = "".join(_HEX_CHARS[b >> 4] + _HEX_CHARS[b & 0xF] for b in bytes(data))
    return f"{msg}{hex_digits}\n"


class CharacterDevice(ABC):
    """A device that bytes can be read from and written to."""

    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read up to ``size`` bytes."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write ``data`` and return the number of bytes accepted."""


class MemoryDevice(CharacterDevice):
    """A FIFO byte device held in memory, optionally bounded in size."""

    def __init__(self, capacity: int | None = None) -> None:
        self.capacity = capacity
        self.buffer = bytearray()

    def read(self, size: int) -> bytes:
        chunk = bytes(self.buffer[:size])
        del self.buffer[:size]
        return chunk

    def write(self, data: bytes) -> int:
        data = bytes(data)
        if self.capacity is not None:
            data = data[: max(self.capacity - len(self.buffer), 0)]
        self.buffer += data
        return len(data)


class TextDevice:
    """Writes text and formatted output to a character device, byte by byte."""

    def __init__(self, device: CharacterDevice) -> None:
        self.device = device

    def write(self, text: str) -> bool:
        """Write ``text``; stop and return False at the first byte not accepted."""
        encoded = text.encode("latin-1", errors="replace")
        return all(self.device.write(bytes((b,))) == 1 for b in encoded)

    def format(self, fmt: str, *args: object) -> bool:
        """Write the expansion of ``fmt`` with ``args``."""
        return self.write(format_text(fmt, *args))

    def format_buffer(self, msg: str, data: bytes) -> bool:
        """Write ``msg`` followed by a hex dump of ``data``."""
        return self.write(format_buffer(msg, data))