"""An 80x25 text-mode screen and the debug output port, as character devices."""

from __future__ import annotations

from .textformat import CharacterDevice

SCREEN_WIDTH = 80
SCREEN_HEIGHT = 25
DEFAULT_COLOR = 0x7
BLANK = "\0"


class DebugPort(CharacterDevice):
    """Write-only debug port: everything written is collected in ``output``."""

    def __init__(self) -> None:
        self.output = bytearray()

    @property
    def text(self) -> str:
        """The collected output decoded as Latin-1."""
        return self.output.decode("latin-1")

    def read(self, size: int) -> bytes:
        """The port cannot be read; always returns no bytes."""
        return b""

    def write(self, data: bytes) -> int:
        data = bytes(data)
        self.output += data
        return len(data)


class TextScreen(CharacterDevice):
    """A text-mode frame buffer of character/colour cells with a moving cursor.

    If ``mirror`` is given, every character put on the screen is first written
    to it, as the boot loader echoes its output to the debug port.
    """

    def __init__(
        self,
        width: int = SCREEN_WIDTH,
        height: int = SCREEN_HEIGHT,
        color: int = DEFAULT_COLOR,
        mirror: CharacterDevice | None = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("screen dimensions must be positive")
        self.width = width
        self.height = height
        self.default_color = color & 0xFF
        self.mirror = mirror
        self.x = 0
        self.y = 0
        self.cursor = 0
        self._chars = [[BLANK] * width for _ in range(height)]
        self._colors = [[self.default_color] * width for _ in range(height)]
        self.clear()

    def _check(self, x: int, y: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"cell ({x}, {y}) is outside the screen")

    def _set_cursor(self) -> None:
        self.cursor = self.y * self.width + self.x

    def _blank_row(self, y: int) -> None:
        self._chars[y] = [BLANK] * self.width
        self._colors[y] = [self.default_color] * self.width

    def _scrollback(self, lines: int) -> None:
        self._chars = self._chars[lines:] + self._chars[:lines]
        self._colors = self._colors[lines:] + self._colors[:lines]
        for y in range(self.height - lines, self.height):
            self._blank_row(y)
        self.y -= lines

    def clear(self) -> None:
        """Blank every cell, reset colours and move the cursor home."""
        for y in range(self.height):
            self._blank_row(y)
        self.x = 0
        self.y = 0
        self._set_cursor()

    def put(self, ch: str) -> None:
        """Put one character, handling newline, carriage return and tab."""
        if not isinstance(ch, str) or len(ch) != 1:
            raise ValueError(f"expected a single character, got {ch!r}")
        if self.mirror is not None:
            self.mirror.write(ch.encode("latin-1", errors="replace"))
        if ch == "\n":
            self.x = 0
            self.y += 1
        elif ch == "\t":
            # the bound is recomputed on every pass as the cursor moves
            count = 0
            while count < 4 - (self.x % 4):
                self.put(" ")
                count += 1
        elif ch == "\r":
            self.x = 0
        else:
            self._chars[self.y][self.x] = ch
            self.x += 1

        if self.x >= self.width:
            self.y += 1
            self.x = 0
        if self.y >= self.height:
            self._scrollback(1)
        self._set_cursor()

    def write(self, data: bytes) -> int:
        data = bytes(data)
        for byte in data:
            self.put(chr(byte))
        return len(data)

    def read(self, size: int) -> bytes:
        """The screen cannot be read back as a stream; always returns no bytes."""
        return b""

    def char_at(self, x: int, y: int) -> str:
        """The character stored in cell (x, y)."""
        self._check(x, y)
        return self._chars[y][x]

    def color_at(self, x: int, y: int) -> int:
        """The colour attribute of cell (x, y)."""
        self._check(x, y)
        return self._colors[y][x]

    def lines(self) -> list[str]:
        """Each row as text, blank cells shown as spaces, trailing blanks removed."""
        return ["".join(row).replace(BLANK, " ").rstrip() for row in self._chars]