"""Character, UTF-16/UTF-8 and real-mode address helpers."""

from __future__ import annotations

import operator
from typing import Sequence


def _single_char(ch: str) -> str:
    if not isinstance(ch, str) or len(ch) != 1:
        raise ValueError(f"expected a single character, got {ch!r}")
    return ch


def is_lower(ch: str) -> bool:
    """True if ``ch`` is an ASCII lower-case letter."""
    return "a" <= _single_char(ch) <= "z"


def to_upper(ch: str) -> str:
    """Upper-case an ASCII letter; any other character is returned unchanged."""
    return chr(ord(ch) - ord("a") + ord("A")) if is_lower(ch) else ch


def utf16_to_codepoint(units: Sequence[int]) -> tuple[int, int]:
    """Decode one code point from UTF-16 code units.

    Returns ``(codepoint, units_consumed)``.
    """
    if not units:
        raise ValueError("no UTF-16 code units to decode")
    first = units[0]
    if 0xD800 <= first < 0xDC00:
        if len(units) < 2:
            raise ValueError("truncated UTF-16 surrogate pair")
        second = units[1]
        return ((first & 0x3FF) << 10) + (second & 0x3FF) + 0x10000, 2
    return first, 1


def codepoint_to_utf8(codepoint: int) -> bytes:
    """Encode a code point as UTF-8 (up to 4 bytes); beyond 0x1FFFFF yields nothing."""
    cp = operator.index(codepoint)
    if cp < 0:
        raise ValueError(f"negative code point {cp}")
    if cp <= 0x7F:
        return bytes((cp,))
    if cp <= 0x7FF:
        return bytes((0xC0 | ((cp >> 6) & 0x1F), 0x80 | (cp & 0x3F)))
    if cp <= 0xFFFF:
        return bytes((
            0xE0 | ((cp >> 12) & 0xF),
            0x80 | ((cp >> 6) & 0x3F),
            0x80 | (cp & 0x3F),
        ))
    if cp <= 0x1FFFFF:
        return bytes((
            0xF0 | ((cp >> 18) & 0x7),
            0x80 | ((cp >> 12) & 0x3F),
            0x80 | ((cp >> 6) & 0x3F),
            0x80 | (cp & 0x3F),
        ))
    return b""


def segoffset_to_linear(address: int) -> int:
    """Turn a 32-bit segment:offset pair (segment in the high word) into a linear address."""
    address = operator.index(address) & 0xFFFFFFFF
    segment, offset = address >> 16, address & 0xFFFF
    return segment * 16 + offset