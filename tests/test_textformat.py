import pytest

from fatboot.textformat import (
    CharacterDevice,
    MemoryDevice,
    TextDevice,
    format_buffer,
    format_number,
    format_text,
)


@pytest.mark.parametrize("radix", range(2, 17))
@pytest.mark.parametrize("number", [0, 1, 7, 255, 4096, 123456789])
def test_format_number_round_trips(number, radix):
    assert int(format_number(number, radix), radix) == number


def test_format_number_negative_has_sign():
    assert format_number(-42, 10) == "-" + format_number(42, 10)


def test_format_number_uses_lowercase_hex():
    assert format_number(0xABCDEF, 16) == format(0xABCDEF, "x")


@pytest.mark.parametrize("radix", [0, 1, 17])
def test_format_number_rejects_bad_radix(radix):
    with pytest.raises(ValueError):
        format_number(10, radix)


def test_plain_text_passes_through():
    assert format_text("hello world") == "hello world"


@pytest.mark.parametrize("n", [0, 1, -1, 99, -12345, 2**31 - 1, -(2**31)])
def test_signed_decimal_round_trip(n):
    assert int(format_text("%d", n)) == n
    assert format_text("%i", n) == format_text("%d", n)


@pytest.mark.parametrize("n", [0, 15, 255, 0xDEADBEEF])
def test_hex_and_octal(n):
    assert format_text("%x", n) == format(n, "x")
    assert format_text("%X", n) == format(n, "x")
    assert format_text("%p", n) == format(n, "x")
    assert format_text("%o", n) == format(n, "o")


def test_unsigned_wraps_to_32_bits():
    assert int(format_text("%u", -1)) == 0xFFFFFFFF


def test_long_long_unsigned_wraps_to_64_bits():
    assert int(format_text("%llu", -1)) == 2**64 - 1


def test_signed_int_wraps():
    assert int(format_text("%d", 2**31)) == -(2**31)


def test_long_long_keeps_large_values():
    big = 2**40 + 3
    assert int(format_text("%lld", big)) == big
    assert int(format_text("%llx", big), 16) == big


@pytest.mark.parametrize("modifier", ["h", "hh", "l"])
def test_short_and_long_modifiers_use_int_width(modifier):
    assert format_text(f"%{modifier}d", -7) == format_text("%d", -7)
    assert format_text(f"%{modifier}u", -7) == format_text("%u", -7)


def test_char_and_string():
    assert format_text("%c%c", 65, "z") == chr(65) + "z"
    assert format_text("[%s]", "abc") == "[" + "abc" + "]"


def test_percent_literal():
    assert format_text("100%%") == "100%"


def test_unknown_spec_is_dropped_without_argument():
    assert format_text("a%qb", 5) == format_text("ab")


def test_trailing_percent_is_dropped():
    assert format_text("abc%") == format_text("abc")


def test_missing_argument_raises():
    with pytest.raises(TypeError):
        format_text("%d and %d", 1)


def test_mixed_format():
    out = format_text("%s=%d (0x%x)", "val", 31, 31)
    assert out == "val=" + str(31) + " (0x" + format(31, "x") + ")"


def test_format_buffer():
    data = bytes([0x01, 0xAB, 0xFF, 0x00])
    assert format_buffer("msg: ", data) == "msg: " + data.hex() + "\n"


def test_character_device_is_abstract():
    with pytest.raises(TypeError):
        CharacterDevice()


def test_memory_device_fifo():
    dev = MemoryDevice()
    assert dev.write(b"hello") == 5
    assert dev.read(2) == b"he"
    assert dev.read(10) == b"llo"
    assert dev.read(1) == b""


def test_memory_device_capacity_truncates():
    dev = MemoryDevice(capacity=3)
    assert dev.write(b"abcdef") == 3
    assert bytes(dev.buffer) == b"abc"
    assert dev.write(b"x") == 0


def test_text_device_write():
    dev = MemoryDevice()
    text = TextDevice(dev)
    assert text.write("hi there") is True
    assert bytes(dev.buffer) == b"hi there"


def test_text_device_write_stops_on_failure():
    dev = MemoryDevice(capacity=3)
    text = TextDevice(dev)
    assert text.write("hello") is False
    assert bytes(dev.buffer) == b"hel"


def test_text_device_format():
    dev = MemoryDevice()
    assert TextDevice(dev).format("n=%d %s", 12, "ok") is True
    assert bytes(dev.buffer).decode() == format_text("n=%d %s", 12, "ok")


def test_text_device_format_buffer():
    dev = MemoryDevice()
    data = b"\x10\x20"
    assert TextDevice(dev).format_buffer("buf ", data) is True
    assert bytes(dev.buffer).decode() == format_buffer("buf ", data)