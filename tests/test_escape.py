"""
Escape sequence decoding tests.

Includes the compatibility cases for \\x escapes whose second hex digit
is 0 or missing; those digits are dropped rather than added.
"""

import pytest

import datalist
from datalist import decode_escapes


@pytest.mark.parametrize(
    "raw,expected",
    [
        (b"a\\nb", b"a\nb"),
        (b"\\r\\t\\a\\b\\v", b"\r\t\a\b\v"),
        (b"\\'\\\"", b"'\""),
        (b"\\65\\066", b"AB"),
        (b"\\0", b"\x00"),
        (b"x\\0y", b"x\x00y"),
        (b"\\2551", b"\xff1"),
        (b"\\256", b"\x196"),
        (b"\\1234", b"{4"),
        (b"\\x41", b"A"),
        (b"\\X7f", b"\x7f"),
        (b"\\xff!", b"\xff!"),
    ],
)
def test_supported_escapes(raw: bytes, expected: bytes) -> None:
    """
    Validates named, decimal and hex escapes.
    """
    assert decode_escapes(raw) == expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        (b"\\x40", b"\x04"),
        (b"\\x4z", b"\x04"),
        (b"\\x4zq", b"\x04q"),
        (b"\\x00", b"\x00"),
    ],
)
def test_hex_escape_second_digit_quirk(raw: bytes, expected: bytes) -> None:
    """
    Validates a zero or non-hex second digit is consumed and ignored.

    Compatibility behaviour: \\x40 decodes to 0x04, not 0x40.
    """
    assert decode_escapes(raw) == expected


@pytest.mark.parametrize(
    "raw,expected_pos",
    [
        (b"\\\\", 0),
        (b"ab\\q", 2),
        (b"\\xg1", 0),
        (b"\\x4", 0),
        (b"a\\x", 1),
        (b"trailing\\", 8),
    ],
)
def test_invalid_escapes(raw: bytes, expected_pos: int) -> None:
    """
    Validates unsupported and malformed escapes are rejected.
    """
    with pytest.raises(datalist.DatalistDecodeError) as exc_info:
        decode_escapes(raw)

    assert exc_info.value.msg == "Invalid escape sequence"
    assert exc_info.value.pos == expected_pos


@pytest.mark.parametrize("raw", [b"", b"plain", b"tab\there", b"\xff\x00"])
def test_no_backslash_returns_input(raw: bytes) -> None:
    """
    Validates input without escapes is returned unchanged.
    """
    assert decode_escapes(raw) is raw


def test_decoding_is_idempotent_without_backslashes() -> None:
    """
    Validates decoding already-decoded output is a no-op.
    """
    once = decode_escapes(b"he said \\\"hi\\\"")
    assert once == b'he said "hi"'
    assert decode_escapes(once) == once


def test_escapes_through_loads() -> None:
    """
    Validates escaped strings inside documents.
    """
    assert datalist.loads('"he said \\"hi\\""') == 'he said "hi"'
    assert datalist.loads("x = '\\x41\\t\\39'") == {"x": "A\t'"}
    assert datalist.loads("'\\0'") == "\x00"


def test_high_bytes_survive_decoding() -> None:
    """
    Validates escaped bytes that are not valid UTF-8 round-trip.
    """
    value = datalist.loads("'\\255'")

    assert value == "\udcff"
    assert value.encode("utf-8", "surrogateescape") == b"\xff"
    assert datalist.loads("'\\255'", decode_strings=False) == b"\xff"
