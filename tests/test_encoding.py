"""Unit tests for serial_events._encoding."""

import pytest

import serial_events
from serial_events import encode


def test_encode_buffers_pass_through():
    data = b"\x00\x41\xff"
    assert encode(data) is data
    assert encode(bytearray(data)) == data
    assert encode(memoryview(data)) == data
    assert encode(b"") == b""


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, b"\x00"),
        (65, b"A"),
        (255, b"\xff"),
        (256, b"\x00"),
        (257, b"\x01"),
        (-1, b"\xff"),
        (-128, b"\x80"),
        (0x1234, b"\x34"),
    ],
)
def test_encode_int_wraps_to_low_byte(value, expected):
    assert encode(value) == expected


def test_encode_wraparound_is_deterministic():
    assert encode(256) == encode(0)
    assert encode(511) == encode(-1)


def test_encode_sequences():
    assert encode([1, 2, 3]) == b"\x01\x02\x03"
    assert encode((0x41, 0x42)) == b"AB"
    assert encode(range(250, 260)) == bytes([250, 251, 252, 253, 254, 255]) + (
        b"\x00\x01\x02\x03"
    )
    assert encode([]) == b""
    assert encode([-1, 256, 65]) == b"\xff\x00A"


@pytest.mark.parametrize(
    "seq", [[0], list(range(100)), [300] * 7, (5, 4, 3, 2, 1)]
)
def test_encode_sequence_preserves_length(seq):
    assert len(encode(seq)) == len(seq)


@pytest.mark.parametrize(
    "value, kind",
    [
        ({"a": 1}, "dict"),
        (1.5, "float"),
        ("text", "str"),
        (True, "bool"),
        (None, "NoneType"),
        ({1, 2}, "set"),
        ([1, 2.5], "list of float"),
        ([1, None], "list of NoneType"),
        ((1, False), "tuple of bool"),
    ],
)
def test_encode_rejects_unsupported_values(value, kind):
    with pytest.raises(serial_events.UnsupportedValueKind) as exc_info:
        encode(value)
    assert exc_info.value.kind == kind
    assert kind in str(exc_info.value)
