import collections.abc
import numbers

from serial_events import _exceptions


def encode(value: object) -> bytes:
    """Converts an outbound value to the bytes written to the port.

    Accepts a bytes-like buffer (sent as-is), a single integer, or a
    sequence of integers. Integers wrap to their low 8 bits as unsigned
    bytes (value % 256), so -1 is sent as 0xFF and 256 as 0x00.
    """

    match value:
        case bytes():
            return value
        case bytearray() | memoryview():
            return bytes(value)
        case bool() | str():
            pass
        case numbers.Integral():
            return bytes((int(value) % 256,))
        case collections.abc.Sequence():
            if bad := [v for v in value if not _is_int(v)]:
                kind = f"{_kind(value)} of {_kind(bad[0])}"
                raise _exceptions.UnsupportedValueKind(kind)
            return bytes(int(v) % 256 for v in value)

    raise _exceptions.UnsupportedValueKind(_kind(value))


def _is_int(v: object) -> bool:
    return isinstance(v, numbers.Integral) and not isinstance(v, bool)


def _kind(v: object) -> str:
    return type(v).__name__
