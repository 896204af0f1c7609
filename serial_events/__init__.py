"""
Event-driven serial port library (PySerial wrapper): open a port,
write values as bytes, and get callbacks per byte or per fixed-size chunk.
"""

from beartype.claw import beartype_this_package as _beartype_me

# ruff: noqa: E402
_beartype_me()

from serial_events._encoding import encode

from serial_events._exceptions import (
    ListenerBusy,
    PortUnavailable,
    SerialException,
    SerialIoClosed,
    SerialIoException,
    SerialReadCancelled,
    SerialScanException,
    TransportReadFailure,
    TransportWriteFailure,
    UnsupportedValueKind,
)

from serial_events._framing import ByteFramer, ChunkFramer
from serial_events._listener import Listener
from serial_events._port import Port, PortOptions, open_port
from serial_events._scanning import (
    PortIdentifier,
    list_port_identifiers,
    port_at,
)
from serial_events._transport import ByteSink, PySerialSink

__all__ = [n for n in dir() if not n.startswith("_")]
