"""Unit tests for serial_events.cli."""

import serial_events
from serial_events import cli


def test_format_index():
    ports = [
        serial_events.PortIdentifier(name="/dev/ttyACM0"),
        serial_events.PortIdentifier(name="/dev/ttyUSB0", attr={"vid": "1"}),
    ]
    assert cli.format_index(ports) == ["0 : /dev/ttyACM0", "1 : /dev/ttyUSB0"]
    assert cli.format_index([]) == []
