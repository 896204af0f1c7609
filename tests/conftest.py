import contextlib
import io
import json
import ok_logging_setup
import os
import pty
import pytest
import threading
import typing

import serial_events

ok_logging_setup.install(
    {
        "OK_LOGGING_LEVEL": "serial_events=DEBUG,WARNING",
        "OK_LOGGING_OUTPUT": "stdout",
    }
)


class PseudoTtySerial(typing.NamedTuple):
    path: str
    control: io.FileIO
    simulated: io.FileIO


@pytest.fixture
def pty_serial():
    with contextlib.ExitStack() as cleanup:
        ctrl_fd, sim_fd = pty.openpty()
        path = os.ttyname(sim_fd)
        ctrl = cleanup.enter_context(os.fdopen(ctrl_fd, "r+b", buffering=0))
        sim = cleanup.enter_context(os.fdopen(sim_fd, "r+b", buffering=0))
        yield PseudoTtySerial(path=path, control=ctrl, simulated=sim)


@pytest.fixture
def set_scan_override(monkeypatch, tmp_path):
    path = tmp_path / "scan.json"
    path.write_text("{}")
    monkeypatch.setenv("SERIAL_EVENTS_SCAN_OVERRIDE", str(path))

    def set_ports(ports: dict[str, dict[str, str]]):
        path.write_text(json.dumps(ports))

    return set_ports


class FakeSink:
    """In-memory ByteSink; feed() stands in for bytes arriving on the wire"""

    def __init__(self):
        self.monitor = threading.Condition()
        self.incoming = bytearray()
        self.written = bytearray()
        self.flushes = 0
        self.read_error: Exception | None = None
        self.on_data: typing.Callable[[], None] | None = None
        self.closed = False
        self.read_generation = 0

    def feed(self, data: bytes) -> None:
        with self.monitor:
            self.incoming.extend(data)
            self.monitor.notify_all()
            on_data = self.on_data
        if on_data:
            on_data()

    def fail(self, exc: Exception) -> None:
        with self.monitor:
            self.read_error = exc
            self.monitor.notify_all()
            on_data = self.on_data
        if on_data:
            on_data()

    def read(self) -> int:
        with self.monitor:
            generation = self.read_generation
            while not self.incoming:
                if self.read_error:
                    raise self.read_error
                if generation != self.read_generation:
                    raise serial_events.SerialReadCancelled("Cancelled")
                if not self.monitor.wait(timeout=5):
                    raise TimeoutError("FakeSink read starved")
            value = self.incoming[0]
            del self.incoming[:1]
            return value

    def available(self) -> int:
        with self.monitor:
            if not self.incoming and self.read_error:
                raise self.read_error
            return len(self.incoming)

    def skip(self, count: int) -> int:
        with self.monitor:
            dropped = max(0, min(count, len(self.incoming)))
            del self.incoming[:dropped]
            return dropped

    def write(self, data: bytes) -> None:
        self.written.extend(data)

    def flush(self) -> None:
        self.flushes += 1

    def arm_notify(self, on_data: typing.Callable[[], None]) -> None:
        with self.monitor:
            self.on_data = on_data
            pending = bool(self.incoming)
        if pending:
            on_data()

    def disarm_notify(self) -> None:
        with self.monitor:
            self.on_data = None

    def cancel_read(self) -> None:
        with self.monitor:
            self.read_generation += 1
            self.monitor.notify_all()

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_sink():
    return FakeSink()


@pytest.fixture
def fake_port(fake_sink):
    with serial_events.Port("/dev/fake", fake_sink) as port:
        yield port
