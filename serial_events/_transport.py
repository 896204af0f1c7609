import contextlib
import logging
import serial
import threading
import typing
from collections.abc import Callable

from serial_events import _exceptions
from serial_events import _timeout_math

log = logging.getLogger("serial_events.transport")
data_log = logging.getLogger(log.name + ".data")


@typing.runtime_checkable
class ByteSink(typing.Protocol):
    """Readable/writable byte stream with a data-available notification"""

    def read(self) -> int:
        """Blocks for one byte and returns it (0-255)"""
        ...

    def available(self) -> int:
        """Buffered byte count; raises a pending read failure once drained"""
        ...

    def skip(self, count: int) -> int:
        """Discards up to 'count' buffered bytes, returns the number dropped"""
        ...

    def write(self, data: bytes) -> None: ...

    def flush(self) -> None: ...

    def arm_notify(self, on_data: Callable[[], None]) -> None:
        """Calls 'on_data' (from any thread) whenever bytes arrive"""
        ...

    def disarm_notify(self) -> None: ...

    def cancel_read(self) -> None:
        """Wakes read() calls blocked right now with SerialReadCancelled"""
        ...

    def close(self) -> None: ...


class PySerialSink(contextlib.AbstractContextManager):
    """ByteSink over pyserial; a reader thread raises notifications"""

    def __init__(self, pyserial: serial.Serial) -> None:
        self.pyserial = pyserial
        self.monitor = threading.Condition()
        self.incoming = bytearray()
        self.exception: None | _exceptions.SerialIoException = None
        self._write_lock = threading.Lock()
        self._on_data: Callable[[], None] | None = None
        self._read_generation = 0
        self._thread: threading.Thread | None = None

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PySerialSink({self.pyserial.port!r})"

    def start(self) -> None:
        name = f"{self.pyserial.port} reader"
        self._thread = threading.Thread(
            target=self._readloop, name=name, daemon=True
        )
        self._thread.start()

    def close(self) -> None:
        with self.monitor:
            if isinstance(self.exception, _exceptions.SerialIoClosed):
                return
            message, port = "Serial port was closed", self.pyserial.port
            self.exception = _exceptions.SerialIoClosed(message, port)
            self._on_data = None
            self.monitor.notify_all()

        try:
            self.pyserial.cancel_read()
            log.debug("Cancelled %s reads", self.pyserial.port)
        except OSError:
            port = self.pyserial.port
            log.warning("Can't cancel %s reads", port, exc_info=True)

        if self._thread and self._thread is not threading.current_thread():
            log.debug("Joining %s reader thread", self.pyserial.port)
            self._thread.join()

        self.pyserial.close()
        log.debug("Closed %s", self.pyserial.port)

    def read(self, timeout: float | int | None = None) -> int:
        deadline = _timeout_math.to_deadline(timeout)
        with self.monitor:
            generation = self._read_generation
            while not self.incoming:
                if self.exception:
                    raise self.exception
                if generation != self._read_generation:
                    message, port = "Serial read cancelled", self.pyserial.port
                    raise _exceptions.SerialReadCancelled(message, port)
                wait = _timeout_math.from_deadline(deadline)
                if wait <= 0:
                    message, port = "Serial read timed out", self.pyserial.port
                    raise _exceptions.TransportReadFailure(message, port)
                self.monitor.wait(timeout=wait)

            value = self.incoming[0]
            del self.incoming[:1]
            return value

    def available(self) -> int:
        with self.monitor:
            if not self.incoming and self.exception:
                if not isinstance(self.exception, _exceptions.SerialIoClosed):
                    raise self.exception
            return len(self.incoming)

    def skip(self, count: int) -> int:
        with self.monitor:
            dropped = max(0, min(count, len(self.incoming)))
            del self.incoming[:dropped]
        if dropped:
            data_log.debug("Skipped %db", dropped)
        return dropped

    def write(self, data: bytes) -> None:
        with self._write_lock:
            self._check_writable()
            try:
                self.pyserial.write(data)
            except OSError as ex:
                message, port = "Serial write error", self.pyserial.port
                raise _exceptions.TransportWriteFailure(message, port) from ex
            data_log.debug("Wrote %db", len(data))

    def flush(self) -> None:
        with self._write_lock:
            self._check_writable()
            try:
                self.pyserial.flush()
            except OSError as ex:
                message, port = "Serial flush error", self.pyserial.port
                raise _exceptions.TransportWriteFailure(message, port) from ex

    def arm_notify(self, on_data: Callable[[], None]) -> None:
        with self.monitor:
            if isinstance(self.exception, _exceptions.SerialIoClosed):
                raise self.exception
            self._on_data = on_data
            pending = bool(self.incoming) or self.exception is not None

        # bytes that arrived before arming still get a firing
        if pending:
            on_data()

    def disarm_notify(self) -> None:
        with self.monitor:
            self._on_data = None

    def cancel_read(self) -> None:
        with self.monitor:
            self._read_generation += 1
            self.monitor.notify_all()

    def _check_writable(self) -> None:
        with self.monitor:
            if isinstance(self.exception, _exceptions.SerialIoClosed):
                raise self.exception

    def _readloop(self) -> None:
        log.debug("Starting thread")
        while not self.exception:
            incoming, error = b"", None
            try:
                # Block for at least one byte, then grab all available
                incoming = self.pyserial.read(size=1)
                if incoming:
                    waiting = self.pyserial.in_waiting
                    if waiting > 0:
                        incoming += self.pyserial.read(size=waiting)
            except OSError as ex:
                message, port = "Serial read error", self.pyserial.port
                error = _exceptions.TransportReadFailure(message, port)
                error.__cause__ = ex
                data_log.warning("%s", message, exc_info=True)

            on_data = None
            with self.monitor:
                if incoming:
                    data_log.debug(
                        "Read %db buf=%db", len(incoming), len(self.incoming)
                    )
                if incoming or (error and not self.exception):
                    self.incoming.extend(incoming)
                    self.exception = self.exception or error
                    self.monitor.notify_all()
                    on_data = self._on_data

            if on_data:
                on_data()
