import contextlib
import logging
import serial
import threading
from collections.abc import Callable

import pydantic

from serial_events import _encoding
from serial_events import _exceptions
from serial_events import _framing
from serial_events import _listener
from serial_events import _scanning
from serial_events import _transport

log = logging.getLogger("serial_events.port")


class PortOptions(pydantic.BaseModel):
    baud: int = 115200
    timeout: float = 2.0
    exclusive: bool = True


class Port(contextlib.AbstractContextManager):
    """One open serial connection, with at most one active listener.

    The Port owns its sink: nothing else should read from or write to it
    while the Port is open. Closing the Port removes the listener first,
    then closes the sink; closing again does nothing.
    """

    def __init__(
        self, path: str, sink: _transport.ByteSink, *, baud: int = 115200
    ):
        self.path = path
        self.baud = baud
        self.sink = sink
        self._lock = threading.Lock()
        self._firing_lock = threading.Lock()
        self._listener: _listener.Listener | None = None
        self._closed = False

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Port({self.path!r}, baud={self.baud})"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def listener(self) -> _listener.Listener | None:
        with self._lock:
            return self._listener

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            listener, self._listener = self._listener, None

        if listener:
            listener.stop()
        self.sink.close()
        log.debug("Closed %s", self.path)

    def write(self, value: object) -> None:
        """Writes a byte (int), a sequence of bytes (ints), or a buffer"""

        data = _encoding.encode(value)
        self._check_open()
        self.sink.write(data)
        self.sink.flush()

    def listen(
        self,
        handler: _listener.Handler,
        skip_buffered: bool = True,
        *,
        replace: bool = True,
        on_error: _listener.ErrorHandler | None = None,
    ) -> _listener.Listener:
        """Calls 'handler(sink)' each time data arrives on this port.

        With 'skip_buffered', bytes already waiting are discarded first.
        An existing listener is stopped and replaced, or with replace=False,
        ListenerBusy is raised instead. Returns the new Listener.
        """

        self._check_open()
        listener = _listener.Listener(
            self.path,
            self.sink,
            handler,
            firing_lock=self._firing_lock,
            on_error=on_error,
        )

        with self._lock:
            previous = self._listener
            if previous and not replace:
                message = f"Already listening ({previous!r})"
                raise _exceptions.ListenerBusy(message, self.path)
            self._listener = listener

        if previous:
            log.info("Replacing %r on %s", previous, self.path)
            previous.stop()

        if skip_buffered:
            dropped = self.sink.skip(self.sink.available())
            log.debug("Skipped %db buffered on %s", dropped, self.path)

        try:
            listener.start()
        except BaseException:
            with self._lock:
                if self._listener is listener:
                    self._listener = None
            listener.stop()
            raise
        return listener

    def remove_listener(self) -> None:
        with self._lock:
            listener, self._listener = self._listener, None
        if listener:
            listener.stop()

    @pydantic.validate_call
    def on_byte(
        self,
        handler: Callable[[int], None],
        skip_buffered: bool = True,
        *,
        replace: bool = True,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> _listener.Listener:
        """Calls 'handler(byte)' for each byte received (an int 0-255)"""

        framer = _framing.ByteFramer(handler)
        return self.listen(
            framer, skip_buffered, replace=replace, on_error=on_error
        )

    @pydantic.validate_call
    def on_n_bytes(
        self,
        n: pydantic.PositiveInt,
        handler: Callable[[bytes], None],
        skip_buffered: bool = True,
        *,
        replace: bool = True,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> _listener.Listener:
        """Splits the incoming stream into n-byte chunks for 'handler(chunk)'"""

        framer = _framing.ChunkFramer(n, handler)
        return self.listen(
            framer, skip_buffered, replace=replace, on_error=on_error
        )

    def _check_open(self) -> None:
        if self._closed:
            message = "Serial port was closed"
            raise _exceptions.SerialIoClosed(message, self.path)


@pydantic.validate_call
def open_port(path: str, opts: PortOptions | int = PortOptions()) -> Port:
    """Opens the serial port named 'path' (8N1) and returns a Port for it.

    'path' must match the name of a port from list_port_identifiers().
    Pass a baud rate or PortOptions; the default is 115200 baud.
    Raises PortUnavailable (naming 'path') if the port can't be opened.
    """

    if isinstance(opts, int):
        opts = PortOptions(baud=opts)

    found = _scanning.list_port_identifiers()
    port_id = next((p for p in found if p.name == path), None)
    if port_id is None:
        message = "Sorry, couldn't connect to the port (not found)"
        raise _exceptions.PortUnavailable(message, path)

    log.debug("Opening %s (%s)", port_id.name, opts)
    try:
        pyserial = serial.Serial(
            port=port_id.name,
            baudrate=opts.baud,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            write_timeout=opts.timeout,
            exclusive=opts.exclusive,
        )
    except (OSError, ValueError) as ex:
        message = "Sorry, couldn't connect to the port"
        raise _exceptions.PortUnavailable(message, path) from ex

    sink = _transport.PySerialSink(pyserial)
    sink.start()
    return Port(path, sink, baud=opts.baud)
