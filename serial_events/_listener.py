import contextlib
import logging
import queue
import threading
from collections.abc import Callable

from serial_events import _timeout_math
from serial_events import _transport

log = logging.getLogger("serial_events.listener")

Handler = Callable[[_transport.ByteSink], None]
ErrorHandler = Callable[[BaseException], None]


class Listener:
    """One handler bound to a port's data-available notification.

    Each notification is queued and handled on this listener's own worker
    thread, so the sink's reader thread never waits on application code.
    Handlers run under the port's firing lock, one firing at a time.
    If a handler raises, the exception is kept in 'exception', logged,
    passed to 'on_error' (if given), and no further firings are handled.
    """

    def __init__(
        self,
        port_name: str,
        sink: _transport.ByteSink,
        handler: Handler,
        *,
        firing_lock: contextlib.AbstractContextManager,
        on_error: ErrorHandler | None = None,
    ):
        self.port_name = port_name
        self.exception: BaseException | None = None
        self._sink = sink
        self._handler = handler
        self._on_error = on_error
        self._firing_lock = firing_lock
        self._firings: queue.SimpleQueue[bool] = queue.SimpleQueue()
        self._monitor = threading.Condition()
        self._queued = 0
        self._handled = 0
        self._stopped = False
        self._thread = threading.Thread(
            target=self._workloop, name=f"{port_name} listener", daemon=True
        )

    def __repr__(self) -> str:
        return f"Listener({self.port_name!r}, {self._handler!r})"

    @property
    def active(self) -> bool:
        with self._monitor:
            return not (self._stopped or self.exception)

    def start(self) -> None:
        self._thread.start()
        self._sink.arm_notify(self._fire)
        log.debug("Armed %s", self.port_name)

    def stop(self) -> None:
        with self._monitor:
            if self._stopped:
                return
            self._stopped = True
            self._monitor.notify_all()

        self._sink.disarm_notify()
        self._firings.put(False)
        worker = self._thread
        if worker.ident and worker is not threading.current_thread():
            # a handler may be blocked in read(); keep waking it until it exits
            while worker.is_alive():
                self._sink.cancel_read()
                worker.join(timeout=0.1)
        log.debug("Disarmed %s", self.port_name)

    def wait_idle(self, timeout: float | int | None = None) -> bool:
        """Waits until every queued firing has been handled.

        Returns False on timeout. Returns True right away once the listener
        has stopped or faulted, since nothing more will be handled.
        """

        deadline = _timeout_math.to_deadline(timeout)
        with self._monitor:
            while self._handled < self._queued:
                if self._stopped:
                    return True
                wait = _timeout_math.from_deadline(deadline)
                if wait <= 0:
                    return False
                self._monitor.wait(timeout=wait)
            return True

    def _fire(self) -> None:
        with self._monitor:
            if self._stopped or self.exception:
                return
            self._queued += 1
        self._firings.put(True)

    def _workloop(self) -> None:
        log.debug("Starting thread")
        while self._firings.get():
            with self._monitor:
                if self._stopped:
                    break

            try:
                with self._firing_lock:
                    self._handler(self._sink)
            except Exception as exc:
                with self._monitor:
                    stopping = self._stopped
                if stopping:
                    log.debug("Stopped %s mid-firing (%s)", self.port_name, exc)
                else:
                    self._fault(exc)

            with self._monitor:
                self._handled += 1
                faulted = self.exception is not None
                if faulted:
                    self._handled = self._queued  # nothing more will run
                self._monitor.notify_all()
            if faulted:
                break

    def _fault(self, exc: Exception) -> None:
        with self._monitor:
            self.exception = exc
            self._monitor.notify_all()

        log.error("Listener on %s failed", self.port_name, exc_info=exc)
        if self._on_error:
            try:
                self._on_error(exc)
            except Exception:
                log.error(
                    "Error handler for %s failed", self.port_name, exc_info=True
                )
