from collections.abc import Callable

from serial_events import _transport


class ChunkFramer:
    """Delivers the incoming stream to 'handler' in 'size'-byte chunks.

    On each firing, every complete chunk waiting in the sink is read and
    delivered in order. A partial chunk is left unread until enough bytes
    arrive, so chunk boundaries don't depend on how arrivals are batched.
    """

    def __init__(self, size: int, handler: Callable[[bytes], None]):
        if size <= 0:
            raise ValueError(f"Chunk size must be positive (got {size})")
        self.size = size
        self.handler = handler

    def __repr__(self) -> str:
        return f"ChunkFramer({self.size}, {self.handler!r})"

    def __call__(self, sink: _transport.ByteSink) -> None:
        while sink.available() >= self.size:
            self.handler(bytes(sink.read() for _ in range(self.size)))


class ByteFramer:
    """Delivers each incoming byte to 'handler' as an int (0-255)"""

    def __init__(self, handler: Callable[[int], None]):
        self.handler = handler

    def __repr__(self) -> str:
        return f"ByteFramer({self.handler!r})"

    def __call__(self, sink: _transport.ByteSink) -> None:
        while sink.available() > 0:
            self.handler(sink.read())
