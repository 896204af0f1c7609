"""Exception hierarchy for serial_events"""


class SerialException(OSError):
    def __init__(
        self,
        message: str,
        port: str | None = None,
    ):
        super().__init__(f"{port}: {message}" if port else message)
        self.port = port


class SerialIoException(SerialException):
    pass


class TransportReadFailure(SerialIoException):
    pass


class TransportWriteFailure(SerialIoException):
    pass


class SerialIoClosed(SerialIoException):
    pass


class SerialReadCancelled(SerialIoException):
    pass


class PortUnavailable(SerialException):
    pass


class ListenerBusy(SerialException):
    pass


class SerialScanException(SerialException):
    pass


class UnsupportedValueKind(TypeError):
    def __init__(self, kind: str):
        super().__init__(f"Can't write {kind} to a serial port")
        self.kind = kind
