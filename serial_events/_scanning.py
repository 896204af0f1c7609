import logging
import msgspec
import natsort
import os
import pathlib
from serial.tools import list_ports
from serial.tools import list_ports_common

from serial_events import _exceptions

log = logging.getLogger("serial_events.scanning")

SCAN_OVERRIDE_ENV = "SERIAL_EVENTS_SCAN_OVERRIDE"


class PortIdentifier(msgspec.Struct, frozen=True, order=True):
    """A serial port visible to the system, as found by a scan"""

    name: str
    attr: dict[str, str] = msgspec.field(default_factory=dict)

    def __str__(self):
        return self.name


def list_port_identifiers() -> list[PortIdentifier]:
    """Returns the serial ports visible to the system, in natural name order"""

    if ov := os.getenv(SCAN_OVERRIDE_ENV):
        try:
            ov_data = msgspec.json.decode(
                pathlib.Path(ov).read_bytes(), type=dict[str, dict[str, str]]
            )
        except (OSError, msgspec.MsgspecError) as ex:
            msg = f"Can't read ${SCAN_OVERRIDE_ENV} {ov}"
            raise _exceptions.SerialScanException(msg) from ex

        out = [PortIdentifier(name=p, attr=a) for p, a in ov_data.items()]
        log.debug("$%s (%s): %d ports", SCAN_OVERRIDE_ENV, ov, len(out))
    else:
        try:
            ports = list_ports.comports()
        except OSError as ex:
            raise _exceptions.SerialScanException("Can't scan serial") from ex

        out = [_convert_port(p) for p in ports]

    out.sort(key=natsort.natsort_keygen(key=lambda p: p.name, alg=natsort.ns.P))
    log.debug("Found %d ports", len(out))
    return out


def port_at(index: int) -> str:
    """Returns the name of the port at 'index' in list_port_identifiers()"""

    ports = list_port_identifiers()
    try:
        return ports[index].name
    except IndexError:
        msg = f"No serial port at index {index} ({len(ports)} found)"
        raise _exceptions.SerialScanException(msg) from None


def _convert_port(p: list_ports_common.ListPortInfo) -> PortIdentifier:
    _NA = (None, "", "n/a")
    attr = {k.lower(): str(v) for k, v in vars(p).items() if v not in _NA}
    return PortIdentifier(name=p.device, attr=attr)
