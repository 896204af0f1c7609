#!/usr/bin/env python3

"""CLI tool to list serial ports, watch incoming bytes, or send bytes"""

import argparse
import logging
import ok_logging_setup
import serial_events
import threading

ok_logging_setup.skip_traceback_for(serial_events.PortUnavailable)
ok_logging_setup.skip_traceback_for(serial_events.SerialScanException)
ok_logging_setup.skip_traceback_for(serial_events.UnsupportedValueKind)


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Talk to serial ports.")
    subparsers = parser.add_subparsers(title="actions", dest="command")
    subparsers.add_parser("list", help="List serial ports by index")

    mon_parser = subparsers.add_parser("monitor", help="Print incoming bytes")
    mon_parser.add_argument("port", help="port device name")
    mon_parser.add_argument(
        "--baud", "-b", default=115200, type=int, help="baud rate"
    )
    mon_parser.add_argument(
        "--size",
        "-n",
        default=1,
        type=int,
        help="bytes per printed chunk (default 1)",
    )
    mon_parser.add_argument(
        "--keep-buffered",
        "-k",
        action="store_true",
        help="print bytes already waiting when the port opens",
    )

    send_parser = subparsers.add_parser("send", help="Write byte values")
    send_parser.add_argument("port", help="port device name")
    send_parser.add_argument(
        "value", nargs="+", type=lambda v: int(v, 0), help="byte values"
    )
    send_parser.add_argument(
        "--baud", "-b", default=115200, type=int, help="baud rate"
    )

    args = parser.parse_args(argv)
    if not args.command:
        args = parser.parse_args(["list"])

    level = "warning" if args.command == "list" else "info"
    ok_logging_setup.install({"OK_LOGGING_LEVEL": level})

    if args.command == "list":
        ports = serial_events.list_port_identifiers()
        if not ports:
            ok_logging_setup.exit("❌ No serial ports found")
        for line in format_index(ports):
            print(line)

    elif args.command == "monitor":
        if args.size <= 0:
            ok_logging_setup.exit(f"🚫 Bad --size {args.size}")
        with serial_events.open_port(args.port, args.baud) as port:
            run_monitor(port, args.size, skip_buffered=not args.keep_buffered)

    elif args.command == "send":
        with serial_events.open_port(args.port, args.baud) as port:
            port.write(args.value)
            logging.info("📤 Sent %d bytes to %s", len(args.value), args.port)


def format_index(ports: list[serial_events.PortIdentifier]) -> list[str]:
    return [f"{i} : {p.name}" for i, p in enumerate(ports)]


def run_monitor(port: serial_events.Port, size: int, skip_buffered: bool):
    failed = threading.Event()

    def on_chunk(chunk: bytes):
        print(chunk.hex(" "), flush=True)

    listener = port.on_n_bytes(
        size, on_chunk, skip_buffered, on_error=lambda exc: failed.set()
    )
    logging.info("👂 Listening on %s (%d byte chunks)", port.path, size)
    failed.wait()
    ok_logging_setup.exit(f"💥 {port.path}: {listener.exception}")


if __name__ == "__main__":
    main()
