"""
CashCode Bill Acceptor Driver - Production Entry Point.

Runs the driver against a real bill acceptor and prints events as they
arrive, keeping a running session amount.

Usage:
    python -m cashcode [--port PATH] [--baudrate 19200] [--enable] [--debug]
    python -m cashcode --stats
"""

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace
from typing import Optional

from .driver import CashCodeDriver
from .events import BillEvent, BillEventType
from .exceptions import CashCodeError
from .ledger import BillLedger
from .loggers import setup_logging
from .settings import Settings


logger = logging.getLogger("cashcode.main")

EVENT_TICK_S = 0.1


class Session:
    """Running sum of bills accepted since the runner started."""

    def __init__(self) -> None:
        self.amount = 0

    def handle(self, event: BillEvent) -> None:
        if event.type == BillEventType.ACCEPTED:
            self.amount += event.amount
            print(f"💵 Bill accepted: {event.amount} AMD (session: {self.amount} AMD)")
        elif event.type == BillEventType.REJECTED:
            print(f"❌ Bill rejected: {event.reason}")
        elif event.type == BillEventType.STACKER_REMOVED:
            print("⚠️ Stacker removed!")
        elif event.type == BillEventType.STACKER_REPLACED:
            print("✅ Stacker replaced")
        elif event.type == BillEventType.JAM:
            print(f"🚫 Jam: {event.reason}")
        else:
            print(f"⚠️ Error: {event.reason}")


def print_stats(settings: Settings) -> int:
    """Print per-denomination counts and the total, then exit."""
    ledger = BillLedger(settings.redis)
    try:
        ledger.open()
        counts = ledger.get_counts()
    except CashCodeError as e:
        print(f"❌ Ledger unavailable: {e}")
        return 1
    finally:
        ledger.close()

    for denomination, count in counts:
        print(f"{int(denomination):>6} AMD x {count}")
    print(f"Total: {sum(int(d) * c for d, c in counts)} AMD")
    return 0


def run(settings: Settings, enable: bool) -> int:
    """
    Run the driver until SIGINT/SIGTERM.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    driver = CashCodeDriver(settings)

    print(f"Connecting to bill acceptor ({settings.serial.port})...")
    try:
        driver.start()
    except CashCodeError as e:
        logger.error(f"Driver start failed: {e.to_dict()}")
        print(f"❌ Failed to start driver: {e}")
        return 1
    print("✓ Connected!")

    if enable:
        driver.enable()
        print("✓ Bill acceptance requested. Waiting for bills...")
    print("Press Ctrl+C to exit.\n")

    shutdown_event = threading.Event()

    def signal_handler(signum, frame):
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, signal_handler)

    session = Session()
    try:
        while not shutdown_event.is_set():
            for event in driver.events.drain():
                session.handle(event)
            if not driver.is_running:
                logger.error("Driver thread exited")
                return 1
            shutdown_event.wait(EVENT_TICK_S)
    finally:
        print("\nStopping...")
        driver.events.close()
        driver.stop(timeout=5.0)
        driver.ledger.close()
        print(f"✓ Disconnected. Session total: {session.amount} AMD")

    return 0


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="cashcode",
        description="CashCode Bill Acceptor Driver",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument('--port', '-p', type=str, default=None, help='Serial port path')
    parser.add_argument('--baudrate', '-b', type=int, default=None, help='Serial baudrate')
    parser.add_argument('--redis-host', type=str, default=None, help='Redis host')
    parser.add_argument('--redis-port', type=int, default=None, help='Redis port')
    parser.add_argument(
        '--enable', '-e',
        action='store_true',
        help='Enable bill acceptance right after startup',
    )
    parser.add_argument(
        '--stats',
        action='store_true',
        help='Print accepted bill counts and total, then exit',
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Enable debug logging (shows HEX dump of all TX/RX frames)',
    )
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Apply command line overrides on top of environment settings."""
    settings = Settings.from_env()

    serial = settings.serial
    if args.port:
        serial = replace(serial, port=args.port)
    if args.baudrate:
        serial = replace(serial, baudrate=args.baudrate)

    redis = settings.redis
    if args.redis_host:
        redis = replace(redis, host=args.redis_host)
    if args.redis_port:
        redis = replace(redis, port=args.redis_port)

    logging_settings = settings.logging
    if args.debug:
        logging_settings = replace(logging_settings, level="DEBUG")

    return replace(settings, serial=serial, redis=redis, logging=logging_settings)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    settings = build_settings(args)
    setup_logging(settings.logging)

    if args.stats:
        return print_stats(settings)
    return run(settings, enable=args.enable)


if __name__ == "__main__":
    sys.exit(main())
