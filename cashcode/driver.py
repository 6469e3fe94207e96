"""
CashCode Bill Acceptor Driver (Application Layer).

Runs the blocking polling loop on a dedicated thread that exclusively
owns the serial transport and the status dispatcher. The outside world
talks to it only through the command channel (Enable/Disable), the event
channel (BillEvent values) and synchronous ledger queries.

Example:
    driver = CashCodeDriver(Settings.from_env())
    driver.start()
    driver.enable()

    while True:
        for event in driver.events.drain():
            print(event)
        time.sleep(0.1)
"""

import logging
import threading
from typing import Optional

from .constants import Denomination
from .event_system import CommandChannel, ControlCommand, EventChannel
from .events import BillEvent, BillEventType
from .exceptions import (
    DeviceIoError,
    DriverStateError,
    EventChannelClosed,
    LedgerError,
    TransportError,
)
from .ledger import BillLedger
from .protocol import CashCodeProtocol
from .settings import Settings, get_settings
from .state_machine import DeviceSubState, StatusDispatcher
from .transport import SerialTransport


logger = logging.getLogger(__name__)


class CashCodeDriver:
    """
    Polling driver for a CashCode bill acceptor.

    Features:
    - Startup sequence: RESET, settle, drain INITIALIZING and DISABLED
    - Acceptance stays disabled until an Enable command arrives
    - Automatic re-enable after the stacker is put back
    - Durable per-denomination ledger of accepted bills
    - Transient I/O errors are logged and retried, never fatal

    Attributes:
        events: Channel the consumer drains BillEvent values from.
    """

    THREAD_NAME = "cashcode-driver"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[SerialTransport] = None,
        ledger: Optional[BillLedger] = None,
        events: Optional[EventChannel] = None,
    ) -> None:
        """
        Initialize the driver.

        Args:
            settings: Driver settings (defaults to get_settings()).
            transport: Serial transport (created from settings otherwise).
            ledger: Accepted-bills ledger (created from settings otherwise).
            events: Outbound event channel.
        """
        self._settings = settings or get_settings()
        self._timing = self._settings.timing

        self._transport = transport or SerialTransport(self._settings.serial)
        self._ledger = ledger or BillLedger(self._settings.redis)
        self.events = events or EventChannel()
        self._commands = CommandChannel()

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self._protocol = CashCodeProtocol(
            self._transport,
            self._timing,
            verify_crc=self._settings.protocol.verify_crc,
            sleep=self._sleep,
        )
        self._dispatcher = StatusDispatcher()

    @property
    def is_running(self) -> bool:
        """Check if the polling thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    @property
    def sub_state(self) -> DeviceSubState:
        """Get stacker sub-state."""
        return self._dispatcher.sub_state

    @property
    def ledger(self) -> BillLedger:
        """Get the accepted-bills ledger."""
        return self._ledger

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def open(self) -> None:
        """
        Open the serial port and the ledger.

        Raises:
            DeviceConnectionError: If the serial port cannot be opened.
            LedgerError: If the ledger cannot be initialized.
        """
        self._transport.open()
        try:
            self._ledger.open()
        except LedgerError:
            self._transport.close()
            raise

    def start(self) -> None:
        """
        Open resources and start the polling thread.

        Open failures propagate to the caller and the thread never starts.

        Raises:
            DriverStateError: If the driver is already running or its event
                channel was closed by a previous consumer.
            DeviceConnectionError: If the serial port cannot be opened.
            LedgerError: If the ledger cannot be initialized.
        """
        if self.is_running:
            raise DriverStateError("Driver already running", port=self._transport.port)
        if self.events.closed:
            raise DriverStateError(
                "Event channel is closed, a new driver is required",
                port=self._transport.port,
            )

        self.open()

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run,
            name=self.THREAD_NAME,
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Signal the polling thread to stop and wait for it.

        Args:
            timeout: Seconds to wait for the thread; None waits until it exits.
        """
        logger.info("Stopping...")
        self._stop_event.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Driver thread did not stop in time")
                return
        self._thread = None
        self._transport.close()
        logger.info("Stopped")

    def _sleep(self, seconds: float) -> None:
        """Sleep that returns early once stop is requested."""
        if seconds > 0:
            self._stop_event.wait(seconds)

    # -------------------------------------------------------------------------
    # Controller interface
    # -------------------------------------------------------------------------

    def submit(self, command: ControlCommand) -> None:
        """Queue a control command for the polling thread."""
        self._commands.submit(command)

    def enable(self) -> None:
        """Request bill acceptance."""
        self.submit(ControlCommand.ENABLE)

    def disable(self) -> None:
        """Request acceptance to stop."""
        self.submit(ControlCommand.DISABLE)

    def get_counts(self) -> list[tuple[Denomination, int]]:
        """Get accepted counts per denomination, ascending."""
        return self._ledger.get_counts()

    def get_total(self) -> int:
        """Get total accepted value."""
        return self._ledger.get_total()

    # -------------------------------------------------------------------------
    # Polling thread
    # -------------------------------------------------------------------------

    def run(self) -> None:
        """
        Thread body: startup sequence, then poll until stopped.

        Exits when stop() is called or the event consumer is gone.
        """
        logger.info("Poll loop started")
        try:
            while not self._stop_event.is_set():
                try:
                    self.startup()
                    break
                except TransportError as e:
                    logger.error(f"Startup error: {e}")
                    self._sleep(self._timing.error_backoff)

            while not self._stop_event.is_set():
                try:
                    self.run_cycle()
                except TransportError as e:
                    logger.error(f"Poll error: {e}")
                    self._sleep(self._timing.error_backoff)
                    continue
                except EventChannelClosed:
                    logger.error("Failed to send event to consumer, stopping driver")
                    break

                self._sleep(self._timing.poll_interval)
        finally:
            self._transport.close()
            logger.info("Poll loop stopped")

    def startup(self) -> None:
        """
        Bring the device to a known disabled state.

        RESET, wait for the device to reinitialize, then poll twice to
        drain the INITIALIZING and the first DISABLED status. Results are
        acknowledged but no events are emitted.

        Raises:
            TransportError: On serial I/O failure.
        """
        self._dispatcher.reset()
        self._protocol.reset()
        self._sleep(self._timing.reset_settle)

        logger.info("Polling for initializing status...")
        self._poll_and_discard()
        self._sleep(self._timing.startup_settle)

        logger.info("Polling for disabled status...")
        self._poll_and_discard()
        self._sleep(self._timing.startup_settle)

        logger.info("Bill acceptor initialized, waiting for enable command...")

    def _poll_and_discard(self) -> None:
        frame = self._protocol.poll()
        if frame is None:
            return
        result = self._dispatcher.dispatch(frame)
        if result.send_ack:
            self._acknowledge()
        if result.event is not None:
            logger.debug(f"Discarding startup event: {result.event}")

    def run_cycle(self) -> Optional[BillEvent]:
        """
        Run one poll cycle.

        Returns:
            The event forwarded to the consumer, if any.

        Raises:
            TransportError: On serial I/O failure.
            EventChannelClosed: If the consumer is gone.
        """
        self._process_commands()

        frame = self._protocol.poll()
        if frame is None:
            return None

        result = self._dispatcher.dispatch(frame)
        if result.send_ack:
            self._acknowledge()

        if result.reenable:
            self._sleep(self._timing.reenable_delay)
            try:
                self._protocol.enable()
            except TransportError as e:
                logger.error(f"Failed to re-enable bill acceptor: {e}")

        event = result.event
        if event is None:
            return None

        if event.type == BillEventType.ACCEPTED:
            self._record_accepted(event.denomination)

        self.events.publish(event)
        return event

    def _acknowledge(self) -> None:
        # An ACK failure propagates: the device will repeat the status
        self._protocol.send_ack()
        try:
            self._protocol.drain()
        except DeviceIoError as e:
            logger.warning(f"Failed to drain buffer after ACK: {e}")

    def _process_commands(self) -> None:
        for command in self._commands.drain():
            try:
                if command == ControlCommand.ENABLE:
                    acknowledged = self._protocol.enable()
                else:
                    acknowledged = self._protocol.disable()
            except TransportError as e:
                logger.error(f"Failed to {command.value} bill acceptor: {e}")
                continue

            if acknowledged:
                logger.info(f"Bill acceptor {command.value}d")
            else:
                logger.warning(f"Bill acceptor did not acknowledge {command.value}")

    def _record_accepted(self, denomination: Denomination) -> None:
        try:
            count = self._ledger.record_accepted(denomination)
        except LedgerError as e:
            logger.error(
                f"Failed to record {int(denomination)} AMD bill, "
                f"ledger needs reconciliation: {e.to_dict()}"
            )
            return

        logger.info(
            f"Recorded {int(denomination)} AMD bill (count: {count}), "
            f"total collected: {self._ledger.get_total()} AMD"
        )

    def __enter__(self) -> "CashCodeDriver":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
