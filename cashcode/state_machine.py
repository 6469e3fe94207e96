"""
Status dispatcher for the bill acceptor.

Maps each decoded POLL response to an optional BillEvent, whether an ACK
must be sent, and whether acceptance must be re-enabled. The only state
carried across polls is the stacker sub-state, which deduplicates
STACKER_REMOVED reports and detects the stacker coming back.

The dispatcher performs no I/O; the driver loop acts on its result.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional

from .constants import (
    FAILURE_55,
    Denomination,
    PAYLOAD_STATUSES,
    Status,
    get_reject_reason,
    hex_dump,
)
from .events import BillEvent
from .protocol import ResponseFrame


logger = logging.getLogger(__name__)


class DeviceSubState(Enum):
    """Stacker presence as observed across polls."""

    STACKER_PRESENT = auto()
    STACKER_REMOVED = auto()


@dataclass(frozen=True)
class DispatchResult:
    """
    Outcome of dispatching one frame.

    Attributes:
        event: Event to forward to the consumer, if any.
        send_ack: Whether the driver must ACK the frame.
        reenable: Whether the driver must re-enable acceptance.
    """

    event: Optional[BillEvent] = None
    send_ack: bool = False
    reenable: bool = False


NO_ACK = DispatchResult()
ACK_ONLY = DispatchResult(send_ack=True)


class StatusDispatcher:
    """
    State machine over POLL statuses.

    Sub-state transitions:
        STACKER_PRESENT --STACKER_REMOVED--> STACKER_REMOVED (emit StackerRemoved)
        STACKER_REMOVED --DISABLED--> STACKER_PRESENT (emit StackerReplaced, re-enable)

    Jam statuses are reported on every poll while they persist; stacker
    removal only on its edge, since the device repeats the status for as
    long as the stacker is out.
    """

    def __init__(self) -> None:
        self._sub_state = DeviceSubState.STACKER_PRESENT
        self._handlers: dict[int, Callable[[ResponseFrame], DispatchResult]] = {
            Status.INITIALIZING: self._on_initializing,
            Status.DISABLED: self._on_disabled,
            Status.IDLING: self._on_operational,
            Status.ACCEPTING: self._on_operational,
            Status.STACKING: self._on_operational,
            Status.STACKER_REMOVED: self._on_stacker_removed,
            Status.JAM_IN_STACKER: self._on_jam_in_stacker,
            Status.JAM_IN_ACCEPTOR: self._on_jam_in_acceptor,
            Status.FAILURE: self._on_failure,
            Status.REJECTED: self._on_rejected,
            Status.BILL_STACKED: self._on_bill_stacked,
        }

    @property
    def sub_state(self) -> DeviceSubState:
        """Get current stacker sub-state."""
        return self._sub_state

    def reset(self) -> None:
        """Return to the initial sub-state."""
        self._sub_state = DeviceSubState.STACKER_PRESENT

    def dispatch(self, frame: ResponseFrame) -> DispatchResult:
        """
        Process one decoded frame.

        Args:
            frame: Decoded POLL response.

        Returns:
            Event, ACK and re-enable instructions for the driver.
        """
        if frame.status in PAYLOAD_STATUSES and frame.payload is None:
            logger.warning(f"{frame.status_name} without payload, waiting for retransmit")
            return NO_ACK

        handler = self._handlers.get(frame.status)
        if handler is None:
            # No ACK: the device retransmits and we get another chance
            logger.warning(
                f"Unknown status code: 0x{frame.status:02X} "
                f"({frame.status_name}), response: {hex_dump(frame.raw)}"
            )
            return NO_ACK
        return handler(frame)

    def _on_initializing(self, frame: ResponseFrame) -> DispatchResult:
        logger.info("Bill acceptor initialized")
        return ACK_ONLY

    def _on_disabled(self, frame: ResponseFrame) -> DispatchResult:
        logger.debug("Bill acceptor is disabled")
        if self._sub_state is DeviceSubState.STACKER_REMOVED:
            logger.info("Stacker replaced, re-enabling bill acceptor...")
            self._sub_state = DeviceSubState.STACKER_PRESENT
            return DispatchResult(
                event=BillEvent.stacker_replaced(),
                send_ack=True,
                reenable=True,
            )
        return ACK_ONLY

    def _on_operational(self, frame: ResponseFrame) -> DispatchResult:
        return ACK_ONLY

    def _on_stacker_removed(self, frame: ResponseFrame) -> DispatchResult:
        if self._sub_state is DeviceSubState.STACKER_PRESENT:
            self._sub_state = DeviceSubState.STACKER_REMOVED
            logger.error("Stacker removed")
            return DispatchResult(event=BillEvent.stacker_removed(), send_ack=True)
        return ACK_ONLY

    def _on_jam_in_stacker(self, frame: ResponseFrame) -> DispatchResult:
        logger.error("Bill jam in stacker")
        return DispatchResult(event=BillEvent.jam("Bill jam in stacker"), send_ack=True)

    def _on_jam_in_acceptor(self, frame: ResponseFrame) -> DispatchResult:
        logger.error("Bill jam in acceptor")
        return DispatchResult(event=BillEvent.jam("Bill jam in acceptor"), send_ack=True)

    def _on_failure(self, frame: ResponseFrame) -> DispatchResult:
        code = frame.payload
        if code == FAILURE_55:
            logger.error("FAILURE 55 (sensor cover opened?)")
            message = "FAILURE 55"
        else:
            logger.error(f"FAILURE with unknown code: 0x{code:02X}")
            message = f"FAILURE 0x{code:02X}"
        return DispatchResult(event=BillEvent.device_error(message), send_ack=True)

    def _on_rejected(self, frame: ResponseFrame) -> DispatchResult:
        reason = get_reject_reason(frame.payload)
        logger.warning(f"Bill rejected: {reason} (code: 0x{frame.payload:02X})")
        return DispatchResult(event=BillEvent.rejected(reason), send_ack=True)

    def _on_bill_stacked(self, frame: ResponseFrame) -> DispatchResult:
        denomination = Denomination.from_code(frame.payload)
        if denomination is None:
            logger.warning(f"Bill accepted with unknown denomination: 0x{frame.payload:02X}")
            return DispatchResult(
                event=BillEvent.device_error(f"Unknown denomination: 0x{frame.payload:02X}"),
                send_ack=True,
            )

        logger.info(f"Bill accepted: {int(denomination)} AMD")
        return DispatchResult(event=BillEvent.accepted(denomination), send_ack=True)
