"""
CashCode Protocol Layer.

Encodes the fixed outbound commands, decodes POLL responses into
ResponseFrame objects and handles ACK exchanges with the device.

This layer sits between the Transport Layer and the driver loop. Every
write is followed by a short settle delay and every read is preceded by a
short wait, as the device turnaround requires.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .constants import (
    ACK_FRAME,
    COMMAND_FRAMES,
    HEADER,
    MIN_FRAME_LENGTH,
    PAYLOAD_OFFSET,
    PAYLOAD_STATUSES,
    STATUS_OFFSET,
    Command,
    get_status_name,
    hex_dump,
)
from .crc import verify_crc16
from .settings import TimingSettings
from .transport import SerialTransport


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResponseFrame:
    """
    Decoded response to POLL.

    Attributes:
        length: Declared frame length (byte 2).
        status: Status byte (byte 3).
        payload: Payload byte for FAILURE, REJECTED and BILL_STACKED.
        raw: Raw bytes the frame was decoded from.
    """
    length: int
    status: int
    payload: Optional[int] = None
    raw: bytes = b""

    @property
    def status_name(self) -> str:
        """Get human-readable status name."""
        return get_status_name(self.status)


def encode(command: Command) -> bytes:
    """Return the pre-computed frame for a command."""
    return COMMAND_FRAMES[command]


def is_ack(data: bytes) -> bool:
    """Check whether a response is exactly the ACK frame."""
    return bytes(data) == ACK_FRAME


def decode(data: bytes, verify_crc: bool = False) -> Optional[ResponseFrame]:
    """
    Decode a response buffer.

    Malformed or incomplete buffers are not errors: they decode to None
    ("no frame this cycle"). A payload status without its payload byte
    also gives None so that no ACK is sent and the device repeats it.

    Args:
        data: Raw bytes read from the device.
        verify_crc: Also require a valid CRC16 trailer.

    Returns:
        Decoded frame or None.
    """
    if len(data) < 2:
        return None

    if data[:2] != HEADER:
        logger.debug(f"Unknown message received: {hex_dump(data)}")
        return None

    if len(data) < MIN_FRAME_LENGTH:
        return None

    length = data[2]
    status = data[STATUS_OFFSET]

    payload: Optional[int] = None
    if status in PAYLOAD_STATUSES:
        if len(data) <= PAYLOAD_OFFSET:
            logger.debug(
                f"{get_status_name(status)} without payload, waiting for retransmit"
            )
            return None
        payload = data[PAYLOAD_OFFSET]

    if verify_crc:
        frame = bytes(data[:length])
        if len(frame) < length or not verify_crc16(frame):
            logger.warning(f"CRC verification failed: {hex_dump(data)}")
            return None

    return ResponseFrame(
        length=length,
        status=status,
        payload=payload,
        raw=bytes(data),
    )


class CashCodeProtocol:
    """
    Request/response helper over a serial transport.

    Provides command methods with ACK handling and the turnaround delays
    the device needs between a write and its reply.

    Attributes:
        transport: Underlying transport layer.
    """

    def __init__(
        self,
        transport: SerialTransport,
        timing: TimingSettings,
        verify_crc: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize protocol layer.

        Args:
            transport: Opened transport instance.
            timing: Turnaround delays.
            verify_crc: Validate CRC of incoming frames.
            sleep: Sleep function (for tests).
        """
        self._transport = transport
        self._timing = timing
        self._verify_crc = verify_crc
        self._sleep = sleep

    @property
    def transport(self) -> SerialTransport:
        """Get transport layer."""
        return self._transport

    def send_command(self, command: Command) -> None:
        """Write a command frame and wait for the device to settle."""
        self._transport.send(encode(command))
        self._sleep(self._timing.write_settle)

    def read_response(self) -> bytes:
        """Wait for the reply to arrive, then read what is buffered."""
        self._sleep(self._timing.read_wait)
        return self._transport.read_available()

    def send_ack(self) -> None:
        """Send ACK to the device."""
        self._transport.send(ACK_FRAME)

    def drain(self) -> None:
        """Discard leftover buffered bytes."""
        self._transport.drain()

    def poll(self) -> Optional[ResponseFrame]:
        """
        Send POLL and decode the response.

        Returns:
            Decoded frame or None if no usable frame arrived.
        """
        self.send_command(Command.POLL)
        return decode(self.read_response(), verify_crc=self._verify_crc)

    def _execute(self, command: Command, description: str) -> bool:
        self.send_command(command)

        response = self.read_response()
        if is_ack(response):
            logger.info(f"Bill acceptor {description}")
            self.drain()
            return True

        logger.warning(
            f"Unexpected response to {command.value}: {hex_dump(response) or '<empty>'}"
        )
        self.send_ack()
        self.drain()
        return False

    def reset(self) -> bool:
        """
        Send RESET.

        Returns:
            True if the device acknowledged.
        """
        logger.info("Resetting bill acceptor...")
        return self._execute(Command.RESET, "reset ACK")

    def enable(self) -> bool:
        """
        Enable acceptance of all bill types.

        Returns:
            True if the device acknowledged.
        """
        logger.info("Enabling bill acceptance...")
        return self._execute(Command.ENABLE, "acceptance enabled")

    def disable(self) -> bool:
        """
        Disable acceptance of all bill types.

        Returns:
            True if the device acknowledged.
        """
        logger.info("Disabling bill acceptance...")
        return self._execute(Command.DISABLE, "acceptance disabled")
