"""
CashCode Protocol Constants and Enumerations.

Fixed command frames, status codes, denomination and reject codes for the
bill acceptor. Outbound frames are stored complete with their CRC trailer.
"""

from enum import Enum, IntEnum
from typing import Final, Optional


# Protocol constants
HEADER: Final[bytes] = bytes([0x02, 0x03])  # SYNC + device address
CRC_POLYNOMIAL: Final[int] = 0x08408
STATUS_OFFSET: Final[int] = 3
PAYLOAD_OFFSET: Final[int] = 4
MIN_FRAME_LENGTH: Final[int] = 4  # header + length + status


class Command(Enum):
    """Commands sent from the controller to the bill acceptor."""

    POLL = "POLL"
    RESET = "RESET"
    ENABLE = "ENABLE"
    DISABLE = "DISABLE"


COMMAND_FRAMES: Final[dict[Command, bytes]] = {
    Command.POLL: bytes([0x02, 0x03, 0x06, 0x33, 0xDA, 0x81]),
    Command.RESET: bytes([0x02, 0x03, 0x06, 0x30, 0x41, 0xB3]),
    Command.ENABLE: bytes([
        0x02, 0x03, 0x0C, 0x34, 0xFF, 0xFF, 0xFF, 0x00, 0x00, 0x00, 0xB5, 0xC1,
    ]),
    Command.DISABLE: bytes([
        0x02, 0x03, 0x0C, 0x34, 0x00, 0x00, 0x00, 0x00, 0x00, 0x00, 0xB5, 0xC1,
    ]),
}

ACK_FRAME: Final[bytes] = bytes([0x02, 0x03, 0x06, 0x00, 0xC2, 0x82])


class Status(IntEnum):
    """Status byte returned in response to POLL."""

    INITIALIZING = 0x13
    IDLING = 0x14
    ACCEPTING = 0x15
    STACKING = 0x17
    DISABLED = 0x19
    REJECTED = 0x1C
    STACKER_FULL = 0x41
    STACKER_REMOVED = 0x42
    JAM_IN_ACCEPTOR = 0x43
    JAM_IN_STACKER = 0x44
    FAILURE = 0x47
    BILL_STACKED = 0x81


# Statuses whose frame carries one payload byte at offset 4
PAYLOAD_STATUSES: Final[frozenset[int]] = frozenset({
    Status.FAILURE,
    Status.REJECTED,
    Status.BILL_STACKED,
})


class Denomination(IntEnum):
    """Bill values recognized by the acceptor (AMD)."""

    DRAM_1000 = 1000
    DRAM_2000 = 2000
    DRAM_5000 = 5000
    DRAM_10000 = 10000
    DRAM_20000 = 20000

    @classmethod
    def from_code(cls, code: int) -> Optional["Denomination"]:
        """Resolve a wire code; unknown codes give None."""
        return DENOMINATION_CODES.get(code)


# Bill code is an index into the device bill table, not the value order
DENOMINATION_CODES: Final[dict[int, Denomination]] = {
    0x00: Denomination.DRAM_1000,
    0x01: Denomination.DRAM_5000,
    0x02: Denomination.DRAM_10000,
    0x03: Denomination.DRAM_20000,
    0x0C: Denomination.DRAM_2000,
}


REJECT_REASONS: Final[dict[int, str]] = {
    0x60: "Insertion error",
    0x64: "Conveying error",
    0x65: "Identification error",
    0x66: "Verification error",
    0x68: "Denomination inhibited",
    0x69: "Capacity error",
    0x6A: "Operation error",
}
UNKNOWN_REJECT_REASON: Final[str] = "Unknown error"

FAILURE_55: Final[int] = 0x55


STATUS_NAMES: Final[dict[int, str]] = {
    status.value: status.name for status in Status
}


def get_status_name(status_code: Optional[int]) -> str:
    """Get human-readable status name from status code."""
    if status_code is None:
        return "UNKNOWN"
    return STATUS_NAMES.get(status_code, f"UNKNOWN(0x{status_code:02X})")


def get_reject_reason(reject_code: int) -> str:
    """Get rejection reason text; unknown codes map to a generic reason."""
    return REJECT_REASONS.get(reject_code, UNKNOWN_REJECT_REASON)


def hex_dump(data: bytes) -> str:
    """Format bytes as space-separated hex for TX/RX logging."""
    return " ".join(f"{b:02X}" for b in data)
