"""
Bill events emitted by the driver.

Events are immutable values built through factory classmethods and
consumed once by the event subscriber.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .constants import Denomination


class BillEventType(str, Enum):
    """Kinds of events the driver reports."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    STACKER_REMOVED = "stacker_removed"
    STACKER_REPLACED = "stacker_replaced"
    JAM = "jam"
    DEVICE_ERROR = "device_error"


@dataclass(frozen=True)
class BillEvent:
    """
    Event produced by the status dispatcher.

    Attributes:
        type: Event kind.
        denomination: Accepted bill value (ACCEPTED only).
        reason: Description for REJECTED, JAM and DEVICE_ERROR.
    """

    type: BillEventType
    denomination: Optional[Denomination] = None
    reason: Optional[str] = None

    @classmethod
    def accepted(cls, denomination: Denomination) -> "BillEvent":
        return cls(type=BillEventType.ACCEPTED, denomination=denomination)

    @classmethod
    def rejected(cls, reason: str) -> "BillEvent":
        return cls(type=BillEventType.REJECTED, reason=reason)

    @classmethod
    def stacker_removed(cls) -> "BillEvent":
        return cls(type=BillEventType.STACKER_REMOVED)

    @classmethod
    def stacker_replaced(cls) -> "BillEvent":
        return cls(type=BillEventType.STACKER_REPLACED)

    @classmethod
    def jam(cls, reason: str) -> "BillEvent":
        return cls(type=BillEventType.JAM, reason=reason)

    @classmethod
    def device_error(cls, reason: str) -> "BillEvent":
        return cls(type=BillEventType.DEVICE_ERROR, reason=reason)

    @property
    def amount(self) -> int:
        """Accepted amount, 0 for every other event."""
        return int(self.denomination) if self.denomination is not None else 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {"type": self.type.value}
        if self.denomination is not None:
            result["denomination"] = int(self.denomination)
        if self.reason is not None:
            result["reason"] = self.reason
        return result

    def __str__(self) -> str:
        if self.type == BillEventType.ACCEPTED:
            return f"{self.type.value}: {self.amount} AMD"
        if self.reason:
            return f"{self.type.value}: {self.reason}"
        return self.type.value
