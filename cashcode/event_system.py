"""
Channels between the driver thread and the outside world.

- EventChannel: driver -> consumer, BillEvent values in emission order.
- CommandChannel: controllers -> driver, Enable/Disable requests.

Neither side ever blocks the other: publishing and submitting are
non-blocking, and consumers drain on their own schedule.
"""

import queue
import threading
from enum import Enum
from typing import Optional

from .events import BillEvent
from .exceptions import EventChannelClosed


class ControlCommand(str, Enum):
    """Requests accepted from external controllers."""

    ENABLE = "enable"
    DISABLE = "disable"


class EventChannel:
    """
    Single-producer, single-consumer event queue.

    The consumer closes the channel when it goes away; the next publish
    then raises EventChannelClosed.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[BillEvent] = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        """Check if the consumer closed the channel."""
        return self._closed.is_set()

    def publish(self, event: BillEvent) -> None:
        """
        Enqueue an event without blocking.

        Raises:
            EventChannelClosed: If the consumer is gone.
        """
        if self._closed.is_set():
            raise EventChannelClosed("Event consumer is gone")
        self._queue.put_nowait(event)

    def get(self, timeout: Optional[float] = None) -> Optional[BillEvent]:
        """
        Wait for the next event.

        Args:
            timeout: Seconds to wait; None waits forever.

        Returns:
            The next event, or None on timeout.
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[BillEvent]:
        """Return all pending events in emission order."""
        events: list[BillEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def close(self) -> None:
        """Signal that the consumer will not read any more events."""
        self._closed.set()


class CommandChannel:
    """Multi-producer, single-consumer queue of control commands."""

    def __init__(self) -> None:
        self._queue: queue.SimpleQueue[ControlCommand] = queue.SimpleQueue()

    def submit(self, command: ControlCommand) -> None:
        """Enqueue a command without blocking."""
        self._queue.put_nowait(ControlCommand(command))

    def drain(self) -> list[ControlCommand]:
        """Return all pending commands in submission order."""
        commands: list[ControlCommand] = []
        while True:
            try:
                commands.append(self._queue.get_nowait())
            except queue.Empty:
                return commands
