"""
Pytest configuration for CashCode driver tests.

Provides a scripted serial port, zero-delay timings and a fakeredis-backed
ledger so the driver can be exercised without hardware.
"""

import sys
from collections import deque
from pathlib import Path
from typing import Optional, Union

import fakeredis
import pytest

# Add the project root to sys.path so tests run without installation
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from cashcode.constants import ACK_FRAME  # noqa: E402
from cashcode.crc import append_crc  # noqa: E402
from cashcode.driver import CashCodeDriver  # noqa: E402
from cashcode.ledger import BillLedger  # noqa: E402
from cashcode.settings import (  # noqa: E402
    RedisSettings,
    SerialPortSettings,
    Settings,
    TimingSettings,
)
from cashcode.transport import SerialTransport  # noqa: E402


def frame(status: int, payload: Optional[int] = None) -> bytes:
    """Build a response frame with a valid CRC trailer."""
    body = [0x02, 0x03, 0x06 if payload is None else 0x07, status]
    if payload is not None:
        body.append(payload)
    return append_crc(bytes(body))


class ScriptedSerial:
    """
    Stand-in for serial.Serial driven by a reply script.

    Every write except an ACK consumes the next scripted reply and places
    it in the receive buffer. A reply that is an exception is raised from
    the write instead.
    """

    def __init__(self, replies: Optional[list[Union[bytes, Exception]]] = None) -> None:
        self.is_open = True
        self.written: list[bytes] = []
        self.replies: deque = deque(replies or [])
        self._rx = bytearray()

    def script(self, *replies: Union[bytes, Exception]) -> None:
        self.replies.extend(replies)

    @property
    def in_waiting(self) -> int:
        return len(self._rx)

    def write(self, data: bytes) -> int:
        data = bytes(data)
        if data != ACK_FRAME:
            reply = self.replies.popleft() if self.replies else b""
            if isinstance(reply, Exception):
                raise reply
            self._rx.extend(reply)
        self.written.append(data)
        return len(data)

    def flush(self) -> None:
        pass

    def read(self, size: int = 1) -> bytes:
        data = bytes(self._rx[:size])
        del self._rx[:size]
        return data

    def close(self) -> None:
        self.is_open = False


@pytest.fixture
def timing():
    """Timings with every delay set to zero."""
    return TimingSettings(
        write_settle=0,
        read_wait=0,
        reset_settle=0,
        startup_settle=0,
        reenable_delay=0,
        poll_interval=0,
        error_backoff=0,
    )


@pytest.fixture
def settings(timing):
    """Settings pointing at a test port and ledger key."""
    return Settings(
        serial=SerialPortSettings(port="/dev/ttyTEST0"),
        redis=RedisSettings(ledger_key="test:accepted_bills"),
        timing=timing,
    )


@pytest.fixture
def fake_serial():
    """Scripted serial port with an empty script."""
    return ScriptedSerial()


@pytest.fixture
def transport(settings, fake_serial):
    """Opened transport over the scripted serial port."""
    transport = SerialTransport(settings.serial, serial_factory=lambda **kwargs: fake_serial)
    transport.open()
    yield transport
    transport.close()


@pytest.fixture
def redis_client():
    """In-memory Redis."""
    client = fakeredis.FakeRedis(decode_responses=True)
    yield client
    client.flushall()


@pytest.fixture
def ledger(settings, redis_client):
    """Opened ledger over fakeredis."""
    ledger = BillLedger(settings.redis, redis=redis_client)
    ledger.open()
    return ledger


@pytest.fixture
def driver(settings, transport, ledger):
    """Driver wired to the scripted port and fakeredis ledger."""
    return CashCodeDriver(settings, transport=transport, ledger=ledger)
