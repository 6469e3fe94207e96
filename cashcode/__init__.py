"""
CashCode Bill Acceptor Driver Package.

Blocking, thread-based driver for CashCode bill acceptors speaking the
CCNET poll/ACK protocol, with a Redis-backed ledger of accepted bills.

Example:
    from cashcode import CashCodeDriver, BillEventType

    driver = CashCodeDriver()
    driver.start()
    driver.enable()

    for event in driver.events.drain():
        if event.type == BillEventType.ACCEPTED:
            print(f"Bill accepted: {event.amount} AMD")
"""

from .constants import (
    ACK_FRAME,
    COMMAND_FRAMES,
    Command,
    Denomination,
    Status,
    get_reject_reason,
    get_status_name,
)
from .crc import (
    append_crc,
    calculate_crc16,
    verify_crc16,
)
from .driver import CashCodeDriver
from .event_system import (
    CommandChannel,
    ControlCommand,
    EventChannel,
)
from .events import (
    BillEvent,
    BillEventType,
)
from .exceptions import (
    CashCodeError,
    DeviceConnectionError,
    DeviceError,
    DeviceIoError,
    DriverStateError,
    EventChannelClosed,
    LedgerError,
    RepositoryError,
    TransportError,
)
from .ledger import BillLedger
from .protocol import (
    CashCodeProtocol,
    ResponseFrame,
    decode,
    encode,
    is_ack,
)
from .settings import (
    LoggingSettings,
    ProtocolSettings,
    RedisSettings,
    SerialPortSettings,
    Settings,
    TimingSettings,
    get_settings,
)
from .state_machine import (
    DeviceSubState,
    DispatchResult,
    StatusDispatcher,
)
from .transport import SerialTransport


__all__ = [
    # Main driver
    'CashCodeDriver',

    # Constants and enums
    'ACK_FRAME',
    'COMMAND_FRAMES',
    'Command',
    'Denomination',
    'Status',
    'get_reject_reason',
    'get_status_name',

    # CRC
    'append_crc',
    'calculate_crc16',
    'verify_crc16',

    # Protocol components
    'SerialTransport',
    'CashCodeProtocol',
    'ResponseFrame',
    'decode',
    'encode',
    'is_ack',

    # State machine
    'DeviceSubState',
    'DispatchResult',
    'StatusDispatcher',

    # Events and channels
    'BillEvent',
    'BillEventType',
    'CommandChannel',
    'ControlCommand',
    'EventChannel',

    # Ledger
    'BillLedger',

    # Settings
    'LoggingSettings',
    'ProtocolSettings',
    'RedisSettings',
    'SerialPortSettings',
    'Settings',
    'TimingSettings',
    'get_settings',

    # Exceptions
    'CashCodeError',
    'DeviceConnectionError',
    'DeviceError',
    'DeviceIoError',
    'DriverStateError',
    'EventChannelClosed',
    'LedgerError',
    'RepositoryError',
    'TransportError',
]

__version__ = '1.0.0'
