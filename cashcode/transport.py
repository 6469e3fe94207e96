"""
Serial Transport Layer.

Owns the pyserial connection to the bill acceptor. Provides raw writes,
reads of whatever is currently buffered, and buffer draining. Framing and
timing live in the protocol layer.
"""

import logging
from typing import Optional

import serial

from .constants import hex_dump
from .exceptions import DeviceConnectionError, DeviceIoError
from .settings import SerialPortSettings


logger = logging.getLogger(__name__)


class SerialTransport:
    """
    Blocking serial transport.

    Only the driver thread may use an opened transport.

    Attributes:
        port: Serial port path.
        baudrate: Serial baudrate.
        timeout: Read timeout in seconds.
    """

    def __init__(
        self,
        settings: SerialPortSettings,
        serial_factory=serial.Serial,
    ) -> None:
        """
        Initialize transport.

        Args:
            settings: Serial port settings.
            serial_factory: Callable creating the port object (for tests).
        """
        self.port = settings.port
        self.baudrate = settings.baudrate
        self.timeout = settings.timeout
        self._serial_factory = serial_factory
        self._serial: Optional[serial.Serial] = None

    @property
    def is_open(self) -> bool:
        """Check if serial port is open."""
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        """
        Open the serial port.

        Raises:
            DeviceConnectionError: If the port cannot be opened.
        """
        if self.is_open:
            return

        logger.info(f"Opening serial port: {self.port} at {self.baudrate} baud")
        try:
            self._serial = self._serial_factory(
                port=self.port,
                baudrate=self.baudrate,
                timeout=self.timeout,
            )
        except (serial.SerialException, OSError, ValueError) as e:
            raise DeviceConnectionError(
                f"Failed to open serial port: {e}", port=self.port
            ) from e

    def close(self) -> None:
        """Close the serial port."""
        if self._serial is None:
            return
        try:
            self._serial.close()
        except (serial.SerialException, OSError) as e:
            logger.debug(f"Close error (ignored): {e}")
        finally:
            self._serial = None

    def _require_open(self) -> serial.Serial:
        if not self.is_open:
            raise DeviceIoError("Port not open", port=self.port)
        return self._serial

    def send(self, data: bytes) -> None:
        """
        Write all bytes to the device.

        Args:
            data: Bytes to write.

        Raises:
            DeviceIoError: On write failure.
        """
        port = self._require_open()
        logger.debug(f"TX: {hex_dump(data)}")
        try:
            port.write(data)
            port.flush()
        except (serial.SerialException, OSError) as e:
            raise DeviceIoError(f"Write failed: {e}", port=self.port) from e

    def read_available(self) -> bytes:
        """
        Read bytes currently buffered at the port without waiting for more.

        Returns:
            Buffered bytes, possibly empty.

        Raises:
            DeviceIoError: On read failure.
        """
        port = self._require_open()
        try:
            waiting = port.in_waiting
            if waiting == 0:
                return b""
            data = bytes(port.read(waiting))
        except (serial.SerialException, OSError) as e:
            raise DeviceIoError(f"Read failed: {e}", port=self.port) from e

        logger.debug(f"RX: {hex_dump(data)}")
        return data

    def drain(self) -> int:
        """
        Discard buffered bytes.

        Returns:
            Number of bytes discarded.

        Raises:
            DeviceIoError: On read failure.
        """
        port = self._require_open()
        try:
            waiting = port.in_waiting
            if waiting == 0:
                return 0
            junk = port.read(waiting)
        except (serial.SerialException, OSError) as e:
            raise DeviceIoError(f"Drain failed: {e}", port=self.port) from e

        logger.debug(f"Flushed {len(junk)} bytes: {hex_dump(bytes(junk))}")
        return len(junk)

    def __enter__(self) -> "SerialTransport":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
