"""
CRC16 CCITT calculation for CashCode frames.

Uses the reflected CCITT polynomial 0x08408; the checksum travels as two
little-endian bytes at the end of every frame.
"""

from .constants import CRC_POLYNOMIAL


def _crc16(data: bytes) -> int:
    crc: int = 0

    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 0x0001:
                crc = (crc >> 1) ^ CRC_POLYNOMIAL
            else:
                crc = crc >> 1

    return crc


def calculate_crc16(data: bytes) -> bytes:
    """
    Calculate CRC16 checksum for a frame.

    Args:
        data: Frame bytes without the CRC trailer.

    Returns:
        2-byte CRC in little-endian format.

    Example:
        >>> calculate_crc16(bytes([0x02, 0x03, 0x06, 0x33])).hex()
        'da81'
    """
    return _crc16(data).to_bytes(2, byteorder="little")


def verify_crc16(data: bytes) -> bool:
    """
    Verify CRC16 checksum of a complete frame.

    Running the CRC over the frame including its trailer yields 0 for a
    valid frame.

    Args:
        data: Complete frame including CRC bytes.

    Returns:
        True if CRC is valid, False otherwise.
    """
    if len(data) < 5:  # SYNC + ADR + LNG + CRC(2)
        return False
    return _crc16(data) == 0


def append_crc(data: bytes) -> bytes:
    """Append CRC16 checksum to frame bytes."""
    return data + calculate_crc16(data)
