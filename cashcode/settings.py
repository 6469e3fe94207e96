"""
Driver settings.

Frozen dataclasses with defaults taken from the kiosk deployment, plus
overrides from CASHCODE_* environment variables.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Final, Optional


ENV_PREFIX: Final[str] = "CASHCODE_"

DEFAULT_SERIAL_PORT: Final[str] = (
    "/dev/serial/by-id/usb-Prolific_Technology_Inc._USB-Serial_Controller_D-if00-port0"
)


# =============================================================================
# Configuration Classes
# =============================================================================


@dataclass(frozen=True)
class SerialPortSettings:
    """Serial port configuration."""

    port: str = DEFAULT_SERIAL_PORT
    baudrate: int = 19200
    timeout: float = 0.1


@dataclass(frozen=True)
class RedisSettings:
    """Redis connection settings for the accepted-bills ledger."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    ledger_key: str = "cashcode:accepted_bills"
    socket_timeout: float = 2.0


@dataclass(frozen=True)
class TimingSettings:
    """
    Delays in seconds required by device turnaround.

    Relative ordering matters more than the exact values: the write settle
    and read wait are short, the reset settle is several seconds.
    """

    write_settle: float = 0.02
    read_wait: float = 0.02
    reset_settle: float = 5.0
    startup_settle: float = 0.2
    reenable_delay: float = 0.5
    poll_interval: float = 0.4
    error_backoff: float = 1.0


@dataclass(frozen=True)
class ProtocolSettings:
    """Frame decoding options."""

    verify_crc: bool = False


@dataclass(frozen=True)
class LoggingSettings:
    """Logging destinations."""

    level: str = "INFO"
    app: str = "cashcode"
    log_file: Optional[str] = None
    loki_url: Optional[str] = None


# =============================================================================
# Main Settings
# =============================================================================


@dataclass(frozen=True)
class Settings:
    """
    Main driver settings.

    Aggregates all configuration sections.
    """

    serial: SerialPortSettings = field(default_factory=SerialPortSettings)
    redis: RedisSettings = field(default_factory=RedisSettings)
    timing: TimingSettings = field(default_factory=TimingSettings)
    protocol: ProtocolSettings = field(default_factory=ProtocolSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "Settings":
        """
        Build settings from defaults overridden by environment variables.

        Recognized variables: CASHCODE_PORT, CASHCODE_BAUDRATE,
        CASHCODE_REDIS_HOST, CASHCODE_REDIS_PORT, CASHCODE_REDIS_DB,
        CASHCODE_LEDGER_KEY, CASHCODE_VERIFY_CRC, CASHCODE_LOG_LEVEL,
        CASHCODE_LOG_FILE, CASHCODE_LOKI_URL.

        Args:
            environ: Mapping to read from (defaults to os.environ).

        Returns:
            Settings instance.
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        defaults = cls()

        serial = defaults.serial
        if get("PORT"):
            serial = replace(serial, port=get("PORT"))
        if get("BAUDRATE"):
            serial = replace(serial, baudrate=int(get("BAUDRATE")))

        redis = defaults.redis
        if get("REDIS_HOST"):
            redis = replace(redis, host=get("REDIS_HOST"))
        if get("REDIS_PORT"):
            redis = replace(redis, port=int(get("REDIS_PORT")))
        if get("REDIS_DB"):
            redis = replace(redis, db=int(get("REDIS_DB")))
        if get("LEDGER_KEY"):
            redis = replace(redis, ledger_key=get("LEDGER_KEY"))

        protocol = defaults.protocol
        if get("VERIFY_CRC"):
            protocol = replace(
                protocol,
                verify_crc=get("VERIFY_CRC").lower() in ("1", "true", "yes"),
            )

        logging = defaults.logging
        if get("LOG_LEVEL"):
            logging = replace(logging, level=get("LOG_LEVEL").upper())
        if get("LOG_FILE"):
            logging = replace(logging, log_file=get("LOG_FILE"))
        if get("LOKI_URL"):
            logging = replace(logging, loki_url=get("LOKI_URL"))

        return cls(
            serial=serial,
            redis=redis,
            timing=defaults.timing,
            protocol=protocol,
            logging=logging,
        )


# =============================================================================
# Settings Singleton
# =============================================================================


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get driver settings singleton.

    Returns:
        Settings instance.
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
