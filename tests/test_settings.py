"""
Tests for settings, event channels, logging setup and the runner CLI.
"""

import logging
from unittest.mock import MagicMock

import pytest

from cashcode.__main__ import Session, build_settings, parse_args
from cashcode.constants import Denomination
from cashcode.event_system import CommandChannel, ControlCommand, EventChannel
from cashcode.events import BillEvent
from cashcode.exceptions import (
    CashCodeError,
    DeviceIoError,
    EventChannelClosed,
    LedgerError,
    TransportError,
)
from cashcode.loggers import PACKAGE_LOGGER, LokiHandler, setup_logging
from cashcode.settings import DEFAULT_SERIAL_PORT, LoggingSettings, Settings


class TestSettings:
    """Tests for Settings.from_env."""

    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.serial.port == DEFAULT_SERIAL_PORT
        assert settings.serial.baudrate == 19200
        assert settings.redis.ledger_key == "cashcode:accepted_bills"
        assert settings.protocol.verify_crc is False
        assert settings.timing.reset_settle == 5.0
        assert settings.timing.poll_interval == 0.4

    def test_overrides(self):
        settings = Settings.from_env({
            "CASHCODE_PORT": "/dev/ttyUSB1",
            "CASHCODE_BAUDRATE": "9600",
            "CASHCODE_REDIS_HOST": "redis",
            "CASHCODE_REDIS_PORT": "6380",
            "CASHCODE_LEDGER_KEY": "kiosk:bills",
            "CASHCODE_VERIFY_CRC": "true",
            "CASHCODE_LOG_LEVEL": "debug",
        })

        assert settings.serial.port == "/dev/ttyUSB1"
        assert settings.serial.baudrate == 9600
        assert settings.redis.host == "redis"
        assert settings.redis.port == 6380
        assert settings.redis.ledger_key == "kiosk:bills"
        assert settings.protocol.verify_crc is True
        assert settings.logging.level == "DEBUG"

    def test_empty_values_are_ignored(self):
        settings = Settings.from_env({"CASHCODE_PORT": ""})
        assert settings.serial.port == DEFAULT_SERIAL_PORT


class TestExceptions:
    """Tests for the exception hierarchy."""

    def test_cashcode_error_to_dict(self):
        error = CashCodeError("Test error", code="TEST_001")

        assert error.code == "TEST_001"
        assert error.to_dict() == {
            "error": "TEST_001",
            "message": "Test error",
            "details": {},
        }

    def test_default_code_is_class_name(self):
        error = LedgerError("Failed to record 5000 bill", details={"denomination": 5000})

        assert error.to_dict()["error"] == "LedgerError"
        assert error.to_dict()["details"] == {"denomination": 5000}

    def test_device_error_carries_port(self):
        error = DeviceIoError("Write failed", port="/dev/ttyUSB0")

        assert isinstance(error, TransportError)
        assert error.port == "/dev/ttyUSB0"
        assert error.to_dict()["details"] == {"port": "/dev/ttyUSB0"}


class TestEventChannel:
    """Tests for EventChannel."""

    def test_drain_in_order(self):
        channel = EventChannel()
        events = [
            BillEvent.accepted(Denomination.DRAM_1000),
            BillEvent.stacker_removed(),
            BillEvent.rejected("Operation error"),
        ]
        for event in events:
            channel.publish(event)

        assert channel.drain() == events
        assert channel.drain() == []

    def test_get_timeout(self):
        assert EventChannel().get(timeout=0.01) is None

    def test_publish_after_close(self):
        channel = EventChannel()
        channel.close()

        assert channel.closed
        with pytest.raises(EventChannelClosed):
            channel.publish(BillEvent.stacker_replaced())


class TestCommandChannel:
    """Tests for CommandChannel."""

    def test_drain_in_order(self):
        channel = CommandChannel()
        channel.submit(ControlCommand.ENABLE)
        channel.submit("disable")

        assert channel.drain() == [ControlCommand.ENABLE, ControlCommand.DISABLE]
        assert channel.drain() == []

    def test_rejects_unknown_command(self):
        with pytest.raises(ValueError):
            CommandChannel().submit("reset")


class TestLogging:
    """Tests for logging setup."""

    @pytest.fixture(autouse=True)
    def clean_logger(self):
        logger = logging.getLogger(PACKAGE_LOGGER)
        saved = logger.handlers[:]
        saved_level = logger.level
        logger.handlers.clear()
        yield
        for handler in logger.handlers:
            handler.close()
        logger.handlers[:] = saved
        logger.setLevel(saved_level)

    def test_console_only(self):
        logger = setup_logging(LoggingSettings(level="WARNING"))

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "cashcode.log"
        logger = setup_logging(LoggingSettings(log_file=str(log_file)))

        logging.getLogger("cashcode.driver").info("Bill acceptor enabled")
        for handler in logger.handlers:
            handler.flush()

        assert "Bill acceptor enabled" in log_file.read_text(encoding="utf-8")

    def test_repeated_setup_keeps_handlers(self):
        setup_logging(LoggingSettings())
        logger = setup_logging(LoggingSettings())
        assert len(logger.handlers) == 1

    def test_loki_handler_posts_record(self):
        client = MagicMock()
        handler = LokiHandler("http://loki:3100/loki/api/v1/push", "kiosk", client=client)
        record = logging.LogRecord("cashcode", logging.ERROR, __file__, 1, "Stacker removed", None, None)

        handler.emit(record)

        url = client.post.call_args.args[0]
        payload = client.post.call_args.kwargs["json"]
        assert url == "http://loki:3100/loki/api/v1/push"
        assert payload["streams"][0]["stream"] == {"level": "ERROR", "app": "kiosk"}
        assert "Stacker removed" in payload["streams"][0]["values"][0][1]


class TestCli:
    """Tests for the runner entry point helpers."""

    def test_build_settings_overrides(self, monkeypatch):
        monkeypatch.setenv("CASHCODE_PORT", "/dev/ttyUSB1")
        args = parse_args(["--baudrate", "9600", "--redis-host", "redis", "--debug"])

        settings = build_settings(args)

        assert settings.serial.port == "/dev/ttyUSB1"
        assert settings.serial.baudrate == 9600
        assert settings.redis.host == "redis"
        assert settings.logging.level == "DEBUG"

    def test_port_flag_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("CASHCODE_PORT", "/dev/ttyUSB1")

        settings = build_settings(parse_args(["--port", "/dev/ttyUSB2"]))

        assert settings.serial.port == "/dev/ttyUSB2"

    def test_session_amount(self, capsys):
        session = Session()

        session.handle(BillEvent.accepted(Denomination.DRAM_5000))
        session.handle(BillEvent.rejected("Verification error"))
        session.handle(BillEvent.accepted(Denomination.DRAM_2000))

        assert session.amount == 7000
        output = capsys.readouterr().out
        assert "Bill accepted: 5000 AMD (session: 5000 AMD)" in output
        assert "Bill rejected: Verification error" in output
        assert "session: 7000 AMD" in output
