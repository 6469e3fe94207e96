"""
Unit tests for the Redis-backed ledger.
"""

import threading
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from cashcode.constants import Denomination
from cashcode.exceptions import LedgerError
from cashcode.ledger import BillLedger
from cashcode.settings import RedisSettings


class TestLedgerInit:
    """Tests for ledger seeding."""

    def test_seeds_zero_rows(self, ledger, redis_client):
        assert redis_client.hgetall(ledger.key) == {
            "1000": "0",
            "2000": "0",
            "5000": "0",
            "10000": "0",
            "20000": "0",
        }

    def test_open_is_idempotent(self, settings, ledger, redis_client):
        ledger.record_accepted(Denomination.DRAM_1000)

        BillLedger(settings.redis, redis=redis_client).open()

        assert dict(ledger.get_counts())[Denomination.DRAM_1000] == 1

    def test_open_failure_raises(self):
        redis = MagicMock()
        redis.ping.side_effect = RedisConnectionError("connection refused")

        with pytest.raises(LedgerError):
            BillLedger(RedisSettings(), redis=redis).open()


class TestLedgerCounts:
    """Tests for increments and queries."""

    def test_empty_counts(self, ledger):
        assert ledger.get_counts() == [(d, 0) for d in sorted(Denomination)]
        assert ledger.get_total() == 0

    def test_record_accepted(self, ledger):
        for _ in range(3):
            ledger.record_accepted(Denomination.DRAM_5000)

        counts = dict(ledger.get_counts())
        assert counts[Denomination.DRAM_5000] == 3
        assert all(count == 0 for d, count in counts.items() if d is not Denomination.DRAM_5000)

    def test_record_returns_new_count(self, ledger):
        assert ledger.record_accepted(Denomination.DRAM_2000) == 1
        assert ledger.record_accepted(Denomination.DRAM_2000) == 2

    def test_counts_are_ordered(self, ledger):
        ledger.record_accepted(Denomination.DRAM_20000)
        ledger.record_accepted(Denomination.DRAM_1000)

        values = [int(d) for d, _ in ledger.get_counts()]
        assert values == [1000, 2000, 5000, 10000, 20000]

    def test_total(self, ledger):
        ledger.record_accepted(Denomination.DRAM_1000)
        ledger.record_accepted(Denomination.DRAM_1000)
        ledger.record_accepted(Denomination.DRAM_20000)
        ledger.record_accepted(Denomination.DRAM_2000)

        assert ledger.get_total() == 2 * 1000 + 20000 + 2000

    def test_missing_key_reads_as_zero(self, ledger, redis_client):
        redis_client.delete(ledger.key)

        assert ledger.get_counts() == [(d, 0) for d in sorted(Denomination)]
        assert ledger.get_total() == 0

    def test_concurrent_increments(self, ledger):
        def worker():
            for _ in range(50):
                ledger.record_accepted(Denomination.DRAM_10000)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert dict(ledger.get_counts())[Denomination.DRAM_10000] == 200


class TestLedgerErrors:
    """Tests for Redis failures."""

    @pytest.fixture
    def broken_ledger(self):
        redis = MagicMock()
        redis.hincrby.side_effect = RedisConnectionError("connection lost")
        redis.hgetall.side_effect = RedisConnectionError("connection lost")
        return BillLedger(RedisSettings(), redis=redis)

    def test_record_failure_raises(self, broken_ledger):
        with pytest.raises(LedgerError) as exc_info:
            broken_ledger.record_accepted(Denomination.DRAM_5000)
        assert exc_info.value.details["denomination"] == 5000

    def test_counts_failure_raises(self, broken_ledger):
        with pytest.raises(LedgerError):
            broken_ledger.get_counts()

    def test_total_failure_is_zero(self, broken_ledger):
        assert broken_ledger.get_total() == 0

    def test_corrupt_count_raises(self, ledger, redis_client):
        redis_client.hset(ledger.key, "1000", "abc")

        with pytest.raises(LedgerError) as exc_info:
            ledger.get_counts()
        assert exc_info.value.details["key"] == ledger.key

    def test_corrupt_count_total_is_zero(self, ledger, redis_client):
        ledger.record_accepted(Denomination.DRAM_5000)
        redis_client.hset(ledger.key, "1000", "abc")

        assert ledger.get_total() == 0
