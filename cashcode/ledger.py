"""
Accepted-bills ledger backed by Redis.

One hash field per denomination holds the number of bills of that value
accepted since the store was created. Increments use HINCRBY so each
write is atomic on the server; a process-local lock additionally
serializes every operation between the driver thread and readers.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError

from .constants import Denomination
from .exceptions import LedgerError
from .settings import RedisSettings


logger = logging.getLogger(__name__)


class BillLedger:
    """
    Durable per-denomination acceptance counters.

    Keys:
    - <ledger_key>: hash of denomination value -> accepted count
    """

    def __init__(
        self,
        settings: RedisSettings,
        redis: Optional[Redis] = None,
    ) -> None:
        """
        Initialize the ledger.

        Args:
            settings: Redis settings.
            redis: Existing client (a new one is created from settings otherwise).
        """
        self._key = settings.ledger_key
        self._redis = redis or Redis(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            socket_timeout=settings.socket_timeout,
            decode_responses=True,
        )
        self._lock = threading.Lock()

    @property
    def key(self) -> str:
        """Get Redis key of the ledger hash."""
        return self._key

    def open(self) -> None:
        """
        Check the connection and seed a zero row for every denomination.

        Existing counts are never overwritten, so this is safe on every
        startup.

        Raises:
            LedgerError: If Redis is unreachable or seeding fails.
        """
        logger.info(f"Opening ledger: {self._key}")
        with self._lock:
            try:
                self._redis.ping()
                pipe = self._redis.pipeline()
                for denomination in Denomination:
                    pipe.hsetnx(self._key, str(int(denomination)), 0)
                pipe.execute()
            except RedisError as e:
                raise LedgerError(f"Failed to initialize ledger: {e}") from e

    def record_accepted(self, denomination: Denomination) -> int:
        """
        Increment the count for a denomination.

        Args:
            denomination: Accepted bill value.

        Returns:
            New count for that denomination.

        Raises:
            LedgerError: If the increment fails.
        """
        with self._lock:
            try:
                return int(self._redis.hincrby(self._key, str(int(denomination)), 1))
            except RedisError as e:
                raise LedgerError(
                    f"Failed to record {int(denomination)} bill: {e}",
                    details={"denomination": int(denomination)},
                ) from e

    def get_counts(self) -> list[tuple[Denomination, int]]:
        """
        Get accepted counts ordered by denomination value ascending.

        Raises:
            LedgerError: If the query fails or a stored count is not an integer.
        """
        with self._lock:
            try:
                raw = self._redis.hgetall(self._key)
            except RedisError as e:
                raise LedgerError(f"Failed to query ledger: {e}") from e

        try:
            counts = {
                (field.decode() if isinstance(field, bytes) else field): int(value)
                for field, value in raw.items()
            }
        except ValueError as e:
            raise LedgerError(
                f"Corrupt ledger entry in {self._key}: {e}",
                details={"key": self._key},
            ) from e
        return [
            (denomination, counts.get(str(int(denomination)), 0))
            for denomination in sorted(Denomination)
        ]

    def get_total(self) -> int:
        """
        Get total accepted value.

        Returns:
            Sum of value x count, or 0 if the query fails.
        """
        try:
            counts = self.get_counts()
        except LedgerError as e:
            logger.error(f"Failed to compute ledger total: {e}")
            return 0
        return sum(int(denomination) * count for denomination, count in counts)

    def close(self) -> None:
        """Close the Redis connection pool."""
        self._redis.close()
