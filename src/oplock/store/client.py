# src/oplock/store/client.py

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from loguru import logger
from redis import ConnectionPool, Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from oplock.config import LockSettings
from oplock.errors import StoreUnavailableError


@dataclass(frozen=True)
class RedisPoolClient:
    pool: ConnectionPool

    @classmethod
    def from_url(
            cls,
            url: str,
            max_connections: int = 50,
            socket_timeout: float = 2.0,
    ) -> "RedisPoolClient":
        pool = ConnectionPool.from_url(
            url,
            max_connections=max_connections,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )
        return cls(pool=pool)

    @classmethod
    def from_settings(cls, settings: LockSettings) -> "RedisPoolClient":
        return cls.from_url(
            settings.redis_url,
            max_connections=settings.max_connections,
            socket_timeout=settings.socket_timeout,
        )

    @contextmanager
    def connection(self) -> Iterator[Redis]:
        """
        Check one connection out of the pool for the duration of the block.
        The connection goes back to the pool on every exit path.
        """
        try:
            client = Redis(connection_pool=self.pool, single_connection_client=True)
        except (RedisConnectionError, RedisTimeoutError) as e:
            raise StoreUnavailableError(f"No redis connection available: {e}") from e

        with client:
            yield client

    def ping(self) -> bool:
        try:
            with self.connection() as conn:
                return bool(conn.ping())
        except (StoreUnavailableError, RedisError) as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def close(self) -> None:
        self.pool.disconnect()
