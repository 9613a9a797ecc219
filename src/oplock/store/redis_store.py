# src/oplock/store/redis_store.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from redis.exceptions import RedisError

from oplock.errors import LockStoreError
from oplock.ports.connection import ConnectionSource

# Delete only when the stored value is still our token: GET and DEL must not
# be split, or an expired lock re-acquired by someone else could be deleted.
RELEASE_SCRIPT = (
    "if redis.call('get', KEYS[1]) == ARGV[1] "
    "then return redis.call('del', KEYS[1]) "
    "else return 0 end"
)


@dataclass(frozen=True)
class RedisLockStore:
    db: ConnectionSource

    def try_set(self, key: str, token: str, ttl_seconds: int) -> bool:
        """SET key token NX EX ttl. True iff this caller now owns the key."""
        with self.db.connection() as conn:
            try:
                result = conn.set(key, token, nx=True, ex=ttl_seconds)
            except RedisError as e:
                raise LockStoreError(f"SET NX failed for {key}: {e}") from e
        return bool(result)

    def compare_and_delete(self, key: str, token: str) -> int:
        with self.db.connection() as conn:
            try:
                result = conn.eval(RELEASE_SCRIPT, 1, key, token)
            except RedisError as e:
                raise LockStoreError(f"Release script failed for {key}: {e}") from e
        return int(result or 0)

    def peek(self, key: str) -> Tuple[Optional[str], int]:
        """Current holder token and remaining TTL (-2 missing, -1 no expiry)."""
        with self.db.connection() as conn:
            try:
                token = conn.get(key)
                ttl = conn.ttl(key)
            except RedisError as e:
                raise LockStoreError(f"Inspect failed for {key}: {e}") from e
        return token, int(ttl)
