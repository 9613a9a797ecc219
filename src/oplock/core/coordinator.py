# src/oplock/core/coordinator.py

from __future__ import annotations

import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from loguru import logger

from oplock.config import LockSettings
from oplock.errors import LockContentionError, StoreUnavailableError
from oplock.models import LockGrant, check_expire_time
from oplock.ports.store import LockStore
from oplock.store.client import RedisPoolClient
from oplock.store.redis_store import RedisLockStore


@dataclass(frozen=True)
class LockCoordinator:
    """
    Acquire/release protocol on top of a LockStore.

    Redis being unreachable never blocks the protected operation: acquire
    reports a (degraded) grant and release becomes a no-op. Only a live
    Redis can deny a lock.
    """
    store: LockStore
    namespace: str = ""

    @classmethod
    def from_settings(cls, settings: LockSettings) -> "LockCoordinator":
        store = RedisLockStore(RedisPoolClient.from_settings(settings))
        return cls(store=store, namespace=settings.namespace)

    def store_key(self, lock_key: str) -> str:
        return f"{self.namespace}{lock_key}"

    def acquire(self, lock_key: str, ttl_seconds: int) -> LockGrant:
        check_expire_time(ttl_seconds)
        token = str(uuid.uuid4())
        key = self.store_key(lock_key)

        try:
            acquired = self.store.try_set(key, token, ttl_seconds)
        except StoreUnavailableError:
            logger.warning(f"lockKey={lock_key}, token={token}: no redis connection, lock granted by default")
            return LockGrant(granted=True, token=token, degraded=True)
        except Exception:
            logger.exception(f"lockKey={lock_key}, token={token}: redis lock failed, lock granted by default")
            return LockGrant(granted=True, token=token, degraded=True)

        logger.info(f"lockKey={lock_key}, token={token}, expireTime={ttl_seconds}: acquired={acquired}")
        return LockGrant(granted=acquired, token=token)

    def release(self, lock_key: str, token: str) -> None:
        key = self.store_key(lock_key)

        try:
            deleted = self.store.compare_and_delete(key, token)
        except StoreUnavailableError:
            logger.warning(f"lockKey={lock_key}, token={token}: no redis connection, release skipped")
            return
        except Exception:
            logger.exception(f"lockKey={lock_key}, token={token}: redis unlock failed, ignored")
            return

        if deleted:
            logger.info(f"lockKey={lock_key}, token={token}: released")
        else:
            logger.info(f"lockKey={lock_key}, token={token}: nothing released, lock already expired or taken over")

    @contextmanager
    def hold(self, lock_key: str, ttl_seconds: int, operation_name: str) -> Iterator[LockGrant]:
        grant = self.acquire(lock_key, ttl_seconds)
        if not grant.granted:
            raise LockContentionError(operation_name)
        try:
            yield grant
        finally:
            self.release(lock_key, grant.token)
