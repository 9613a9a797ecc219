# src/oplock/__init__.py

from .config import LockSettings, configure_logging, load_settings
from .core.coordinator import LockCoordinator
from .core.guard import distributed_lock, run_guarded
from .core.keys import derive_lock_key, snapshot_arguments
from .errors import (
    LockContentionError,
    LockKeyError,
    LockSpecError,
    LockStoreError,
    MissingKeyFieldError,
    NullKeyFieldError,
    OperationLockError,
    StoreUnavailableError,
)
from .models import LockGrant, LockSpec
from .store.client import RedisPoolClient
from .store.redis_store import RedisLockStore

__all__ = [
    'LockSettings', 'configure_logging', 'load_settings',
    'LockCoordinator', 'distributed_lock', 'run_guarded',
    'derive_lock_key', 'snapshot_arguments',
    'LockContentionError', 'LockKeyError', 'LockSpecError', 'LockStoreError',
    'MissingKeyFieldError', 'NullKeyFieldError', 'OperationLockError', 'StoreUnavailableError',
    'LockGrant', 'LockSpec',
    'RedisPoolClient', 'RedisLockStore',
]
