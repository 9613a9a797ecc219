# src/oplock/errors.py

from __future__ import annotations


class OperationLockError(Exception):
    """Base class for everything raised by oplock."""


class LockSpecError(OperationLockError, ValueError):
    """A LockSpec was declared with invalid values."""


class LockKeyError(OperationLockError, ValueError):
    """A declared key field could not be resolved against the call arguments."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class MissingKeyFieldError(LockKeyError):
    def __init__(self, field: str):
        super().__init__(field, f"parameter {field} not found")


class NullKeyFieldError(LockKeyError):
    def __init__(self, field: str):
        super().__init__(field, f"parameter {field} could not be null")


class LockContentionError(OperationLockError):
    """Another owner currently holds the lock for this operation."""

    def __init__(self, operation_name: str):
        super().__init__(f"{operation_name} operation too frequent, please retry later")
        self.operation_name = operation_name


class LockStoreError(OperationLockError):
    """Redis rejected or failed a lock command."""


class StoreUnavailableError(LockStoreError):
    """No Redis connection could be obtained from the pool."""
