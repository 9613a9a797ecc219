# src/oplock/models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from oplock.errors import LockSpecError

DEFAULT_EXPIRE_SECONDS = 5 * 60


def check_expire_time(value: int, name: str = "ttl_seconds") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise LockSpecError(f"{name} must be a positive integer, got {value!r}")
    return value


@dataclass(frozen=True)
class LockSpec:
    """
    Lock declaration for one protected operation.

    key_fields entries are either a bare parameter name ("name") or
    "param.field" for a field of a structured argument. Their order is part
    of the key: ("a", "b") and ("b", "a") lock different keys.

    An empty key_prefix means "derive one from the operation identity".
    """
    key_fields: Tuple[str, ...]
    operation_name: str
    key_prefix: str = ""
    expire_time: int = DEFAULT_EXPIRE_SECONDS

    def __post_init__(self):
        if isinstance(self.key_fields, str):
            raise LockSpecError("key_fields must be a sequence of field paths, not a single string")
        fields = tuple(self.key_fields)
        for f in fields:
            if not isinstance(f, str) or not f:
                raise LockSpecError(f"Invalid key field: {f!r}")
        object.__setattr__(self, "key_fields", fields)

        if not isinstance(self.operation_name, str):
            raise LockSpecError(f"operation_name must be a string, got {self.operation_name!r}")
        if self.key_prefix is None:
            object.__setattr__(self, "key_prefix", "")
        check_expire_time(self.expire_time, "expire_time")

    @classmethod
    def of(
            cls,
            key_fields: Iterable[str],
            operation_name: str,
            key_prefix: str = "",
            expire_time: int = DEFAULT_EXPIRE_SECONDS,
    ) -> "LockSpec":
        return cls(
            key_fields=key_fields,
            operation_name=operation_name,
            key_prefix=key_prefix,
            expire_time=expire_time,
        )


@dataclass(frozen=True)
class LockGrant:
    """Outcome of one acquisition attempt. degraded means granted by fail-open."""
    granted: bool
    token: str
    degraded: bool = False

    def __bool__(self) -> bool:
        return self.granted
