# src/oplock/ports/store.py

from __future__ import annotations

from typing import Optional, Protocol, Tuple


class LockStore(Protocol):
    def try_set(self, key: str, token: str, ttl_seconds: int) -> bool: ...
    def compare_and_delete(self, key: str, token: str) -> int: ...
    def peek(self, key: str) -> Tuple[Optional[str], int]: ...
