# src/oplock/ports/connection.py

from __future__ import annotations

from typing import Protocol, ContextManager

from redis import Redis


class ConnectionSource(Protocol):
    def connection(self) -> ContextManager[Redis]: ...
    def ping(self) -> bool: ...
