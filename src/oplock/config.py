# src/oplock/config.py

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from loguru import logger

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


@dataclass(frozen=True)
class LockSettings:
    """
    Process-wide lock configuration, built once at startup and passed
    explicitly to whatever needs it (pool, coordinator).

    namespace is prepended verbatim to every lock key written to Redis so
    several systems can share one Redis without colliding.
    """
    redis_url: str = DEFAULT_REDIS_URL
    namespace: str = ""
    max_connections: int = 50
    socket_timeout: float = 2.0
    log_level: str = "INFO"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def load_settings(env_path: Optional[Union[str, Path]] = None) -> LockSettings:
    # .env never overrides variables already exported in the environment
    load_dotenv(dotenv_path=env_path)

    return LockSettings(
        redis_url=os.getenv("OPLOCK_REDIS_URL") or os.getenv("REDIS_URL") or DEFAULT_REDIS_URL,
        namespace=os.getenv("OPLOCK_NAMESPACE", ""),
        max_connections=_env_int("OPLOCK_MAX_CONNECTIONS", 50),
        socket_timeout=_env_float("OPLOCK_SOCKET_TIMEOUT", 2.0),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> None:

    logger.remove()

    logger.add(
        sys.stdout,
        level=level,
        colorize=True,
        backtrace=False,
        diagnose=False,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
               "<level>{level}</level> | "
               "<level>{message}</level>",
    )

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / "oplock.log"),
            rotation="10 MB",
            retention="7 days",
            level="DEBUG",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}",
        )
