# src/oplock/cli.py

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from oplock.config import LockSettings, configure_logging, load_settings
from oplock.core.coordinator import LockCoordinator
from oplock.core.keys import derive_lock_key
from oplock.errors import OperationLockError
from oplock.models import LockSpec
from oplock.store.client import RedisPoolClient
from oplock.store.redis_store import RedisLockStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="oplock", description="Inspect and operate Redis operation locks")

    parser.add_argument("--env-file", default=None, help="Path of a .env file to load")
    parser.add_argument("--redis-url", default=None, help="Redis URL (default: OPLOCK_REDIS_URL / REDIS_URL)")
    parser.add_argument("--namespace", default=None, help="Key namespace (default: OPLOCK_NAMESPACE)")
    parser.add_argument("--log-dir", default=None, help="Also write a rotating log file here")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="Check that Redis is reachable")

    key = sub.add_parser("key", help="Print the lock key derived from scalar arguments")
    key.add_argument("--prefix", required=True, help="Key prefix")
    key.add_argument("--field", action="append", default=[], metavar="NAME=VALUE",
                     help="Argument value, in key order (repeatable)")

    inspect_cmd = sub.add_parser("inspect", help="Show who holds a lock and for how long")
    inspect_cmd.add_argument("lock_key")

    acquire = sub.add_parser("acquire", help="Take a lock and print its token")
    acquire.add_argument("lock_key")
    acquire.add_argument("--ttl", type=_positive_int, default=60, help="Expiry in seconds")

    release = sub.add_parser("release", help="Release a lock held with TOKEN")
    release.add_argument("lock_key")
    release.add_argument("token")

    return parser


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {raw!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return value


def _parse_fields(pairs: Sequence[str]) -> List[tuple]:
    fields = []
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise ValueError(f"Expected NAME=VALUE, got {pair!r}")
        fields.append((name, value))
    return fields


def _settings(args: argparse.Namespace) -> LockSettings:
    settings = load_settings(args.env_file)
    overrides = {}
    if args.redis_url:
        overrides["redis_url"] = args.redis_url
    if args.namespace is not None:
        overrides["namespace"] = args.namespace
    if overrides:
        settings = replace(settings, **overrides)
    return settings


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = _settings(args)
    configure_logging(settings.log_level, Path(args.log_dir) if args.log_dir else None)

    if args.command == "key":
        if not args.prefix:
            parser.error("--prefix must not be empty")
        try:
            fields = _parse_fields(args.field)
        except ValueError as e:
            parser.error(str(e))
        names = [name for name, _ in fields]
        try:
            spec = LockSpec.of(names, operation_name="cli", key_prefix=args.prefix)
            print(derive_lock_key(spec, names, [value for _, value in fields], identity=""))
        except OperationLockError as e:
            logger.error(f"key failed: {e}")
            return 2
        return 0

    client = RedisPoolClient.from_settings(settings)
    try:
        if args.command == "ping":
            ok = client.ping()
            print("PONG" if ok else "UNREACHABLE")
            return 0 if ok else 1

        store = RedisLockStore(client)
        coordinator = LockCoordinator(store=store, namespace=settings.namespace)

        if args.command == "inspect":
            key = coordinator.store_key(args.lock_key)
            token, ttl = store.peek(key)
            if token is None:
                print(f"{key}: free")
            else:
                print(f"{key}: held by {token}, ttl={ttl}s")
            return 0

        if args.command == "acquire":
            grant = coordinator.acquire(args.lock_key, args.ttl)
            if not grant.granted:
                print(f"{coordinator.store_key(args.lock_key)}: busy")
                return 1
            if grant.degraded:
                logger.warning("Redis unavailable, token was not stored")
            print(grant.token)
            return 0

        if args.command == "release":
            deleted = store.compare_and_delete(coordinator.store_key(args.lock_key), args.token)
            print(deleted)
            return 0 if deleted else 1

    except OperationLockError as e:
        logger.error(f"{args.command} failed: {e}")
        return 2
    finally:
        client.close()
