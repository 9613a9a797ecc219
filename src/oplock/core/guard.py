# src/oplock/core/guard.py

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, Iterable, List, Optional, Tuple, TypeVar

from oplock.core.coordinator import LockCoordinator
from oplock.core.keys import derive_lock_key, operation_identity
from oplock.models import DEFAULT_EXPIRE_SECONDS, LockSpec

T = TypeVar("T")

# A leading positional self/cls is the receiver of a method and never takes
# part in the key. The same names anywhere else are ordinary arguments.
_RECEIVER_NAMES = ("self", "cls")
_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


def _receiver_name(signature: inspect.Signature) -> Optional[str]:
    params = list(signature.parameters.values())
    if params and params[0].kind in _POSITIONAL and params[0].name in _RECEIVER_NAMES:
        return params[0].name
    return None


def bind_arguments(operation: Callable[..., Any], args: Tuple[Any, ...], kwargs: dict) -> Tuple[List[str], List[Any]]:
    signature = inspect.signature(operation)
    bound = signature.bind(*args, **kwargs)
    bound.apply_defaults()
    receiver = _receiver_name(signature)

    names: List[str] = []
    values: List[Any] = []
    for name, value in bound.arguments.items():
        if name == receiver:
            continue
        names.append(name)
        values.append(value)
    return names, values


def run_guarded(
        coordinator: LockCoordinator,
        spec: LockSpec,
        operation: Callable[..., T],
        *args: Any,
        **kwargs: Any,
) -> T:
    """
    Run operation(*args, **kwargs) while holding the lock described by spec.

    Key errors are raised before Redis is touched. If the lock is held by
    someone else, LockContentionError is raised and operation is not called.
    The operation's own result or exception passes through unchanged.
    """
    names, values = bind_arguments(operation, args, kwargs)
    lock_key = derive_lock_key(spec, names, values, operation_identity(operation))

    with coordinator.hold(lock_key, spec.expire_time, spec.operation_name):
        return operation(*args, **kwargs)


def distributed_lock(
        coordinator: LockCoordinator,
        key_fields: Iterable[str],
        operation_name: str,
        key_prefix: str = "",
        expire_time: int = DEFAULT_EXPIRE_SECONDS,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    spec = LockSpec.of(
        key_fields=key_fields,
        operation_name=operation_name,
        key_prefix=key_prefix,
        expire_time=expire_time,
    )

    def decorate(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return run_guarded(coordinator, spec, func, *args, **kwargs)

        wrapper.lock_spec = spec  # type: ignore[attr-defined]
        return wrapper

    return decorate
