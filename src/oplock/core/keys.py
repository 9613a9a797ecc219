# src/oplock/core/keys.py

from __future__ import annotations

import dataclasses
import hashlib
from collections.abc import Mapping
from typing import Any, Callable, Dict, Sequence

from oplock.errors import MissingKeyFieldError, NullKeyFieldError
from oplock.models import LockSpec

NULL = "null"

# Recorded under the bare parameter name; everything else is expanded one level.
SCALAR_TYPES = (str, int, float, bool)


def stringify(value: Any) -> str:
    if value is None:
        return NULL
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def enumerate_fields(value: Any) -> Dict[str, Any]:
    """
    Field name -> value for a structured argument.

    Objects may opt in explicitly with a __lock_fields__() method returning
    a mapping; dataclasses, mappings and plain objects are handled as-is.
    """
    hook = getattr(type(value), "__lock_fields__", None)
    if hook is not None:
        return dict(hook(value))

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}

    if isinstance(value, Mapping):
        return {str(k): v for k, v in value.items()}

    if hasattr(value, "__dict__"):
        return dict(vars(value))

    fields: Dict[str, Any] = {}
    for cls in type(value).__mro__:
        slots = cls.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in fields or not hasattr(value, name):
                continue
            fields[name] = getattr(value, name)
    return fields


def snapshot_arguments(parameter_names: Sequence[str], argument_values: Sequence[Any]) -> Dict[str, str]:
    if len(parameter_names) != len(argument_values):
        raise ValueError(
            f"Got {len(parameter_names)} parameter names for {len(argument_values)} argument values"
        )

    snapshot: Dict[str, str] = {}
    for name, value in zip(parameter_names, argument_values):
        if value is None:
            snapshot[name] = NULL
        elif isinstance(value, SCALAR_TYPES):
            snapshot[name] = stringify(value)
        else:
            for field, field_value in enumerate_fields(value).items():
                snapshot[f"{name}.{field}"] = stringify(field_value)
    return snapshot


def operation_identity(func: Callable[..., Any]) -> str:
    return f"{func.__module__}.{func.__qualname__}"


def default_prefix(identity: str) -> str:
    return hashlib.md5(identity.encode("utf-8")).hexdigest()


def derive_lock_key(
        spec: LockSpec,
        parameter_names: Sequence[str],
        argument_values: Sequence[Any],
        identity: str,
) -> str:
    """
    prefix + ":" + resolved key field values joined with "-".

    identity is "<module>.<qualname>" of the protected operation; it is only
    used (hashed) when spec.key_prefix is empty.
    """
    snapshot = snapshot_arguments(parameter_names, argument_values)

    values = []
    for path in spec.key_fields:
        if path not in snapshot:
            raise MissingKeyFieldError(path)
        value = snapshot[path]
        if value == NULL:
            raise NullKeyFieldError(path)
        values.append(value)

    prefix = spec.key_prefix or default_prefix(identity)
    return f"{prefix}:{'-'.join(values)}"
