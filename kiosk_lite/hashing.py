"""Content digests and change detection for dashboard state."""

from __future__ import annotations

import dataclasses
import datetime
import enum
import hashlib
import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel


class SerializationError(Exception):
    """A value has no canonical JSON representation and cannot be hashed."""


def _to_plain(obj: Any) -> Any:
    """Reduce ``obj`` to JSON primitives, rejecting anything ambiguous.

    Mapping keys must be strings: ``json`` would otherwise stringify them and
    ``{1: "a"}`` would collide with ``{"1": "a"}``.
    """
    if obj is None or isinstance(obj, (str, bool, int, float)):
        return obj
    if isinstance(obj, Mapping):
        plain = {}
        for key, value in obj.items():
            if not isinstance(key, str):
                raise SerializationError(
                    f"mapping keys must be strings, got {type(key).__name__} key {key!r}"
                )
            plain[key] = _to_plain(value)
        return plain
    if isinstance(obj, (list, tuple)):
        return [_to_plain(item) for item in obj]
    if isinstance(obj, BaseModel):
        try:
            dumped = obj.model_dump(mode="json")
        except ValueError as e:
            raise SerializationError(f"cannot serialize {type(obj).__name__}: {e}") from e
        return _to_plain(dumped)
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _to_plain(dataclasses.asdict(obj))
    if isinstance(obj, (datetime.datetime, datetime.date, datetime.time)):
        return obj.isoformat()
    if isinstance(obj, enum.Enum):
        return _to_plain(obj.value)
    raise SerializationError(f"object of type {type(obj).__name__} has no canonical representation")


def canonical_json(value: Any) -> str:
    """Serialize ``value`` deterministically: sorted keys, no insignificant whitespace.

    Raises:
        SerializationError: If any component (callable, set, arbitrary object,
            NaN, non-string mapping key...) cannot be represented.
    """
    try:
        return json.dumps(
            _to_plain(value),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (ValueError, RecursionError) as e:
        raise SerializationError(f"cannot hash value: {e}") from e


def hash_state(value: Any) -> str:
    """SHA-256 hex digest of the canonical serialization of ``value``.

    Structurally equal values hash identically regardless of mapping order.
    """
    return hashlib.sha256(canonical_json(value).encode("utf-8")).hexdigest()


def diff(old: Mapping[str, Any], new: Mapping[str, Any]) -> list[str]:
    """Sorted keys of ``new`` that are absent from ``old`` or whose value changed.

    Keys only present in ``old`` are not reported.
    """
    changed = []
    for key, new_value in new.items():
        if key not in old or hash_state(old[key]) != hash_state(new_value):
            changed.append(key)
    return sorted(changed)
