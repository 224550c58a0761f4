"""
Stable cache keys for query parameters.

Keys are compact JSON with mapping keys sorted at every depth, so two parameter
values that differ only in key insertion order share a key. Values are
canonicalized first: mapping keys become strings the way JSON writes them and
integral floats become ints, so ``{"page": 1}`` and ``{"page": 1.0}`` share a
key. The same codec decodes keys back into parameters for pattern invalidation.
"""

import json
import math
from collections.abc import Mapping, Sequence
from typing import Any, Set

from pydantic import BaseModel

from shared.errors import KeyCodecError


def _canonical_key(key: Any) -> str:
    if isinstance(key, str):
        return key
    if key is None or isinstance(key, (bool, int, float)):
        return json.dumps(_canonical(key, set()), allow_nan=False)
    raise TypeError(f"Mapping keys must be str, int, float, bool or None, not {type(key).__name__}")


def _canonical(value: Any, seen: Set[int]) -> Any:
    """Reduce ``value`` to plain JSON types with equal values written identically."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")

    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    if value is None or isinstance(value, (str, bool, int, float)):
        return value

    if isinstance(value, Mapping) or (isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray))):
        if id(value) in seen:
            raise ValueError("Circular reference detected")
        seen.add(id(value))
        try:
            if isinstance(value, Mapping):
                return {_canonical_key(k): _canonical(v, seen) for k, v in value.items()}
            return [_canonical(item, seen) for item in value]
        finally:
            seen.discard(id(value))

    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def serialize(value: Any) -> str:
    """Serialize ``value`` into a cache key independent of mapping key order."""
    try:
        return json.dumps(
            _canonical(value, set()),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        # ValueError covers circular references and NaN/Infinity
        raise KeyCodecError(
            "Parameters cannot be serialized into a cache key",
            {"error": str(exc), "type": type(value).__name__},
        ) from exc


def parse(key: str) -> Any:
    """Decode a key produced by :func:`serialize` back into parameters."""
    try:
        return json.loads(key)
    except (TypeError, ValueError) as exc:
        raise KeyCodecError("Cache key is not a serialized parameter value", {"key": key}) from exc


def _is_structured(value: Any) -> bool:
    return isinstance(value, Mapping) or (
        isinstance(value, Sequence) and not isinstance(value, (str, bytes))
    )


def contains(candidate: Any, pattern: Any) -> bool:
    """Return True when ``candidate`` structurally contains ``pattern``.

    Every property of a mapping pattern must be present in the candidate; nested
    mappings and sequences are matched recursively (sequences position by
    position) and scalars must be equal. Properties the pattern does not mention
    are ignored, so ``{"a": 1}`` matches ``{"a": 1, "b": 2}``.
    """
    if isinstance(pattern, Mapping):
        if not pattern:
            return True
        if not isinstance(candidate, Mapping):
            return False
        items = pattern.items()
    elif _is_structured(pattern):
        if not _is_structured(candidate) or isinstance(candidate, Mapping):
            return False
        if len(candidate) < len(pattern):
            return False
        items = enumerate(pattern)
    else:
        # JSON keeps true and 1 apart, so matching does too
        if isinstance(candidate, bool) != isinstance(pattern, bool):
            return False
        return candidate == pattern

    for prop, expected in items:
        if isinstance(candidate, Mapping) and prop not in candidate:
            return False
        if not contains(candidate[prop], expected):
            return False
    return True
