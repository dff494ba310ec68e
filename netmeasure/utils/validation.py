import hashlib
import json
import math
from collections.abc import Callable, Iterable, Mapping
from itertools import filterfalse
from typing import Any, TypeVar

import numpy as np
import polars as pl

T = TypeVar("T")


def is_missing(value: Any) -> bool:
    """True for ``None`` and float NaN (the two spellings of a missing cell)."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def canonicalize(obj):
    """Recursively convert an object into a JSON-serializable structure.

    Mappings are key-sorted, sets are sorted, polars frames become
    ``{"columns": [...], "rows": [...]}`` in their row order, numpy values
    become Python scalars/lists. Non-finite floats are spelled as strings so
    the result hashes identically across runs.
    """
    if isinstance(obj, pl.DataFrame):
        return {
            "columns": list(obj.columns),
            "rows": [canonicalize(list(row)) for row in obj.iter_rows()],
        }
    if isinstance(obj, np.ndarray):
        return [canonicalize(x) for x in obj.tolist()]
    if isinstance(obj, np.generic):
        return canonicalize(obj.item())
    if isinstance(obj, Mapping):
        return {
            str(key): canonicalize(obj[key]) for key in sorted(obj.keys(), key=lambda x: str(x))
        }
    elif isinstance(obj, (list, tuple)):
        return [canonicalize(item) for item in obj]
    elif isinstance(obj, (set, frozenset)):
        return sorted(
            [canonicalize(item) for item in obj],
            key=lambda x: json.dumps(x, sort_keys=True),
        )
    elif isinstance(obj, float):
        if math.isnan(obj):
            return "nan"
        if math.isinf(obj):
            return "inf" if obj > 0 else "-inf"
        return obj
    elif isinstance(obj, (int, str, bool)) or obj is None:
        return obj
    else:
        if hasattr(obj, "__dict__"):
            return canonicalize(obj.__dict__)
        return str(obj)


def obj_canonicalized_hash(obj) -> str:
    canonical_obj = canonicalize(obj)
    obj_serialized = json.dumps(canonical_obj, sort_keys=True, separators=(",", ":")).encode(
        "utf-8"
    )
    hash_obj = hashlib.sha256()
    hash_obj.update(obj_serialized)
    return hash_obj.hexdigest()


def unique_iter(iterable: Iterable[T], key: Callable[[T], Any] | None = None) -> Iterable[T]:
    # Based on https://iteration-utilities.readthedocs.io/en/latest/generated/unique_everseen.html
    seen: set[Any] = set()
    seen_add = seen.add
    if key is None:
        for element in filterfalse(seen.__contains__, iterable):
            seen_add(element)
            yield element
    else:
        for element in iterable:
            k = key(element)
            if k not in seen:
                seen_add(k)
                yield element
