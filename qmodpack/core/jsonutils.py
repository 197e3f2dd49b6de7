# qmodpack/core/jsonutils.py
from __future__ import annotations

import json
from collections.abc import Mapping, Iterable
from dataclasses import is_dataclass, asdict
from enum import Enum
from pathlib import Path
from typing import Any

__all__ = ["safeJsonDumps", "prettyJsonDumps", "tryJSONify"]



def safeJsonDumps(obj: Any) -> str:
    """
    Serializes an object to a compact one-line JSON string.
    Falls back to tryJSONify when direct encoding fails, so log records never raise.
    """
    try:
        return json.dumps(obj, ensure_ascii=False, allow_nan=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return json.dumps(tryJSONify(obj), ensure_ascii=False, allow_nan=False, separators=(",", ":"))



def prettyJsonDumps(obj: Any) -> str:
    """Stable multi-line JSON, 2-space indent, UTF-8 kept as-is. Raises on unencodable input."""
    return json.dumps(obj, ensure_ascii=False, allow_nan=False, indent=2)



def tryJSONify(obj: Any, *, _depth: int = 0, _maxDepth: int = 10) -> Any:
    """
    Attempts to make any object JSON-serializable.

    Rules:
      • Basic scalars are preserved.
      • Enum → value, Path → string path, dataclass → dict.
      • Mappings → dict with str keys, other iterables → list.
      • fallback → repr(obj)
    """
    if _depth > _maxDepth:
        return f"<max_depth_exceeded {type(obj).__name__}>"

    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj

    if isinstance(obj, Enum):
        return tryJSONify(obj.value, _depth=_depth + 1, _maxDepth=_maxDepth)

    if is_dataclass(obj) and not isinstance(obj, type):
        return tryJSONify(asdict(obj), _depth=_depth + 1, _maxDepth=_maxDepth)

    if isinstance(obj, Path):
        return str(obj)

    if isinstance(obj, Mapping):
        return {str(key): tryJSONify(value, _depth=_depth + 1, _maxDepth=_maxDepth) for key, value in obj.items()}

    if isinstance(obj, Iterable) and not isinstance(obj, (bytes, bytearray)):
        return [tryJSONify(value, _depth=_depth + 1, _maxDepth=_maxDepth) for value in obj]

    return repr(obj)
