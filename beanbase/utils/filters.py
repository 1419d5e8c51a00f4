"""Key filtering helpers for the data mappings fed into beans."""

from __future__ import annotations

import re
from collections.abc import Mapping
from numbers import Number
from typing import Any, Dict, Iterable

# canonical decimal integers; "01" and "1.5" stay string keys
_INTEGER_KEY = re.compile(r"(0|-?[1-9][0-9]*)")


def _is_positional(key: Any) -> bool:
    if isinstance(key, Number):
        return True
    return isinstance(key, str) and _INTEGER_KEY.fullmatch(key) is not None


def is_assoc(data: Any) -> bool:
    """Return True when ``data`` is a mapping with at least one non-numeric key.

    Numbers and integer strings such as ``"1"`` count as positional keys, so
    ``{"1": "a"}`` is not associative. Neither are sequences or an empty mapping.
    """

    if not isinstance(data, Mapping):
        return False
    return any(not _is_positional(key) for key in data.keys())


def strip_data(data: Mapping, keys: Iterable) -> Dict[Any, Any]:
    """Keep only the entries of ``data`` whose key appears in ``keys``.

    The result follows the order of ``keys``; keys missing from ``data`` are
    skipped. Anything that is not a mapping yields an empty dict.
    """

    stripped: Dict[Any, Any] = {}
    if not isinstance(data, Mapping):
        return stripped
    for key in keys:
        if key in data and key not in stripped:
            stripped[key] = data[key]
    return stripped


def exclude_data(data: Mapping, keys: Iterable) -> Dict[Any, Any]:
    """Drop every entry of ``data`` whose key appears in ``keys``."""

    excluded = set(keys)
    return {key: value for key, value in data.items() if key not in excluded}
