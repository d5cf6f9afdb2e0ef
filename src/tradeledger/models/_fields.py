"""Lenient field coercion shared by the ``from_dict`` constructors."""

from __future__ import annotations

import math
from collections.abc import Mapping


def opt_float(val: object) -> float | None:
    """``float(val)`` or ``None`` when missing, unparseable or non-finite."""
    if val is None or isinstance(val, bool):
        return None
    try:
        number = float(str(val).strip()) if isinstance(val, str) else float(val)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def get_float(data: Mapping[str, object], key: str, default: float = 0.0) -> float:
    value = opt_float(data.get(key))
    return default if value is None else value


def opt_int(val: object) -> int | None:
    number = opt_float(val)
    return None if number is None else int(number)


def get_int(data: Mapping[str, object], key: str, default: int = 0) -> int:
    value = opt_int(data.get(key))
    return default if value is None else value


def get_str(data: Mapping[str, object], key: str, default: str = "") -> str:
    value = data.get(key)
    return default if value is None else str(value)


def opt_str(val: object) -> str | None:
    if val is None:
        return None
    text = str(val).strip()
    return text or None


def get_mapping(data: Mapping[str, object], key: str) -> Mapping[str, object]:
    value = data.get(key)
    return value if isinstance(value, Mapping) else {}
