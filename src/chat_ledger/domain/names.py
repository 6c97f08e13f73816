import re
from typing import Any

_WHITESPACE = re.compile(r"\s+")


def normalize_name(value: Any) -> str | None:
    """Account/fund identifier: upper case, inner whitespace replaced by underscores."""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return _WHITESPACE.sub("_", text.upper())


def normalize_names(values: Any) -> list[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = values.split(",")
    names: list[str] = []
    seen = set()
    for value in values:
        name = normalize_name(value)
        if name and name not in seen:
            names.append(name)
            seen.add(name)
    return names


def merge_names(existing: list[str] | None, new_names: list[str]) -> list[str]:
    merged: list[str] = []
    seen = set()
    for name in [*(existing or []), *new_names]:
        if name and name not in seen:
            merged.append(name)
            seen.add(name)
    return merged


def linked_user_id(entry: str | None) -> str | None:
    """Extract the id from ``"NAME (id)"`` or a bare ``"id"`` entry."""
    if not entry or not entry.strip():
        return None
    start = entry.rfind("(")
    end = entry.rfind(")")
    if start != -1 and end > start:
        return entry[start + 1:end].strip() or None
    return entry.strip()
