"""
RawPayload - read-only, typed accessors over an upstream JSON object.

Upstream responses are arbitrary key/value maps whose shape varies between
endpoints and over time. Only the normalizer reads them, and only through
these accessors, which never raise on a missing key or an unexpected type:
they return an empty value instead.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

_EMPTY: Mapping[str, Any] = {}


class RawPayload:
    """Immutable view over one JSON object."""

    __slots__ = ("_data",)

    def __init__(self, data: Any = None) -> None:
        self._data: Mapping[str, Any] = data if isinstance(data, Mapping) else _EMPTY

    def __bool__(self) -> bool:
        return bool(self._data)

    def __repr__(self) -> str:
        return f"RawPayload(keys={sorted(self._data)})"

    def is_list(self, key: str) -> bool:
        return isinstance(self._data.get(key), list)

    def text(self, key: str) -> str:
        """String (or number rendered as string) at ``key``; ``""`` otherwise."""
        value = self._data.get(key)
        if isinstance(value, str):
            return value.strip()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return ""

    def number(self, key: str) -> float | None:
        value = self._data.get(key)
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                return None
        return None

    def integer(self, key: str, default: int = 0) -> int:
        value = self.number(key)
        return int(value) if value is not None else default

    def flag(self, key: str) -> bool:
        value = self._data.get(key)
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return value is True

    def texts(self, key: str) -> list[str]:
        """Non-empty strings from a list at ``key``."""
        value = self._data.get(key)
        if not isinstance(value, list):
            return []
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    def names(self, key: str) -> list[str]:
        """
        Names from a list at ``key`` whose items are strings or ``{"name": ...}``
        objects, in order.
        """
        value = self._data.get(key)
        if not isinstance(value, list):
            return []
        names: list[str] = []
        for item in value:
            name = item.strip() if isinstance(item, str) else RawPayload(item).text("name")
            if name:
                names.append(name)
        return names

    def nested(self, key: str) -> RawPayload:
        return RawPayload(self._data.get(key))

    def path(self, *keys: str) -> RawPayload:
        node = self
        for key in keys:
            node = node.nested(key)
        return node

    def objects(self, key: str) -> list[RawPayload]:
        """Mapping items of a list at ``key``."""
        value = self._data.get(key)
        if not isinstance(value, list):
            return []
        return [RawPayload(item) for item in value if isinstance(item, Mapping)]

    def scalars(self, exclude: frozenset[str] | set[str] = frozenset()) -> dict[str, str]:
        """All scalar fields rendered as strings, sorted by key."""
        result: dict[str, str] = {}
        for key in sorted(self._data):
            if key in exclude:
                continue
            value = self._data[key]
            if isinstance(value, bool):
                result[key] = "true" if value else "false"
            elif isinstance(value, (str, int, float)):
                result[key] = str(value)
        return result


def payload_items(value: Any) -> list[RawPayload]:
    """Wrap the mapping items of a top-level JSON array."""
    if not isinstance(value, list):
        return []
    return [RawPayload(item) for item in value if isinstance(item, Mapping)]
