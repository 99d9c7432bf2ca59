"""
Field rules and fallback chains.

A ``FieldRule`` is one named way of extracting a value from a payload; a
``FallbackChain`` tries its rules in order and keeps the first non-empty
value. Supporting a new upstream field variant means adding one rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable

    from .raw import RawPayload

T = TypeVar("T")


@dataclass(frozen=True)
class FieldRule(Generic[T]):
    name: str
    extract: Callable[[RawPayload], T]


@dataclass(frozen=True)
class FallbackChain(Generic[T]):
    """Ordered rules for one canonical field."""

    field: str
    rules: tuple[FieldRule[T], ...]

    def resolve(self, payload: RawPayload) -> tuple[T | None, str]:
        """Return ``(value, rule_name)`` of the first non-empty rule, or ``(None, "")``."""
        for rule in self.rules:
            value = rule.extract(payload)
            if value:
                return value, rule.name
        return None, ""

    def first(self, payload: RawPayload, default: T) -> T:
        value, _ = self.resolve(payload)
        return default if value is None else value

    @property
    def rule_names(self) -> list[str]:
        return [rule.name for rule in self.rules]


def text_rule(key: str) -> FieldRule[str]:
    """Rule reading a plain string field."""
    return FieldRule(key, lambda payload: payload.text(key))


def text_chain(field: str, *keys: str) -> FallbackChain[str]:
    """Chain of plain string fields tried in order."""
    return FallbackChain(field, tuple(text_rule(key) for key in keys))
