"""Label selector parsing, evaluation and rendering.

Semantics follow the orchestrator's set-based selectors: every requirement
must hold (AND); ``NotIn`` and ``DoesNotExist`` are satisfied by objects that
lack the key; an empty selector matches everything.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class SelectorError(ValueError):
    """Raised for a selector document that cannot be evaluated."""


class Operator(StrEnum):
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


_VALUED_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN})


@dataclass(frozen=True)
class Requirement:
    """One ``matchExpressions`` clause."""

    key: str
    operator: Operator
    values: tuple[str, ...] = ()

    def matches(self, labels: Mapping[str, str]) -> bool:
        present = self.key in labels
        if self.operator == Operator.IN:
            return present and labels[self.key] in self.values
        if self.operator == Operator.NOT_IN:
            return not present or labels[self.key] not in self.values
        if self.operator == Operator.EXISTS:
            return present
        return not present

    def render(self) -> str:
        if self.values:
            return f"{self.key} {self.operator} ({','.join(self.values)})"
        return f"{self.key} {self.operator}"

    def to_query(self) -> str:
        """kubectl ``-l`` syntax."""
        joined = ",".join(self.values)
        if self.operator == Operator.IN:
            return f"{self.key} in ({joined})"
        if self.operator == Operator.NOT_IN:
            return f"{self.key} notin ({joined})"
        if self.operator == Operator.EXISTS:
            return self.key
        return f"!{self.key}"


@dataclass(frozen=True)
class LabelSelector:
    """Conjunction of equality labels and set-based requirements."""

    match_labels: tuple[tuple[str, str], ...] = ()
    match_expressions: tuple[Requirement, ...] = ()

    @classmethod
    def from_map(cls, labels: Mapping[str, Any] | None) -> LabelSelector:
        """Build from a Service-style plain ``{key: value}`` selector."""
        if labels is None:
            return cls()
        if not isinstance(labels, Mapping):
            raise SelectorError(f"selector must be a map, got {type(labels).__name__}")
        pairs: list[tuple[str, str]] = []
        for key, value in labels.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise SelectorError(f"selector entry {key!r}={value!r} is not a string pair")
            pairs.append((key, value))
        return cls(match_labels=tuple(sorted(pairs)))

    @classmethod
    def from_spec(cls, doc: Mapping[str, Any] | None) -> LabelSelector:
        """Build from a ``{matchLabels, matchExpressions}`` document."""
        if doc is None:
            return cls()
        if not isinstance(doc, Mapping):
            raise SelectorError(f"selector must be a map, got {type(doc).__name__}")
        base = cls.from_map(doc.get("matchLabels") or {})
        raw_exprs = doc.get("matchExpressions") or []
        if not isinstance(raw_exprs, list):
            raise SelectorError("matchExpressions must be a list")
        return cls(match_labels=base.match_labels, match_expressions=tuple(_parse_requirement(e) for e in raw_exprs))

    @property
    def is_empty(self) -> bool:
        return not self.match_labels and not self.match_expressions

    def matches(self, labels: Mapping[str, str]) -> bool:
        for key, value in self.match_labels:
            if labels.get(key) != value:
                return False
        return all(req.matches(labels) for req in self.match_expressions)

    def render(self) -> str:
        """Human-readable form, e.g. ``app=web, tier In (api,backend)``."""
        parts = [f"{k}={v}" for k, v in self.match_labels]
        parts.extend(req.render() for req in self.match_expressions)
        return ", ".join(parts)

    def to_query(self) -> str:
        """kubectl ``-l`` form, e.g. ``app=web,tier in (api,backend)``."""
        parts = [f"{k}={v}" for k, v in self.match_labels]
        parts.extend(req.to_query() for req in self.match_expressions)
        return ",".join(parts)


def _parse_requirement(raw: Any) -> Requirement:
    if not isinstance(raw, Mapping):
        raise SelectorError("matchExpressions entries must be maps")
    key = raw.get("key")
    if not isinstance(key, str) or not key:
        raise SelectorError(f"matchExpressions key must be a non-empty string, got {key!r}")
    try:
        operator = Operator(raw.get("operator"))
    except ValueError as exc:
        raise SelectorError(f"unknown selector operator {raw.get('operator')!r} for key {key}") from exc
    values = raw.get("values") or []
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise SelectorError(f"values for key {key} must be a list of strings")
    if operator in _VALUED_OPERATORS and not values:
        raise SelectorError(f"operator {operator} on key {key} requires values")
    if operator not in _VALUED_OPERATORS and values:
        raise SelectorError(f"operator {operator} on key {key} takes no values")
    return Requirement(key=key, operator=operator, values=tuple(values))
