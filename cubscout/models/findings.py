"""Structural-integrity finding types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from cubscout.models.objects import ResourceRef


class Severity(StrEnum):
    """Finding severity, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """0 for critical ... 3 for info."""
        return _SEVERITY_ORDER.index(self)

    def at_least(self, other: Severity) -> bool:
        return self.rank <= other.rank


_SEVERITY_ORDER = (Severity.CRITICAL, Severity.HIGH, Severity.WARNING, Severity.INFO)


@dataclass(frozen=True)
class Finding:
    """A dangling reference or misconfiguration discovered in a snapshot.

    ``target`` is the absent or unsatisfiable thing the subject points at,
    ``None`` when the problem is internal to the subject itself.
    ``verification_command`` lets an operator confirm the finding by hand.
    """

    rule_id: str
    severity: Severity
    subject: ResourceRef
    message: str
    verification_command: str
    target: ResourceRef | None = None
    category: str = "dangling"
    remediation: str = ""
    details: dict[str, str] = field(default_factory=dict)

    def sort_key(self) -> tuple[int, str, str, str, str]:
        return (
            self.severity.rank,
            self.subject.namespace,
            self.subject.kind,
            self.subject.name,
            self.rule_id,
        )
