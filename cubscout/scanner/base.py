"""Check base class and the scanner that runs a catalog of checks.

Every check is independent: it reads the snapshot index, never writes, and
reports dangling references or misconfigurations as Findings.  A malformed
object makes its check skip that object; an unexpected failure inside one
check is logged and the remaining checks still run.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import ClassVar

from cubscout.models.findings import Finding, Severity
from cubscout.models.objects import ClusterObject, ResourceRef
from cubscout.observability.logging import get_logger
from cubscout.observability.metrics import check_errors_total, findings_total
from cubscout.snapshot.index import SnapshotIndex
from cubscout.snapshot.selectors import SelectorError

_logger = get_logger("scanner")

# Raised by malformed object data; anything else is a defect in the check.
_OBJECT_ERRORS = (SelectorError, ValueError, TypeError, KeyError, AttributeError)


class Check:
    """Base class for all structural-integrity checks.

    Subclasses set the class attributes and implement ``evaluate`` for one
    subject object.  ``required_kinds`` must all have been collected for the
    check to run; otherwise every "missing" verdict would be a false positive.
    """

    check_id: ClassVar[str] = ""
    display_name: ClassVar[str] = ""
    severity: ClassVar[Severity] = Severity.WARNING
    category: ClassVar[str] = "dangling"
    subject_kind: ClassVar[str] = ""
    required_kinds: ClassVar[tuple[str, ...]] = ()

    def applicable(self, index: SnapshotIndex) -> bool:
        return all(index.observed(kind) for kind in self.required_kinds)

    def subjects(self, index: SnapshotIndex) -> Iterable[ClusterObject]:
        return index.list(self.subject_kind)

    def evaluate(self, obj: ClusterObject, index: SnapshotIndex) -> list[Finding]:
        raise NotImplementedError

    def run(self, index: SnapshotIndex) -> list[Finding]:
        findings: list[Finding] = []
        for obj in self.subjects(index):
            try:
                findings.extend(self.evaluate(obj, index))
            except _OBJECT_ERRORS as exc:
                check_errors_total.labels(check_id=self.check_id).inc()
                _logger.warning(
                    "check_object_skipped",
                    check_id=self.check_id,
                    object=str(obj.key),
                    error=str(exc),
                )
        return findings

    def finding(
        self,
        obj: ClusterObject,
        message: str,
        verification_command: str,
        target: ResourceRef | None = None,
        severity: Severity | None = None,
        remediation: str = "",
        details: dict[str, str] | None = None,
    ) -> Finding:
        return Finding(
            rule_id=self.check_id,
            severity=severity or self.severity,
            subject=obj.ref,
            message=message,
            verification_command=verification_command,
            target=target,
            category=self.category,
            remediation=remediation,
            details=details or {},
        )


class Scanner:
    """Runs an ordered catalog of checks over one snapshot index."""

    def __init__(self, checks: Sequence[Check], disabled: Iterable[str] = ()) -> None:
        self._checks = tuple(checks)
        self._disabled = frozenset(disabled)

    @property
    def checks(self) -> tuple[Check, ...]:
        return self._checks

    def scan(self, index: SnapshotIndex, min_severity: Severity = Severity.INFO) -> list[Finding]:
        """Run every enabled, applicable check; findings most severe first."""
        findings: list[Finding] = []
        for check in self._checks:
            if check.check_id in self._disabled:
                continue
            if not check.applicable(index):
                _logger.debug(
                    "check_not_applicable",
                    check_id=check.check_id,
                    missing=[k for k in check.required_kinds if not index.observed(k)],
                )
                continue
            try:
                results = check.run(index)
            except Exception as exc:
                check_errors_total.labels(check_id=check.check_id).inc()
                _logger.error("check_failed", check_id=check.check_id, error=str(exc))
                continue
            for finding in results:
                findings_total.labels(rule_id=finding.rule_id, severity=finding.severity.value).inc()
            findings.extend(f for f in results if f.severity.at_least(min_severity))
        findings.sort(key=Finding.sort_key)
        _logger.info("scan_complete", findings=len(findings), objects=len(index))
        return findings
