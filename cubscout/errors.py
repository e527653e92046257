"""Error taxonomy for the collaborators around the core.

The core (classifier, status inferrer, chain resolver, scanner) never raises
for bad cluster data.  Errors here belong to snapshot I/O and live
collection, where a failure must reach the operator with an actionable hint.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorType(StrEnum):
    """Coarse classification used for logs, metrics and CLI hints."""

    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    NETWORK = "network"
    INTERNAL = "internal"
    VALIDATION = "validation"


class CubScoutError(Exception):
    """Base class for errors surfaced to operators."""


class SnapshotFormatError(CubScoutError):
    """Raised when a snapshot file cannot be read or has an unusable shape."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"invalid snapshot {path}: {reason}")
        self.path = path
        self.reason = reason


class CollectorError(CubScoutError):
    """Raised when a kind cannot be listed from the live cluster."""

    def __init__(self, kind: str, cause: Exception) -> None:
        super().__init__(f"listing {kind} failed: {cause}")
        self.kind = kind
        self.cause = cause
        self.error_type = classify_error(cause)


class ObjectNotFoundError(CubScoutError):
    """Raised by lookups that require the object to be in the snapshot."""

    def __init__(self, kind: str, namespace: str, name: str) -> None:
        where = f" in namespace {namespace}" if namespace else ""
        super().__init__(f"{kind}/{name} not found{where}")
        self.kind = kind
        self.namespace = namespace
        self.name = name


_FORBIDDEN_PATTERNS = ("forbidden", "access denied", "unauthorized")
_CRD_MISSING_PATTERNS = ("no matches for kind", "the server could not find")
_NOT_FOUND_PATTERNS = ("not found", *_CRD_MISSING_PATTERNS)
_NETWORK_PATTERNS = (
    "connection refused",
    "no such host",
    "network is unreachable",
    "dial tcp",
    "i/o timeout",
    "cannot connect to host",
    "timed out",
)


def _cause(exc: BaseException) -> BaseException:
    if isinstance(exc, CollectorError):
        return exc.cause
    return exc


def classify_error(exc: BaseException | None) -> ErrorType | None:
    """Classify an exception by HTTP status (when it has one) and message."""
    if exc is None:
        return None
    exc = _cause(exc)
    if isinstance(exc, (SnapshotFormatError, ValueError)):
        return ErrorType.VALIDATION
    status = getattr(exc, "status", None)
    if status in (401, 403):
        return ErrorType.FORBIDDEN
    if status == 404:
        return ErrorType.NOT_FOUND
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return ErrorType.NETWORK
    msg = str(exc).lower()
    if any(p in msg for p in _FORBIDDEN_PATTERNS):
        return ErrorType.FORBIDDEN
    if any(p in msg for p in _NOT_FOUND_PATTERNS):
        return ErrorType.NOT_FOUND
    if any(p in msg for p in _NETWORK_PATTERNS):
        return ErrorType.NETWORK
    return ErrorType.INTERNAL


def pretty(exc: BaseException) -> str:
    """Render an exception with an actionable hint for the terminal."""
    base = str(exc)
    error_type = classify_error(exc)
    if error_type == ErrorType.FORBIDDEN:
        return (
            f"Access denied: {base}\n\n"
            "Hint: Check your RBAC permissions. You may need:\n"
            "  - ClusterRole with get/list permissions for the resources you're accessing\n"
            "  - kubectl auth can-i list <resource> to verify permissions"
        )
    if error_type == ErrorType.NOT_FOUND:
        msg = str(_cause(exc)).lower()
        if getattr(_cause(exc), "status", None) == 404 or any(p in msg for p in _CRD_MISSING_PATTERNS):
            return (
                f"CRD not installed: {base}\n\n"
                "Hint: The Custom Resource Definition may not be installed.\n"
                "  - For Flux resources: flux install\n"
                "  - For ArgoCD resources: kubectl apply -k github.com/argoproj/argo-cd/manifests/crds"
            )
        return f"Not found: {base}"
    if error_type == ErrorType.NETWORK:
        return (
            f"Connection error: {base}\n\n"
            "Hint: Check your cluster connectivity:\n"
            "  - kubectl cluster-info to verify connection\n"
            "  - Ensure your kubeconfig is correct"
        )
    if error_type == ErrorType.VALIDATION:
        return f"Invalid input: {base}"
    return f"Error: {base}"
