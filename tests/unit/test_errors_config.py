"""Tests for error classification, CLI hints and environment configuration."""

from __future__ import annotations

import pytest

from cubscout.config import load_config
from cubscout.errors import (
    CollectorError,
    ErrorType,
    ObjectNotFoundError,
    SnapshotFormatError,
    classify_error,
    pretty,
)


class _StatusError(Exception):
    """Stands in for an API exception carrying an HTTP status."""

    def __init__(self, status: int, reason: str = "") -> None:
        super().__init__(f"({status}) Reason: {reason}")
        self.status = status


# ---------------------------------------------------------------------------
# classify_error
# ---------------------------------------------------------------------------


class TestClassifyError:
    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (_StatusError(403, "Forbidden"), ErrorType.FORBIDDEN),
            (_StatusError(401, "Unauthorized"), ErrorType.FORBIDDEN),
            (_StatusError(404, "Not Found"), ErrorType.NOT_FOUND),
            (ConnectionError("refused"), ErrorType.NETWORK),
            (TimeoutError(), ErrorType.NETWORK),
            (ValueError("bad"), ErrorType.VALIDATION),
            (SnapshotFormatError("x.json", "broken"), ErrorType.VALIDATION),
            (RuntimeError("dial tcp 10.0.0.1:443: connect: connection refused"), ErrorType.NETWORK),
            (RuntimeError("no matches for kind Kustomization"), ErrorType.NOT_FOUND),
            (RuntimeError("pods is forbidden: User cannot list"), ErrorType.FORBIDDEN),
            (RuntimeError("boom"), ErrorType.INTERNAL),
        ],
    )
    def test_classification(self, exc: BaseException, expected: ErrorType) -> None:
        assert classify_error(exc) == expected

    def test_none_is_none(self) -> None:
        assert classify_error(None) is None

    def test_collector_error_uses_cause(self) -> None:
        err = CollectorError("Pod", _StatusError(403))
        assert err.error_type == ErrorType.FORBIDDEN
        assert classify_error(err) == ErrorType.FORBIDDEN
        assert str(err).startswith("listing Pod failed")


class TestPretty:
    def test_forbidden_hint(self) -> None:
        text = pretty(_StatusError(403))
        assert text.startswith("Access denied:")
        assert "kubectl auth can-i" in text

    def test_crd_missing_hint(self) -> None:
        text = pretty(CollectorError("Kustomization", _StatusError(404)))
        assert text.startswith("CRD not installed:")
        assert "flux install" in text

    def test_plain_not_found(self) -> None:
        assert pretty(RuntimeError("release not found")).startswith("Not found:")

    def test_network_hint(self) -> None:
        assert pretty(ConnectionError("refused")).startswith("Connection error:")

    def test_validation(self) -> None:
        assert pretty(ValueError("bad")) == "Invalid input: bad"

    def test_internal(self) -> None:
        assert pretty(RuntimeError("boom")) == "Error: boom"

    def test_object_not_found_message(self) -> None:
        assert str(ObjectNotFoundError("Deployment", "prod", "web")) == "Deployment/web not found in namespace prod"
        assert str(ObjectNotFoundError("Namespace", "", "prod")) == "Namespace/prod not found"


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------


class TestLoadConfig:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for key in ("CHAIN_MAX_HOPS", "API_PORT", "LOG_LEVEL", "SCANNER_DISABLED_CHECKS", "COLLECTOR_NAMESPACES"):
            monkeypatch.delenv(f"CUBSCOUT_{key}", raising=False)
        config = load_config()
        assert config.chain.max_hops == 10
        assert config.api.port == 8080
        assert config.log.level == "info"
        assert config.scanner.disabled_checks == ()
        assert config.collector.namespaces == ()

    def test_lists_are_split_and_trimmed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CUBSCOUT_SCANNER_DISABLED_CHECKS", " S01_service_selector , ,S10_netpol_selector")
        monkeypatch.setenv("CUBSCOUT_COLLECTOR_NAMESPACES", "prod,staging")
        config = load_config()
        assert config.scanner.disabled_checks == ("S01_service_selector", "S10_netpol_selector")
        assert config.collector.namespaces == ("prod", "staging")

    def test_integers_are_clamped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CUBSCOUT_API_PORT", "80")
        monkeypatch.setenv("CUBSCOUT_CHAIN_MAX_HOPS", "500")
        monkeypatch.setenv("CUBSCOUT_COLLECTOR_REFRESH_INTERVAL", "1")
        config = load_config()
        assert config.api.port == 1024
        assert config.chain.max_hops == 64
        assert config.collector.refresh_interval_seconds == 30

    def test_invalid_log_level_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CUBSCOUT_LOG_LEVEL", "verbose")
        with pytest.raises(ValueError, match="Invalid log level"):
            load_config()

    def test_invalid_severity_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CUBSCOUT_SCANNER_MIN_SEVERITY", "urgent")
        with pytest.raises(ValueError, match="Invalid severity"):
            load_config()

    def test_log_level_is_lowercased(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CUBSCOUT_LOG_LEVEL", "DEBUG")
        assert load_config().log.level == "debug"
