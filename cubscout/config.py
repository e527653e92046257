"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from cubscout.models.config import (
    APIConfig,
    ChainConfig,
    CollectorConfig,
    CubScoutConfig,
    LogConfig,
    ScannerConfig,
)


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"CUBSCOUT_{key}", default)


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    val = int(_env(key, str(default)))
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _env_list(key: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in _env(key, "").split(",") if item.strip())


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_severity(value: str) -> str:
    valid = {"critical", "high", "warning", "info"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid severity: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> CubScoutConfig:
    """Load configuration from CUBSCOUT_* environment variables."""
    return CubScoutConfig(
        cluster=_env("CLUSTER", ""),
        snapshot_path=_env("SNAPSHOT", ""),
        chain=ChainConfig(
            max_hops=_env_int("CHAIN_MAX_HOPS", 10, min_val=1, max_val=64),
        ),
        scanner=ScannerConfig(
            disabled_checks=_env_list("SCANNER_DISABLED_CHECKS"),
            min_severity=_validate_severity(_env("SCANNER_MIN_SEVERITY", "info")),
        ),
        collector=CollectorConfig(
            namespaces=_env_list("COLLECTOR_NAMESPACES"),
            timeout_seconds=_env_int("COLLECTOR_TIMEOUT", 30, min_val=5, max_val=300),
            refresh_interval_seconds=_env_int("COLLECTOR_REFRESH_INTERVAL", 300, min_val=30, max_val=3600),
        ),
        api=APIConfig(
            host=_env("API_HOST", "0.0.0.0"),
            port=_env_int("API_PORT", 8080, min_val=1024, max_val=65535),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
