"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ChainConfig:
    """Chain resolver configuration."""

    max_hops: int = 10


@dataclass
class ScannerConfig:
    """Structural-integrity scanner configuration."""

    disabled_checks: tuple[str, ...] = ()
    min_severity: str = "info"


@dataclass
class CollectorConfig:
    """Live snapshot collector configuration."""

    namespaces: tuple[str, ...] = ()  # empty means all namespaces
    timeout_seconds: int = 30
    refresh_interval_seconds: int = 300


@dataclass
class APIConfig:
    """REST API configuration."""

    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class CubScoutConfig:
    """Top-level cub-scout configuration."""

    cluster: str = ""
    snapshot_path: str = ""  # serve a file instead of the live cluster when set
    chain: ChainConfig = field(default_factory=ChainConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    collector: CollectorConfig = field(default_factory=CollectorConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log: LogConfig = field(default_factory=LogConfig)
