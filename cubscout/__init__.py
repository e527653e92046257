"""cub-scout: provenance and structural-integrity explorer for Kubernetes."""

__version__ = "0.3.0"
