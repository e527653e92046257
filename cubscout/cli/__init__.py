"""cub-scout command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``cub-scout`` script).
"""

from cubscout.cli.main import cli

__all__ = ["cli"]
