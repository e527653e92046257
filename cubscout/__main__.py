"""Entry point for `python -m cubscout`.

Usage:
    python -m cubscout --snapshot cluster.json map
    python -m cubscout serve
"""

from __future__ import annotations

from cubscout.cli import cli

cli(prog_name="cub-scout")
