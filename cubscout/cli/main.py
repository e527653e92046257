"""CLI entrypoint for cub-scout."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console

from cubscout import __version__
from cubscout.chain import resolve
from cubscout.cli import render
from cubscout.config import load_config
from cubscout.errors import ObjectNotFoundError, pretty
from cubscout.models.findings import Severity
from cubscout.models.ownership import OwnerType
from cubscout.models.status import BROKEN_STATES
from cubscout.observability.logging import setup_logging
from cubscout.ownership import build_map, summarize
from cubscout.scanner import Scanner, default_checks
from cubscout.snapshot import SnapshotIndex, dump_snapshot, load_snapshot

_SEVERITIES = [s.value for s in Severity]
_OWNERS = [o.value for o in OwnerType]


def _split_target(target: str, kind: str | None) -> tuple[str, str]:
    """``Kind/name`` or ``name`` with ``--kind``; kind defaults to Deployment."""
    if "/" in target:
        target_kind, _, name = target.partition("/")
        if not target_kind or not name or "/" in name:
            raise click.BadParameter(f"expected KIND/NAME, got {target!r}", param_hint="TARGET")
        return target_kind, name
    return kind or "Deployment", target


async def _collect_live(cluster: str) -> SnapshotIndex:
    from cubscout.collector import SnapshotCollector, load_client_config

    config = load_config()
    await load_client_config()
    return await SnapshotCollector(config.collector, cluster=cluster or config.cluster).collect()


def _load_index(ctx: click.Context) -> SnapshotIndex:
    """The snapshot file given with --snapshot, else a live collection."""
    snapshot: Path | None = ctx.obj["snapshot"]
    try:
        if snapshot is not None:
            return load_snapshot(snapshot)
        return asyncio.run(_collect_live(ctx.obj["cluster"]))
    except Exception as exc:
        raise click.ClickException(pretty(exc)) from exc


@click.group()
@click.version_option(__version__, prog_name="cub-scout")
@click.option(
    "--snapshot",
    "-s",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    envvar="CUBSCOUT_SNAPSHOT",
    default=None,
    help="Read cluster objects from a snapshot file instead of the live cluster",
)
@click.option(
    "--cluster",
    type=str,
    default="",
    help="Cluster name recorded in collected snapshots",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="warning",
    help="Log level for the JSON log stream on stderr",
)
@click.pass_context
def cli(ctx: click.Context, snapshot: Path | None, cluster: str, log_level: str) -> None:
    """cub-scout - who manages this, and where does it come from?

    Classifies cluster objects by owner, traces them back to their source of
    truth, and scans for dangling references.
    """
    ctx.ensure_object(dict)
    setup_logging(log_level)
    ctx.obj["snapshot"] = snapshot
    ctx.obj["cluster"] = cluster


@cli.command("map")
@click.option("--owner", type=click.Choice(_OWNERS), default=None, help="Only objects with this owner")
@click.option("--kind", "kinds", multiple=True, help="Only objects of this kind (repeatable)")
@click.option("--namespace", "-n", default=None, help="Only objects in this namespace")
@click.option("--problems", is_flag=True, help="Only objects that are not Ready")
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def map_cmd(
    ctx: click.Context,
    owner: str | None,
    kinds: tuple[str, ...],
    namespace: str | None,
    problems: bool,
    output_json: bool,
) -> None:
    """Show who manages each object, with its health."""
    index = _load_index(ctx)
    subjects = (obj for obj in index if namespace is None or obj.namespace == namespace)
    entries = build_map(subjects, owner=OwnerType(owner) if owner else None, kinds=kinds or None)
    if problems:
        entries = [e for e in entries if e.status in BROKEN_STATES]
    stats = summarize(entries)
    if output_json:
        render.echo_json(render.map_payload(entries, stats))
        return
    render.render_map(Console(), entries, stats)


@cli.command()
@click.argument("target")
@click.option("--namespace", "-n", default="", help="Namespace of the target (empty for cluster-scoped)")
@click.option("--kind", "-k", default=None, help="Kind when TARGET is a bare name (default Deployment)")
@click.option("--max-hops", type=click.IntRange(1, 64), default=None, help="Bound on chain length")
@click.option("--history", "show_history", is_flag=True, help="Show deployment history of the controlling layer")
@click.option("--limit", type=click.IntRange(1, None), default=10, show_default=True, help="History rows to show")
@click.option("--json", "output_json", is_flag=True, help="Output the chain as JSON")
@click.pass_context
def trace(
    ctx: click.Context,
    target: str,
    namespace: str,
    kind: str | None,
    max_hops: int | None,
    show_history: bool,
    limit: int,
    output_json: bool,
) -> None:
    """Trace TARGET (KIND/NAME) back to its source of truth.

    Examples:

        cub-scout trace deployment/web -n prod

        cub-scout trace Pod/web-7d9c-abcde -n prod --json

        cub-scout trace statefulset/cache-redis-master -n shop --history
    """
    target_kind, name = _split_target(target, kind)
    index = _load_index(ctx)
    obj = index.get(target_kind, namespace, name)
    if obj is None:
        # Accept lowercase kinds as typed on the command line.
        matches = [k for k in index.kinds() if k.lower() == target_kind.lower()]
        obj = index.get(matches[0], namespace, name) if matches else None
    if obj is None:
        raise click.ClickException(str(ObjectNotFoundError(target_kind, namespace, name)))

    hops = max_hops or load_config().chain.max_hops
    chain = resolve(obj, index, max_hops=hops)
    if output_json:
        render.echo_json(render.chain_payload(chain))
        return
    render.render_chain(Console(), chain, history_limit=limit if show_history else 0)


@cli.command()
@click.option(
    "--severity",
    type=click.Choice(_SEVERITIES),
    default="info",
    help="Only report findings at or above this severity",
)
@click.option("--check", "checks", multiple=True, help="Only run this check ID (repeatable)")
@click.option(
    "--fail-on",
    type=click.Choice([*_SEVERITIES, "none"]),
    default="none",
    help="Exit with status 1 if findings at or above this severity exist",
)
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def scan(
    ctx: click.Context,
    severity: str,
    checks: tuple[str, ...],
    fail_on: str,
    output_json: bool,
) -> None:
    """Scan for dangling references and blocking misconfigurations."""
    index = _load_index(ctx)
    config = load_config()
    catalog = default_checks()
    if checks:
        known = {c.check_id for c in catalog}
        unknown = sorted(set(checks) - known)
        if unknown:
            raise click.BadParameter(f"unknown check(s): {', '.join(unknown)}", param_hint="--check")
        catalog = [c for c in catalog if c.check_id in checks]

    # --fail-on judges every finding; --severity only narrows what is shown.
    every = Scanner(catalog, disabled=config.scanner.disabled_checks).scan(index)
    findings = [f for f in every if f.severity.at_least(Severity(severity))]
    if output_json:
        render.echo_json(render.scan_payload(findings))
    else:
        render.render_findings(Console(), findings)

    if fail_on != "none" and any(f.severity.at_least(Severity(fail_on)) for f in every):
        sys.exit(1)


@cli.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    required=True,
    help="File to write the snapshot to",
)
@click.pass_context
def snapshot(ctx: click.Context, output: Path) -> None:
    """Write the current objects to a snapshot file for offline use."""
    index = _load_index(ctx)
    try:
        dump_snapshot(index, output)
    except OSError as exc:
        raise click.ClickException(f"cannot write {output}: {exc.strerror or exc}") from exc
    click.echo(f"Wrote {len(index)} objects ({len(index.collected_kinds)} kinds) to {output}")


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the REST API, refreshing the snapshot periodically.

    Configured through CUBSCOUT_* environment variables; --snapshot and
    --cluster given to the group take precedence.
    """
    from cubscout.app import main

    config = load_config()
    if ctx.obj["snapshot"] is not None:
        config.snapshot_path = str(ctx.obj["snapshot"])
    if ctx.obj["cluster"]:
        config.cluster = ctx.obj["cluster"]
    asyncio.run(main(config))
