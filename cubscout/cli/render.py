"""Terminal and JSON rendering for the CLI commands."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cubscout.api.schemas import ChainResponse, FindingModel, MapEntryModel, MapSummaryModel
from cubscout.models.chain import Chain, ChainLink, FieldDrift, HistoryEntry
from cubscout.models.findings import Finding, Severity
from cubscout.models.status import StatusState
from cubscout.ownership import MapEntry, OwnerStats, display_owner

_STATUS_STYLE = {
    StatusState.READY: "green",
    StatusState.NOT_READY: "yellow",
    StatusState.PENDING: "yellow",
    StatusState.FAILED: "red",
    StatusState.UNKNOWN: "dim",
}

_STATUS_ICON = {
    StatusState.READY: "✓",
    StatusState.NOT_READY: "⚠",
    StatusState.PENDING: "…",
    StatusState.FAILED: "✗",
    StatusState.UNKNOWN: "?",
}

_SEVERITY_STYLE = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}


def echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


# ---------------------------------------------------------------------------
# map
# ---------------------------------------------------------------------------


def map_payload(entries: Sequence[MapEntry], stats: OwnerStats) -> dict[str, Any]:
    return {
        "summary": MapSummaryModel.from_stats(stats).model_dump(),
        "entries": [MapEntryModel.from_entry(e).model_dump() for e in entries],
    }


def render_map(console: Console, entries: Sequence[MapEntry], stats: OwnerStats) -> None:
    table = Table(title="Ownership map", show_lines=False)
    table.add_column("Namespace", style="dim")
    table.add_column("Kind")
    table.add_column("Name", style="bold")
    table.add_column("Owner")
    table.add_column("Managed by")
    table.add_column("Status")
    for entry in entries:
        own = entry.ownership
        managed_by = own.name
        if own.namespace and own.namespace != entry.ref.namespace:
            managed_by = f"{own.namespace}/{own.name}"
        if own.sub_type and own.name:
            managed_by = f"{own.sub_type}/{managed_by}"
        table.add_row(
            entry.ref.namespace or "-",
            entry.ref.kind,
            escape(entry.ref.name),
            display_owner(own.type),
            managed_by or "-",
            f"[{_STATUS_STYLE[entry.status]}]{entry.status.value}[/]",
        )
    console.print(table)

    owners = ", ".join(f"{display_owner(owner)}: {count}" for owner, count in stats.by_owner.most_common())
    console.print(f"{stats.total} objects ({owners})", soft_wrap=True)
    if stats.unhealthy:
        console.print(f"[yellow]{stats.unhealthy} not ready[/]", soft_wrap=True)


# ---------------------------------------------------------------------------
# trace
# ---------------------------------------------------------------------------


def _link_details(link: ChainLink) -> list[tuple[str, str]]:
    source = link.source
    rows: list[tuple[str, str]] = []
    if link.namespace and not link.external:
        rows.append(("Namespace", link.namespace))
    if source.registry_target is not None:
        rows.append(("Space", source.registry_target.space))
        rows.append(("Target", source.registry_target.target))
    if source.url:
        rows.append(("URL", source.url))
    if source.chart:
        chart = f"{source.chart}@{source.chart_version}" if source.chart_version else source.chart
        rows.append(("Chart", chart))
    if source.path:
        rows.append(("Path", source.path))
    if source.ref:
        rows.append(("Ref", source.ref))
    if source.revision:
        rows.append(("Revision", source.revision))
    if not link.external:
        rows.append(("Status", link.status.value))
    if link.message and link.status != StatusState.READY:
        rows.append(("Error" if link.status in (StatusState.FAILED, StatusState.NOT_READY) else "Message", link.message))
    return rows


def render_chain(console: Console, chain: Chain, history_limit: int = 0) -> None:
    """Print the chain tree and its verdict; ``history_limit`` > 0 adds that many history rows."""
    console.print()
    console.print(f"[bold cyan]TRACE:[/] [bold]{escape(str(chain.target))}[/]", soft_wrap=True)
    console.print()
    for depth, link in enumerate(chain.links):
        indent = "    " * depth
        prefix = f"{indent}[dim]└─▶[/] " if depth else ""
        style = "blue" if link.external else _STATUS_STYLE[link.status]
        icon = "◆" if link.external else _STATUS_ICON[link.status]
        console.print(f"{prefix}[{style}]{icon}[/] {link.kind}/[bold]{escape(link.name)}[/]", soft_wrap=True)
        for label, value in _link_details(link):
            console.print(f"{indent}    [dim]│ {label}:[/] {escape(value)}", soft_wrap=True, highlight=False)

    console.print()
    owner = display_owner(chain.ownership.type)
    broken = chain.broken_link
    if broken is not None:
        console.print(f"[bold yellow]⚠ Chain broken at {broken.kind}/{escape(broken.name)}[/]", soft_wrap=True)
        if broken.message:
            console.print(f"  [red]{escape(broken.message)}[/]", soft_wrap=True, highlight=False)
    elif chain.complete:
        console.print(f"[bold green]✓ All levels in sync.[/] Managed by [cyan]{owner}[/].", soft_wrap=True)
    elif not chain.managed:
        console.print("[yellow]⚠ This resource is NOT managed by GitOps[/]", soft_wrap=True)
    else:
        console.print(f"[yellow]⚠ Chain incomplete ({chain.terminus.value}): {escape(chain.detail)}[/]", soft_wrap=True)
    if chain.confighub is not None and chain.confighub.remediation_url:
        console.print(f"[dim]ConfigHub unit:[/] {chain.confighub.remediation_url}", soft_wrap=True)
    if chain.drift:
        _render_drift(console, chain.drift)
    if history_limit > 0:
        _render_history(console, chain.history, history_limit)


def _render_drift(console: Console, drift: Sequence[FieldDrift]) -> None:
    console.print()
    console.print(f"[bold yellow]⚠ Drifted from last-applied configuration ({len(drift)} field(s)):[/]")
    for change in drift:
        console.print(f"  [bold]{escape(change.path)}[/]", soft_wrap=True, highlight=False)
        console.print(f"    [dim]declared:[/] {escape(_short_value(change.declared))}", soft_wrap=True, highlight=False)
        console.print(f"    [dim]live:[/]     {escape(_short_value(change.live))}", soft_wrap=True, highlight=False)


def _short_value(value: Any) -> str:
    if value is None:
        return "<not set>"
    text = value if isinstance(value, str) else json.dumps(value, sort_keys=True)
    return text if len(text) <= 100 else text[:100] + "..."


def _render_history(console: Console, history: Sequence[HistoryEntry], limit: int) -> None:
    console.print()
    if not history:
        console.print("[bold]History:[/] [dim]No history available[/]")
        return
    table = Table(title="History", title_justify="left")
    table.add_column("Deployed")
    table.add_column("Revision", style="magenta")
    table.add_column("Status")
    table.add_column("Source", style="dim")
    for entry in history[:limit]:
        style = "yellow" if entry.status in ("failed", "superseded") else "green"
        table.add_row(
            entry.timestamp or "-",
            escape(entry.revision),
            f"[{style}]{escape(entry.status)}[/]",
            escape(entry.source),
        )
    console.print(table)
    if len(history) > limit:
        console.print(f"  [dim]... and {len(history) - limit} more (use --limit to show more)[/]")


def chain_payload(chain: Chain) -> dict[str, Any]:
    return ChainResponse.from_chain(chain).model_dump()


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------


def scan_payload(findings: Sequence[Finding]) -> dict[str, Any]:
    return {
        "total": len(findings),
        "findings": [FindingModel.from_finding(f).model_dump() for f in findings],
    }


def render_findings(console: Console, findings: Sequence[Finding]) -> None:
    if not findings:
        console.print("[green]✓ No structural issues found.[/]")
        return
    table = Table(title=f"{len(findings)} finding(s)")
    table.add_column("Severity")
    table.add_column("Check")
    table.add_column("Resource", style="bold")
    table.add_column("Message")
    for finding in findings:
        table.add_row(
            f"[{_SEVERITY_STYLE[finding.severity]}]{finding.severity.value.upper()}[/]",
            finding.rule_id,
            str(finding.subject),
            escape(finding.message),
        )
    console.print(table)
    console.print()
    console.print("[bold]Verify:[/]")
    for finding in findings:
        console.print(f"  {finding.verification_command}", soft_wrap=True, highlight=False, markup=False)
