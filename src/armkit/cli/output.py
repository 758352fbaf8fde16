"""Rich output formatting helpers for the armkit CLI.

Provides consistent terminal output for install reports, the declared
package list, outdated checks, package details, cache listings and
cleanup summaries.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from armkit.core.lockfile import Lockfile
from armkit.core.manifest import Manifest
from armkit.service import CachedPackage, InstallReport, OutdatedEntry, PackageInfo

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    err_console.print(f"[bold red]Error:[/bold red] {message}")


def print_install_report(report: InstallReport) -> None:
    """Print installed, failed and pruned packages of one run.

    Args:
        report: Outcome returned by the install engine.
    """
    if not report.installed and not report.failed and not report.pruned:
        console.print("[dim]Nothing to install.[/dim]")
        return

    if report.installed or report.failed:
        table = Table(title="Install Results", show_header=True, header_style="bold")
        table.add_column("Package", style="bold")
        table.add_column("Version")
        table.add_column("Status", justify="center")
        table.add_column("Sinks", style="dim")

        for result in report.installed:
            status = Text("LOCKED" if result.pinned else "RESOLVED", style="green")
            table.add_row(result.package_id, result.locked.version, status, ", ".join(result.sinks))
        for failure in report.failed:
            table.add_row(failure.package_id, "-", Text("FAILED", style="bold red"), failure.message)
        console.print(table)

    for key in report.pruned:
        console.print(f"[yellow]Pruned[/yellow] {key}")

    if report.ok:
        console.print(f"[bold green]{len(report.installed)} package(s) installed.[/bold green]")
    else:
        console.print(f"[bold red]{len(report.failed)} package(s) failed.[/bold red]")


def print_packages(manifest: Manifest, lockfile: Lockfile) -> None:
    """Print every declared dependency with its locked version(s)."""
    if not manifest.packages:
        console.print("[dim]No packages declared.[/dim]")
        return

    table = Table(title="Declared Packages", show_header=True, header_style="bold")
    table.add_column("Package", style="bold")
    table.add_column("Type", style="dim")
    table.add_column("Constraint")
    table.add_column("Locked")
    table.add_column("Sinks", style="dim")

    for package_id in sorted(manifest.packages):
        dep = manifest.packages[package_id]
        locked = lockfile.find(dep.registry, dep.package)
        versions = ", ".join(entry.version for entry in locked) or "-"
        table.add_row(package_id, dep.resource_type.value, dep.version, versions, ", ".join(dep.sinks))
    console.print(table)


def print_outdated(entries: list[OutdatedEntry]) -> None:
    outdated = [e for e in entries if e.is_outdated]
    if not outdated:
        console.print("[green]All packages are up to date.[/green]")
        return

    table = Table(title="Outdated Packages", show_header=True, header_style="bold")
    table.add_column("Package", style="bold")
    table.add_column("Constraint", style="dim")
    table.add_column("Current", justify="right")
    table.add_column("Wanted", justify="right", style="green")
    table.add_column("Latest", justify="right", style="cyan")

    for entry in outdated:
        table.add_row(
            entry.package_id,
            entry.constraint,
            entry.current or "-",
            entry.wanted or "-",
            entry.latest or "-",
        )
    console.print(table)


def print_removed(label: str, paths: list[str] | list[Path]) -> None:
    if not paths:
        console.print(f"[dim]{label}: nothing to remove.[/dim]")
        return
    for path in paths:
        console.print(f"[yellow]Removed[/yellow] {path}")
    console.print(f"{label}: {len(paths)} removed.")


def print_info(infos: list[PackageInfo]) -> None:
    """Print one detail block per package."""
    if not infos:
        console.print("[dim]No packages declared.[/dim]")
        return

    for i, info in enumerate(infos):
        if i:
            console.print()
        console.print(f"[bold]{info.package_id}[/bold] [dim]({info.resource_type})[/dim]")
        console.print(f"  Constraint: {info.constraint}")
        if info.locked:
            for locked in info.locked:
                console.print(f"  Locked:     {locked.version} [dim]{locked.integrity}[/dim]")
        else:
            console.print("  Locked:     [yellow]not installed[/yellow]")
        if info.priority is not None:
            console.print(f"  Priority:   {info.priority}")
        if info.include:
            console.print(f"  Include:    {escape(', '.join(info.include))}")
        if info.exclude:
            console.print(f"  Exclude:    {escape(', '.join(info.exclude))}")
        console.print(f"  Cached:     {', '.join(info.cached) or '-'}")
        for sink_name, files in sorted(info.installed.items()):
            console.print(f"  Sink {sink_name}: {len(files)} file(s)")
            for path in files:
                console.print(f"    [dim]{escape(path)}[/dim]")


def print_cached(packages: list[CachedPackage]) -> None:
    if not packages:
        console.print("[dim]The package cache is empty.[/dim]")
        return

    table = Table(title="Cached Packages", show_header=True, header_style="bold")
    table.add_column("Registry", style="dim")
    table.add_column("Package", style="bold")
    table.add_column("Filters", style="dim")
    table.add_column("Versions")
    table.add_column("Updated", style="dim")

    for pkg in packages:
        filters = ", ".join([f"+{p}" for p in pkg.include] + [f"-{p}" for p in pkg.exclude])
        table.add_row(
            f"{pkg.registry_type} {pkg.registry_url}",
            pkg.name,
            escape(filters) or "-",
            ", ".join(pkg.versions) or "-",
            pkg.last_updated or "-",
        )
    console.print(table)
