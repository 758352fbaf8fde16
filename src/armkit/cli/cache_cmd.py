"""``arm cache`` and ``arm clean``: housekeeping for the cache and sinks."""

from __future__ import annotations

from datetime import timedelta

import click

from armkit.cli.context import DURATION, exit_on_error, open_engine
from armkit.cli.output import console, print_cached, print_removed


@click.group("cache")
def cache_group() -> None:
    """Manage the local package cache."""


@cache_group.command("list")
@click.pass_context
def cache_list_command(ctx: click.Context) -> None:
    """List cached packages and versions across every registry."""
    with exit_on_error(), open_engine(ctx) as engine:
        packages = engine.cached_packages()
    print_cached(packages)


@cache_group.command("remove")
@click.argument("package_id", metavar="REGISTRY/PACKAGE")
@click.option("--version", "version", default=None, help="Remove only this version (e.g. 1.2.0).")
@click.pass_context
def cache_remove_command(ctx: click.Context, package_id: str, version: str | None) -> None:
    """Remove a declared package, or one version of it, from the cache."""
    with exit_on_error(), open_engine(ctx) as engine:
        removed = engine.remove_cached(package_id, version)
    target = f"{package_id}@{version}" if version else package_id
    if removed:
        console.print(f"[yellow]Removed[/yellow] {target} from the cache.")
    else:
        console.print(f"[dim]{target} is not cached.[/dim]")


@cache_group.command("clean")
@click.option("--max-age", type=DURATION, default=None, help="Evict versions fetched longer ago than this (e.g. 7d).")
@click.option("--max-idle", type=DURATION, default=None, help="Evict versions unused for longer than this (e.g. 12h).")
@click.pass_context
def cache_clean_command(ctx: click.Context, max_age: timedelta | None, max_idle: timedelta | None) -> None:
    """Evict cached package versions by age or idle time."""
    if max_age is None and max_idle is None:
        max_age = timedelta(days=7)
    with exit_on_error(), open_engine(ctx) as engine:
        removed = engine.clean_cache(max_age=max_age, max_idle=max_idle)
    print_removed("Cache", [str(p) for p in removed])


@cache_group.command("nuke")
@click.confirmation_option(prompt="Delete the entire package cache?")
@click.pass_context
def cache_nuke_command(ctx: click.Context) -> None:
    """Delete the entire package cache."""
    with exit_on_error(), open_engine(ctx) as engine:
        engine.nuke_cache()
    console.print("[green]Cache cleared.[/green]")


@click.group("clean")
def clean_group() -> None:
    """Remove stray files from sinks."""


@clean_group.command("sinks")
@click.option("--nuke", is_flag=True, help="Delete every armkit file from each sink, tracked or not.")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation with --nuke.")
@click.pass_context
def clean_sinks_command(ctx: click.Context, nuke: bool, yes: bool) -> None:
    """Delete files in sink arm/ areas that no installed package owns.

    With --nuke the whole arm/ area and every flat arm_* file is removed;
    run ``arm install`` afterwards to deploy the locked packages again.
    """
    if nuke:
        if not yes:
            click.confirm("Delete all installed packages from every sink?", abort=True)
        with exit_on_error(), open_engine(ctx) as engine:
            names = engine.nuke_sinks()
        for name in names:
            console.print(f"[yellow]Nuked[/yellow] sink {name}")
        if not names:
            console.print("[dim]No sinks declared.[/dim]")
        return
    with exit_on_error(), open_engine(ctx) as engine:
        removed = engine.clean_sinks()
    for name, paths in removed.items():
        print_removed(f"Sink {name}", paths)
