"""``arm list`` and ``arm outdated``: inspect declared packages."""

from __future__ import annotations

import sys

import click

from armkit.cli.context import EXIT_FAILURE, EXIT_OK, exit_on_error, open_engine
from armkit.cli.output import print_outdated, print_packages


@click.command("list")
@click.pass_context
def list_command(ctx: click.Context) -> None:
    """List declared packages and the versions pinned in arm-lock.json."""
    with exit_on_error(), open_engine(ctx) as engine:
        print_packages(engine.load_manifest(), engine.load_lockfile())


@click.command("outdated")
@click.option(
    "--exit-code", "exit_code", is_flag=True,
    help="Exit with status 1 when any package is outdated.",
)
@click.pass_context
def outdated_command(ctx: click.Context, exit_code: bool) -> None:
    """Show packages whose pinned version is behind the registry."""
    with exit_on_error(), open_engine(ctx) as engine:
        entries = engine.outdated()
    print_outdated(entries)
    if exit_code and any(e.is_outdated for e in entries):
        sys.exit(EXIT_FAILURE)
    sys.exit(EXIT_OK)
