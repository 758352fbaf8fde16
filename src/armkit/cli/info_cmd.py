"""``arm info``: show what is known locally about declared packages."""

from __future__ import annotations

import click

from armkit.cli.context import exit_on_error, open_engine
from armkit.cli.output import print_info


@click.command("info")
@click.argument("package_ids", nargs=-1, metavar="[REGISTRY/PACKAGE]...")
@click.pass_context
def info_command(ctx: click.Context, package_ids: tuple[str, ...]) -> None:
    """Show constraint, pinned version, integrity, sink files and cached versions.

    Without arguments every declared package is shown. No registry is
    contacted.
    """
    with exit_on_error(), open_engine(ctx) as engine:
        infos = engine.info(list(package_ids) or None)
    print_info(infos)
