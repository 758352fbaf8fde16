"""``arm remove registry`` and ``arm remove sink``: drop manifest entries."""

from __future__ import annotations

import click

from armkit.cli.context import exit_on_error, get_settings
from armkit.cli.output import console
from armkit.core.manifest import ManifestFile, remove_registry, remove_sink


@click.group("remove")
def remove_group() -> None:
    """Remove a registry or a sink from arm.json."""


@remove_group.command("registry")
@click.argument("name")
@click.pass_context
def remove_registry_command(ctx: click.Context, name: str) -> None:
    """Remove registry NAME. Packages using it must be uninstalled first."""
    with exit_on_error():
        store = ManifestFile(get_settings(ctx).manifest_path)
        manifest = store.load()
        config = remove_registry(manifest, name)
        store.save(manifest)
    console.print(f"[green]Removed registry[/green] {name} ({config.url})")


@remove_group.command("sink")
@click.argument("name")
@click.pass_context
def remove_sink_command(ctx: click.Context, name: str) -> None:
    """Remove sink NAME. Packages deploying to it must be uninstalled first.

    Files already deployed stay in place; run ``arm clean sinks --nuke``
    beforehand to delete them.
    """
    with exit_on_error():
        store = ManifestFile(get_settings(ctx).manifest_path)
        manifest = store.load()
        config = remove_sink(manifest, name)
        store.save(manifest)
    console.print(f"[green]Removed sink[/green] {name} ({config.directory})")
