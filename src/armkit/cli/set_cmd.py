"""``arm set``: change one field of a registry, sink or package in arm.json."""

from __future__ import annotations

import click

from armkit.cli.context import exit_on_error, get_settings
from armkit.cli.output import console
from armkit.core.manifest import (
    ManifestFile,
    ResourceType,
    set_package_field,
    set_registry_field,
    set_sink_field,
)

PACKAGE_HINT = "[dim]Run 'arm install' to apply the change.[/dim]"


@click.group("set")
def set_group() -> None:
    """Change a field of a registry, sink, ruleset or promptset.

    List values (branches, sinks, include, exclude) are comma separated;
    an empty string clears an optional field.
    """


@set_group.command("registry")
@click.argument("name")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_registry_command(ctx: click.Context, name: str, key: str, value: str) -> None:
    """Set KEY of registry NAME (url, branches, projectId, groupId, apiVersion, owner, repository)."""
    with exit_on_error():
        store = ManifestFile(get_settings(ctx).manifest_path)
        manifest = store.load()
        set_registry_field(manifest, name, key, value)
        store.save(manifest)
    console.print(f"[green]Updated registry[/green] {name}: {key} = {value}")


@set_group.command("sink")
@click.argument("name")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_sink_command(ctx: click.Context, name: str, key: str, value: str) -> None:
    """Set KEY of sink NAME (directory, layout, compileTarget)."""
    with exit_on_error():
        store = ManifestFile(get_settings(ctx).manifest_path)
        manifest = store.load()
        set_sink_field(manifest, name, key, value)
        store.save(manifest)
    console.print(f"[green]Updated sink[/green] {name}: {key} = {value}")


def _set_package(ctx: click.Context, resource_type: ResourceType, package_id: str, key: str, value: str) -> None:
    if "/" not in package_id:
        raise click.UsageError(f"expected REGISTRY/PACKAGE, got {package_id!r}")
    with exit_on_error():
        store = ManifestFile(get_settings(ctx).manifest_path)
        manifest = store.load()
        set_package_field(manifest, package_id, key, value, resource_type)
        store.save(manifest)
    console.print(f"[green]Updated {resource_type.value}[/green] {package_id}: {key} = {value}")
    console.print(PACKAGE_HINT)


@set_group.command("ruleset")
@click.argument("package_id", metavar="REGISTRY/PACKAGE")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_ruleset_command(ctx: click.Context, package_id: str, key: str, value: str) -> None:
    """Set KEY of a ruleset (version, sinks, include, exclude, priority)."""
    _set_package(ctx, ResourceType.RULESET, package_id, key, value)


@set_group.command("promptset")
@click.argument("package_id", metavar="REGISTRY/PACKAGE")
@click.argument("key")
@click.argument("value")
@click.pass_context
def set_promptset_command(ctx: click.Context, package_id: str, key: str, value: str) -> None:
    """Set KEY of a promptset (version, sinks, include, exclude)."""
    _set_package(ctx, ResourceType.PROMPTSET, package_id, key, value)
