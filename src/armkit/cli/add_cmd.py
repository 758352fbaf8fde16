"""``arm add registry`` and ``arm add sink``: declare manifest entries."""

from __future__ import annotations

from typing import Any

import click

from armkit.cli.context import exit_on_error, get_settings
from armkit.cli.output import console
from armkit.core.compiler import Tool
from armkit.core.manifest import REGISTRY_TYPES, Layout, ManifestFile, RegistryConfig, SinkConfig


@click.group("add")
def add_group() -> None:
    """Add a registry or a sink to arm.json."""


@add_group.command("registry")
@click.argument("name")
@click.argument("url")
@click.option("--type", "rtype", type=click.Choice(REGISTRY_TYPES), required=True, help="Registry backend.")
@click.option("--branch", "branches", multiple=True, help="Git branch glob to offer as a version (repeatable).")
@click.option("--project-id", default=None, help="GitLab project id.")
@click.option("--group-id", default=None, help="GitLab group id.")
@click.option("--api-version", default=None, help="GitLab API version (default v4).")
@click.option("--owner", default=None, help="Cloudsmith owner.")
@click.option("--repository", default=None, help="Cloudsmith repository.")
@click.option("--force", is_flag=True, help="Replace an existing registry of the same name.")
@click.pass_context
def add_registry_command(
    ctx: click.Context,
    name: str,
    url: str,
    rtype: str,
    branches: tuple[str, ...],
    project_id: str | None,
    group_id: str | None,
    api_version: str | None,
    owner: str | None,
    repository: str | None,
    force: bool,
) -> None:
    """Declare registry NAME at URL."""
    data: dict[str, Any] = {"type": rtype, "url": url}
    if branches:
        data["branches"] = list(branches)
    for key, value in (
        ("projectId", project_id),
        ("groupId", group_id),
        ("apiVersion", api_version),
        ("owner", owner),
        ("repository", repository),
    ):
        if value is not None:
            data[key] = value
    if rtype == "gitlab" and not (project_id or group_id):
        raise click.UsageError("gitlab registries need --project-id or --group-id")
    if rtype == "cloudsmith" and not (owner and repository):
        raise click.UsageError("cloudsmith registries need --owner and --repository")

    with exit_on_error():
        store = ManifestFile(get_settings(ctx).manifest_path)
        manifest = store.load()
        if name in manifest.registries and not force:
            raise click.UsageError(f"registry {name!r} already exists (use --force to replace it)")
        manifest.registries[name] = RegistryConfig.from_dict(name, data)
        store.save(manifest)
    console.print(f"[green]Added registry[/green] {name} ({rtype} {url})")


@add_group.command("sink")
@click.argument("name")
@click.argument("directory")
@click.option("--tool", type=click.Choice([t.value for t in Tool]), required=True, help="Compile target.")
@click.option(
    "--layout",
    type=click.Choice([layout.value for layout in Layout]),
    default=Layout.HIERARCHICAL.value,
    show_default=True,
)
@click.option("--force", is_flag=True, help="Replace an existing sink of the same name.")
@click.pass_context
def add_sink_command(ctx: click.Context, name: str, directory: str, tool: str, layout: str, force: bool) -> None:
    """Declare sink NAME writing TOOL files into DIRECTORY."""
    with exit_on_error():
        store = ManifestFile(get_settings(ctx).manifest_path)
        manifest = store.load()
        if name in manifest.sinks and not force:
            raise click.UsageError(f"sink {name!r} already exists (use --force to replace it)")
        manifest.sinks[name] = SinkConfig(name=name, directory=directory, tool=Tool(tool), layout=Layout(layout))
        store.save(manifest)
    console.print(f"[green]Added sink[/green] {name} ({tool} -> {directory})")
