"""armkit CLI: package manager for AI rulesets and promptsets.

Entry point for the ``arm`` command-line tool. Registers all subcommands
under a single Click group.

Commands:
    install:    Install one package, or everything declared in arm.json.
    update:     Re-resolve packages within their constraints.
    upgrade:    Upgrade packages past their pinned versions.
    uninstall:  Remove a package from arm.json, sinks and the lockfile.
    list:       Show declared packages and pinned versions.
    outdated:   Show packages behind the registry.
    info:       Show local details of declared packages.
    add:        Declare a registry or a sink.
    remove:     Remove an unused registry or sink.
    set:        Change a field of a registry, sink or package.
    cache:      List, remove, evict or wipe cached packages.
    clean:      Remove stray (or, with --nuke, all) files from sinks.
    compile:    Compile local resource files for a tool.

Usage::

    arm add registry main https://github.com/acme/rules --type git
    arm add sink cursor .cursor/rules --tool cursor
    arm install main/python-rules --version ^1.0.0 --sink cursor
    arm install                                  # Everything in arm.json
    arm upgrade --latest
    arm set ruleset main/python-rules priority 200
    arm cache clean --max-idle 30d
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from armkit import __version__
from armkit.cli.add_cmd import add_group
from armkit.cli.cache_cmd import cache_group, clean_group
from armkit.cli.compile_cmd import compile_command
from armkit.cli.info_cmd import info_command
from armkit.cli.install_cmd import (
    install_command,
    uninstall_command,
    update_command,
    upgrade_command,
)
from armkit.cli.list_cmd import list_command, outdated_command
from armkit.cli.remove_cmd import remove_group
from armkit.cli.set_cmd import set_group

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--fail-fast", is_flag=True, help="Stop scheduling installs after the first failure.")
@click.option("--workers", "-j", type=click.IntRange(min=1), default=None, help="Parallel install workers.")
@click.option(
    "--manifest", "-m",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Manifest path (default: $ARM_MANIFEST_PATH or ./arm.json).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, fail_fast: bool, workers: int | None, manifest: Path | None) -> None:
    """armkit: package manager for AI rulesets and promptsets.

    Installs versioned rule and prompt packages from Git, GitLab and
    Cloudsmith registries, compiles them for Cursor, Amazon Q, Copilot or
    plain Markdown, and pins what was installed in arm-lock.json.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    ctx.obj = {"fail_fast": fail_fast, "workers": workers, "manifest_path": manifest}


# Register all subcommands
cli.add_command(install_command)
cli.add_command(update_command)
cli.add_command(upgrade_command)
cli.add_command(uninstall_command)
cli.add_command(list_command)
cli.add_command(outdated_command)
cli.add_command(info_command)
cli.add_command(add_group)
cli.add_command(remove_group)
cli.add_command(set_group)
cli.add_command(cache_group)
cli.add_command(clean_group)
cli.add_command(compile_command)
