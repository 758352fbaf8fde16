"""``arm install``, ``arm update``, ``arm upgrade`` and ``arm uninstall``.

All four reconcile the sinks and the lockfile with the manifest; they differ
in how the manifest is changed first and which lockfile pins are honoured.

Exit Codes:
    0: Every package installed.
    1: At least one package failed.
    2: A manifest, lockfile or resource document is malformed.
"""

from __future__ import annotations

import sys

import click

from armkit.cli.context import exit_on_error, open_engine, report_exit_code
from armkit.cli.output import print_install_report
from armkit.core.manifest import Dependency, ResourceType


def _split_id(package_id: str) -> tuple[str, str]:
    registry, sep, package = package_id.partition("/")
    if not sep or not registry or not package:
        raise click.BadParameter(
            f"{package_id!r} must be written as REGISTRY/PACKAGE", param_hint="PACKAGE"
        )
    return registry, package


@click.command("install")
@click.argument("package_id", metavar="[REGISTRY/PACKAGE]", required=False)
@click.option("--version", "version", default="latest", show_default=True, help="Version constraint.")
@click.option("--sink", "sinks", multiple=True, help="Sink to deploy into (repeatable).")
@click.option("--include", multiple=True, help="Glob of package files to keep (repeatable).")
@click.option("--exclude", multiple=True, help="Glob of package files to drop (repeatable).")
@click.option("--priority", type=int, default=None, help="Ruleset priority (higher wins).")
@click.option("--promptset", is_flag=True, help="Declare the package as a promptset.")
@click.pass_context
def install_command(
    ctx: click.Context,
    package_id: str | None,
    version: str,
    sinks: tuple[str, ...],
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    priority: int | None,
    promptset: bool,
) -> None:
    """Install PACKAGE, or every manifest dependency when omitted.

    Installing a package adds it to arm.json (only when the install
    succeeds) and pins the resolved version in arm-lock.json.
    """
    with exit_on_error(), open_engine(ctx) as engine:
        if package_id is None:
            report = engine.install_all()
        else:
            registry, package = _split_id(package_id)
            if not sinks:
                raise click.UsageError("at least one --sink is required when installing a package")
            dep = Dependency(
                registry=registry,
                package=package,
                resource_type=ResourceType.PROMPTSET if promptset else ResourceType.RULESET,
                version=version,
                sinks=sinks,
                include=include,
                exclude=exclude,
                priority=priority,
            )
            report = engine.install(dep)
        print_install_report(report)
    sys.exit(report_exit_code(report))


@click.command("update")
@click.argument("package_ids", metavar="[REGISTRY/PACKAGE]...", nargs=-1)
@click.pass_context
def update_command(ctx: click.Context, package_ids: tuple[str, ...]) -> None:
    """Re-resolve packages within their declared constraints."""
    with exit_on_error(), open_engine(ctx) as engine:
        report = engine.update(list(package_ids) or None)
        print_install_report(report)
    sys.exit(report_exit_code(report))


@click.command("upgrade")
@click.argument("package_ids", metavar="[REGISTRY/PACKAGE]...", nargs=-1)
@click.option("--latest", is_flag=True, help="Ignore constraints and rewrite them to the newest version.")
@click.pass_context
def upgrade_command(ctx: click.Context, package_ids: tuple[str, ...], latest: bool) -> None:
    """Upgrade packages, ignoring the versions pinned in arm-lock.json."""
    with exit_on_error(), open_engine(ctx) as engine:
        report = engine.upgrade(list(package_ids) or None, latest=latest)
        print_install_report(report)
    sys.exit(report_exit_code(report))


@click.command("uninstall")
@click.argument("package_id", metavar="REGISTRY/PACKAGE")
@click.pass_context
def uninstall_command(ctx: click.Context, package_id: str) -> None:
    """Remove PACKAGE from arm.json, its sinks and arm-lock.json."""
    registry, package = _split_id(package_id)
    with exit_on_error(), open_engine(ctx) as engine:
        report = engine.uninstall(registry, package)
        print_install_report(report)
    sys.exit(report_exit_code(report))
