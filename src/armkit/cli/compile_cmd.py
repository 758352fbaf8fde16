"""``arm compile PATH...``: compile local resource files without a registry.

Each PATH may be a ruleset/promptset YAML file or a directory searched
recursively for them. Compiled files keep the resource's directory relative
to the PATH it was found under.

Exit Codes:
    0: All resources compiled.
    1: No resources found, or a compile failure.
    2: A resource file is malformed.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from armkit.cli.context import EXIT_FAILURE, exit_on_error
from armkit.cli.output import console
from armkit.core.compiler import Tool, compile_package_files
from armkit.core.files import File
from armkit.core.resource import detect_kind, has_yaml_extension
from armkit.exceptions import FsError


def _collect(paths: tuple[str, ...]) -> list[File]:
    files: list[File] = []
    for raw in paths:
        root = Path(raw)
        if root.is_file():
            candidates = [(root, root.name)]
        else:
            candidates = [
                (p, p.relative_to(root).as_posix())
                for p in sorted(root.rglob("*"))
                if p.is_file() and has_yaml_extension(p.name)
            ]
        for path, rel in candidates:
            try:
                f = File(path=rel, content=path.read_bytes())
            except OSError as exc:
                raise FsError(f"cannot read {path}: {exc}") from exc
            if detect_kind(f) is not None:
                files.append(f)
    return files


@click.command("compile")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--tool", type=click.Choice([t.value for t in Tool]), required=True, help="Compile target.")
@click.option("--output", "-o", type=click.Path(file_okay=False), required=True, help="Output directory.")
@click.option("--namespace", default="local", show_default=True, help="Namespace recorded in rule metadata.")
def compile_command(paths: tuple[str, ...], tool: str, output: str, namespace: str) -> None:
    """Compile rulesets and promptsets in PATHS for TOOL into OUTPUT."""
    out_dir = Path(output)
    with exit_on_error():
        sources = _collect(paths)
        if not sources:
            console.print("[yellow]No rulesets or promptsets found.[/yellow]")
            sys.exit(EXIT_FAILURE)
        compiled = compile_package_files(Tool(tool), namespace, sources)
        try:
            for f in compiled:
                dest = out_dir / f.path
                dest.parent.mkdir(parents=True, exist_ok=True)
                dest.write_bytes(f.content)
        except OSError as exc:
            raise FsError(f"cannot write to {out_dir}: {exc}") from exc
    for f in compiled:
        console.print(f"[green]Wrote[/green] {out_dir / f.path}")
    console.print(f"{len(compiled)} file(s) compiled from {len(sources)} resource(s).")
