"""Shared plumbing for armkit commands.

Exit Codes:
    0: Success.
    1: Fatal error (unsatisfied constraint, integrity mismatch, lock
        timeout, backend or filesystem failure, misconfiguration).
    2: Malformed input file (manifest, lockfile, resource document).
"""

from __future__ import annotations

import re
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import timedelta
from typing import Any

import click

from armkit.cli.output import print_error
from armkit.config import Settings
from armkit.exceptions import ArmError, ParseError
from armkit.service import InstallEngine, InstallReport

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_PARSE = 2

_DURATION_RE = re.compile(r"^(\d+)([smhd])$")
_DURATION_UNITS = {"s": "seconds", "m": "minutes", "h": "hours", "d": "days"}


def get_settings(ctx: click.Context) -> Settings:
    """Build settings from the environment and the group's options."""
    overrides = ctx.find_root().obj or {}
    return Settings.from_env(**overrides)


@contextmanager
def exit_on_error() -> Iterator[None]:
    """Translate armkit exceptions into a one-line message and exit code."""
    try:
        yield
    except ParseError as exc:
        print_error(str(exc))
        sys.exit(EXIT_PARSE)
    except ArmError as exc:
        print_error(str(exc))
        sys.exit(EXIT_FAILURE)


@contextmanager
def open_engine(ctx: click.Context) -> Iterator[InstallEngine]:
    engine = InstallEngine(get_settings(ctx))
    try:
        yield engine
    finally:
        engine.close()


def report_exit_code(report: InstallReport) -> int:
    if report.ok:
        return EXIT_OK
    return EXIT_PARSE if report.has_parse_errors else EXIT_FAILURE


def parse_duration(value: str) -> timedelta:
    """Parse ``30s``, ``15m``, ``12h`` or ``7d`` into a ``timedelta``.

    Raises:
        click.BadParameter: On any other input.
    """
    match = _DURATION_RE.match(value.strip())
    if match is None:
        raise click.BadParameter(f"{value!r} is not a duration like 30s, 15m, 12h or 7d")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


class DurationType(click.ParamType):
    name = "duration"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> timedelta:
        if isinstance(value, timedelta):
            return value
        try:
            return parse_duration(value)
        except click.BadParameter as exc:
            self.fail(exc.message, param, ctx)


DURATION = DurationType()
