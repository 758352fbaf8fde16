"""Version parsing, constraint parsing, admission and best-match selection.

Pure functions with no I/O. The constraint grammar is::

    latest
    [^ | ~ | =] [v] MAJOR [. MINOR [. PATCH [-PRE] [+BUILD]]]

``=`` requires a full triple. Without a prefix the bare-version promotion
rule applies to the zero-filled base: patch > 0 gives EXACT, otherwise
minor > 0 gives MINOR, otherwise MAJOR.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from armkit.core.version.models import (
    Constraint,
    ConstraintKind,
    ParseMode,
    Version,
)
from armkit.exceptions import NoMatchError, ParseError, VersionKindError

_IDENT = r"[0-9A-Za-z\-.]+"

_SEMVER_RE = re.compile(
    r"^v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    rf"(?:-(?P<pre>{_IDENT}))?"
    rf"(?:\+(?P<build>{_IDENT}))?$"
)

_CONSTRAINT_RE = re.compile(
    r"^(?P<op>[\^~=])?v?(?P<major>\d+)"
    r"(?:\.(?P<minor>\d+)"
    r"(?:\.(?P<patch>\d+)"
    rf"(?:-(?P<pre>{_IDENT}))?"
    rf"(?:\+(?P<build>{_IDENT}))?"
    r")?)?$"
)

LATEST = "latest"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_version(s: str) -> Version:
    """Parse a version string. Never fails.

    Args:
        s: Display string such as "1.2.3", "v1.2.3-rc.1+b7" or "main".

    Returns:
        A semantic ``Version`` when *s* is a full triple, else an opaque one
        carrying only the display string.
    """
    m = _SEMVER_RE.match(s)
    if not m:
        return Version(raw=s)
    return Version(
        raw=s,
        major=int(m.group("major")),
        minor=int(m.group("minor")),
        patch=int(m.group("patch")),
        prerelease=m.group("pre") or "",
        build=m.group("build") or "",
        semantic=True,
    )


def parse_constraint(s: str, mode: ParseMode = ParseMode.STRICT) -> Constraint:
    """Parse a constraint string.

    Args:
        s: Constraint text, e.g. "^1.0.0", "~1.2", "1.2.3", "latest".
        mode: STRICT rejects anything outside the grammar; LOOSE turns
            unrecognized input into ``Latest(opaque=s)`` so that manifests
            pinning a branch name keep working.

    Returns:
        The parsed ``Constraint``.

    Raises:
        ParseError: In strict mode, if *s* is not in the grammar.
    """
    text = s.strip()
    if text == LATEST:
        return Constraint(ConstraintKind.LATEST)

    m = _CONSTRAINT_RE.match(text)
    if m is None or (m.group("op") == "=" and m.group("patch") is None):
        if mode is ParseMode.LOOSE and text:
            return Constraint(ConstraintKind.LATEST, opaque=text)
        raise ParseError(f"invalid version constraint: {s!r}")

    major = int(m.group("major"))
    minor = int(m.group("minor") or 0)
    patch = int(m.group("patch") or 0)
    base = Version(
        raw=text.lstrip("^~="),
        major=major,
        minor=minor,
        patch=patch,
        prerelease=m.group("pre") or "",
        build=m.group("build") or "",
        semantic=True,
    )

    op = m.group("op")
    if op == "^":
        kind = ConstraintKind.MAJOR
    elif op == "~":
        kind = ConstraintKind.MINOR
    elif op == "=":
        kind = ConstraintKind.EXACT
    elif patch > 0:
        kind = ConstraintKind.EXACT
    elif minor > 0:
        kind = ConstraintKind.MINOR
    else:
        kind = ConstraintKind.MAJOR
    return Constraint(kind, version=base)


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def admits(constraint: Constraint, version: Version) -> bool:
    """Return True if *constraint* admits *version*.

    Raises:
        VersionKindError: If *constraint* is not LATEST and *version* is
            opaque.
    """
    if constraint.kind is ConstraintKind.LATEST:
        return True
    if not version.semantic:
        raise VersionKindError(
            f"constraint {constraint} cannot be applied to opaque version "
            f"{version.raw!r}"
        )
    base = constraint.version
    assert base is not None
    if constraint.kind is ConstraintKind.EXACT:
        return version.key == base.key
    if constraint.kind is ConstraintKind.MINOR:
        return (
            version.major == base.major
            and version.minor == base.minor
            and version.key >= base.key
        )
    return version.major == base.major and version.key >= base.key


def best_match(versions: Iterable[Version], constraint: Constraint) -> Version:
    """Select the best version admitted by *constraint*.

    Opaque versions rejected by the kind check are skipped. Among the
    admitted semantic versions the maximum wins; equal versions are broken
    by display string ascending. For a loose ``Latest(opaque=s)`` the
    candidate displayed exactly as *s* is required. When only opaque
    versions are admitted the smallest display string wins.

    Raises:
        NoMatchError: If no candidate is admitted.
    """
    candidates: list[Version] = []
    for v in versions:
        try:
            if admits(constraint, v):
                candidates.append(v)
        except VersionKindError:
            continue
    candidates.sort(key=lambda v: v.raw)

    if constraint.kind is ConstraintKind.LATEST and constraint.opaque:
        for v in candidates:
            if v.raw == constraint.opaque:
                return v
        raise NoMatchError(f"no version named {constraint.opaque!r}")

    if not candidates:
        raise NoMatchError(f"no version satisfies {constraint}")

    semantic = [v for v in candidates if v.semantic]
    if not semantic:
        return candidates[0]
    best = semantic[0]
    for v in semantic[1:]:
        if v.key > best.key:
            best = v
    return best


def newest(versions: Iterable[Version]) -> Version | None:
    """Return the highest semantic version, or None when there is none."""
    try:
        return best_match(
            [v for v in versions if v.semantic], Constraint(ConstraintKind.LATEST)
        )
    except NoMatchError:
        return None
