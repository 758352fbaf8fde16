"""Rule metadata block shared by every rule-emitting tool.

Each compiled rule starts with two YAML frontmatter blocks:

1. A cursor-style header with ``description``, comma-joined ``globs`` from
   the first scope and ``alwaysApply: true`` for ``must`` rules.
2. A descriptor naming the namespace, the ruleset (id, name, sorted rule
   ids) and the rule (id, name, uppercased enforcement, priority when
   positive, scoped files).

Values are written bare when YAML reads them back as the same string and
double-quoted otherwise. Quoting uses JSON string syntax, which YAML
accepts for double-quoted scalars, so quotes, backslashes and newlines
survive a round trip.
"""

from __future__ import annotations

import json
import re

from armkit.core.resource.models import Rule, Ruleset

FENCE = "---"

_PLAIN_RE = re.compile(r"^[A-Za-z0-9_./@+-](?:[A-Za-z0-9_ ./@+()-]*[A-Za-z0-9_./@+)-])?$")
_NUMBER_RE = re.compile(r"^[-+]?(?:\d[\d_]*)?\.?\d*(?:[eE][-+]?\d+)?$")
_RESERVED = {"true", "false", "yes", "no", "on", "off", "null", "y", "n"}


def quoted(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def scalar(value: str) -> str:
    """Return *value* bare if that is unambiguous YAML, else double-quoted."""
    if _PLAIN_RE.match(value) and value.lower() not in _RESERVED and not _NUMBER_RE.match(value):
        return value
    return quoted(value)


def build_cursor_header(rule: Rule) -> str:
    parts = [FENCE]
    if rule.description:
        parts.append(f"description: {quoted(rule.description)}")
    if rule.scope and rule.scope[0].files:
        parts.append(f"globs: {', '.join(rule.scope[0].files)}")
    if rule.enforcement == "must":
        parts.append("alwaysApply: true")
    parts.append(FENCE)
    return "\n".join(parts)


def build_rule_descriptor(namespace: str, ruleset: Ruleset, rule: Rule) -> str:
    parts = [
        FENCE,
        f"namespace: {scalar(namespace)}",
        "ruleset:",
        f"  id: {scalar(ruleset.metadata.id)}",
        f"  name: {scalar(ruleset.metadata.name)}",
        "  rules:",
    ]
    parts.extend(f"    - {scalar(rule_id)}" for rule_id in sorted(ruleset.rules))
    parts.extend([
        "rule:",
        f"  id: {scalar(rule.id)}",
        f"  name: {scalar(rule.name)}",
        f"  enforcement: {rule.enforcement.upper()}",
    ])
    if rule.priority > 0:
        parts.append(f"  priority: {rule.priority}")
    scoped = [s for s in rule.scope if s.files]
    if scoped:
        parts.append("  scope:")
        for scope in scoped:
            files = ", ".join(quoted(f) for f in scope.files)
            parts.append(f"    - files: [{files}]")
    parts.append(FENCE)
    return "\n".join(parts)


def build_rule_content(namespace: str, ruleset: Ruleset, rule: Rule) -> str:
    """Return the full compiled text of one rule: header, descriptor, body."""
    return (
        build_cursor_header(rule)
        + "\n\n"
        + build_rule_descriptor(namespace, ruleset, rule)
        + "\n\n"
        + rule.body
    )
