"""YAML resource parser for rulesets and promptsets.

Validates the document shape the compiler relies on: ``apiVersion``,
``kind``, ``metadata.id``, a non-empty ``spec.rules`` (or
``spec.prompts``) mapping, a ``body`` on every entry and an enforcement
level in ``may``/``should``/``must``. A document whose content does not
fit its declared kind is a ``ParseError``.
"""

from __future__ import annotations

import logging
from typing import Any

import yaml

from armkit.core.files import File
from armkit.core.resource.models import (
    ENFORCEMENTS,
    Prompt,
    Promptset,
    ResourceKind,
    ResourceMetadata,
    Rule,
    RuleScope,
    Ruleset,
)
from armkit.exceptions import ParseError

logger = logging.getLogger(__name__)

_YAML_SUFFIXES = (".yml", ".yaml")


def has_yaml_extension(path: str) -> bool:
    return path.lower().endswith(_YAML_SUFFIXES)


def _load(file: File) -> dict[str, Any]:
    try:
        data = yaml.safe_load(file.content.decode("utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as exc:
        raise ParseError(f"failed to parse YAML in {file.path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError(f"{file.path}: expected a mapping at top level")
    return data


def _str(value: Any, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, (str, int, float)):
        raise ParseError(f"{where}: expected a string")
    return str(value)


def _header(data: dict[str, Any], file: File, expected: ResourceKind) -> tuple[str, ResourceMetadata, dict[str, Any]]:
    api_version = _str(data.get("apiVersion"), f"{file.path}: apiVersion")
    if not api_version:
        raise ParseError(f"{file.path}: apiVersion is required")
    kind = data.get("kind")
    if kind != expected.value:
        raise ParseError(f"{file.path}: expected kind {expected.value}, got {kind!r}")

    meta = data.get("metadata")
    if not isinstance(meta, dict) or not meta.get("id"):
        raise ParseError(f"{file.path}: metadata.id is required")
    metadata = ResourceMetadata(
        id=_str(meta["id"], f"{file.path}: metadata.id"),
        name=_str(meta.get("name"), f"{file.path}: metadata.name"),
        description=_str(meta.get("description"), f"{file.path}: metadata.description"),
    )

    spec = data.get("spec")
    if not isinstance(spec, dict):
        raise ParseError(f"{file.path}: spec is required")
    return api_version, metadata, spec


def _entries(spec: dict[str, Any], key: str, file: File) -> dict[str, dict[str, Any]]:
    entries = spec.get(key)
    if not isinstance(entries, dict) or not entries:
        raise ParseError(f"{file.path}: spec.{key} must be a non-empty mapping")
    for entry_id, entry in entries.items():
        where = f"{file.path}: spec.{key}.{entry_id}"
        if not isinstance(entry, dict):
            raise ParseError(f"{where}: expected a mapping")
        if not entry.get("body"):
            raise ParseError(f"{where}: body is required")
    return {str(k): v for k, v in entries.items()}


def _scopes(raw: Any, where: str) -> tuple[RuleScope, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise ParseError(f"{where}: scope must be a list")
    scopes = []
    for item in raw:
        files = item.get("files") if isinstance(item, dict) else None
        if not isinstance(files, list):
            raise ParseError(f"{where}: scope entries need a files list")
        scopes.append(RuleScope(files=tuple(str(f) for f in files)))
    return tuple(scopes)


def parse_ruleset(file: File) -> Ruleset:
    """Parse and validate a ruleset document.

    Raises:
        ParseError: On malformed YAML, a kind mismatch or a missing field.
    """
    data = _load(file)
    api_version, metadata, spec = _header(data, file, ResourceKind.RULESET)
    if "prompts" in spec:
        raise ParseError(f"{file.path}: Ruleset must not define spec.prompts")

    rules: dict[str, Rule] = {}
    for rule_id, entry in _entries(spec, "rules", file).items():
        where = f"{file.path}: spec.rules.{rule_id}"
        enforcement = _str(entry.get("enforcement"), where)
        if enforcement and enforcement not in ENFORCEMENTS:
            raise ParseError(f"{where}: enforcement must be one of {', '.join(ENFORCEMENTS)}")
        priority = entry.get("priority") or 0
        if not isinstance(priority, int):
            raise ParseError(f"{where}: priority must be an integer")
        rules[rule_id] = Rule(
            id=rule_id,
            body=_str(entry["body"], where),
            name=_str(entry.get("name"), where),
            description=_str(entry.get("description"), where),
            priority=priority,
            enforcement=enforcement,
            scope=_scopes(entry.get("scope"), where),
        )
    return Ruleset(api_version=api_version, metadata=metadata, rules=rules)


def parse_promptset(file: File) -> Promptset:
    """Parse and validate a promptset document.

    Raises:
        ParseError: On malformed YAML, a kind mismatch or a missing field.
    """
    data = _load(file)
    api_version, metadata, spec = _header(data, file, ResourceKind.PROMPTSET)
    if "rules" in spec:
        raise ParseError(f"{file.path}: Promptset must not define spec.rules")

    prompts: dict[str, Prompt] = {}
    for prompt_id, entry in _entries(spec, "prompts", file).items():
        where = f"{file.path}: spec.prompts.{prompt_id}"
        prompts[prompt_id] = Prompt(
            id=prompt_id,
            body=_str(entry["body"], where),
            name=_str(entry.get("name"), where),
            description=_str(entry.get("description"), where),
        )
    return Promptset(api_version=api_version, metadata=metadata, prompts=prompts)


def detect_kind(file: File) -> ResourceKind | None:
    """Return the declared kind of a YAML resource file, or None.

    Files that are not YAML, do not parse, or do not declare a known
    ``kind`` are not resources and are passed through untouched by the
    package compiler.
    """
    if not has_yaml_extension(file.path):
        return None
    try:
        data = yaml.safe_load(file.content.decode("utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError):
        logger.debug("Not a resource (unparseable YAML): %s", file.path)
        return None
    if not isinstance(data, dict):
        return None
    for kind in ResourceKind:
        if data.get("kind") == kind.value:
            return kind
    return None
