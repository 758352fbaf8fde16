"""Ruleset and promptset resource models.

Authored resources are YAML documents with ``apiVersion``, ``kind``
(``Ruleset`` or ``Promptset``), ``metadata`` and ``spec``. These
dataclasses are the parsed, validated in-memory form consumed by the
compiler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

ENFORCEMENTS = ("may", "should", "must")


class ResourceKind(Enum):
    """Top-level ``kind`` of a resource document."""

    RULESET = "Ruleset"
    PROMPTSET = "Promptset"


@dataclass(frozen=True)
class ResourceMetadata:
    id: str
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class RuleScope:
    """Files a rule applies to."""

    files: tuple[str, ...] = ()


@dataclass(frozen=True)
class Rule:
    """A single rule of a ruleset.

    Attributes:
        id: Rule identifier (the key under ``spec.rules``).
        body: Rule text emitted after the metadata block.
        name: Human-readable rule name.
        description: Short description, emitted in the cursor header.
        priority: Rule priority; omitted from metadata when zero.
        enforcement: One of ``may``, ``should`` or ``must``.
        scope: File scopes; the first scope's globs feed the cursor header.
    """

    id: str
    body: str
    name: str = ""
    description: str = ""
    priority: int = 0
    enforcement: str = ""
    scope: tuple[RuleScope, ...] = ()


@dataclass(frozen=True)
class Prompt:
    id: str
    body: str
    name: str = ""
    description: str = ""


@dataclass(frozen=True)
class Ruleset:
    api_version: str
    metadata: ResourceMetadata
    rules: dict[str, Rule] = field(default_factory=dict)

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.RULESET


@dataclass(frozen=True)
class Promptset:
    api_version: str
    metadata: ResourceMetadata
    prompts: dict[str, Prompt] = field(default_factory=dict)

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.PROMPTSET
