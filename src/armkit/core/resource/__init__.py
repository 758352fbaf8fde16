"""Ruleset and promptset resources: data models and YAML parser."""

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
from armkit.core.resource.parser import (
    detect_kind,
    has_yaml_extension,
    parse_promptset,
    parse_ruleset,
)

__all__ = [
    "ENFORCEMENTS",
    "Prompt",
    "Promptset",
    "ResourceKind",
    "ResourceMetadata",
    "Rule",
    "RuleScope",
    "Ruleset",
    "detect_kind",
    "has_yaml_extension",
    "parse_promptset",
    "parse_ruleset",
]
