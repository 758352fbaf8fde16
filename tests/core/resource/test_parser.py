"""Tests for the ruleset/promptset YAML parser."""

from __future__ import annotations

import pytest

from armkit.core.files import File
from armkit.core.resource import (
    ResourceKind,
    detect_kind,
    parse_promptset,
    parse_ruleset,
)
from armkit.exceptions import ParseError

RULESET = b"""\
apiVersion: v1
kind: Ruleset
metadata:
  id: clean-code
  name: Clean Code
  description: House style
spec:
  rules:
    naming:
      name: Naming
      description: Use descriptive names
      enforcement: must
      priority: 5
      scope:
        - files: ["**/*.py", "**/*.pyi"]
      body: Name things well.
    comments:
      enforcement: may
      body: Comment sparingly.
"""


class TestParseRuleset:
    """Valid and invalid ruleset documents."""

    def test_parses_fields(self) -> None:
        """Metadata, rules and scopes are read."""
        rs = parse_ruleset(File("rules.yml", RULESET))
        assert rs.metadata.id == "clean-code"
        assert rs.metadata.name == "Clean Code"
        assert set(rs.rules) == {"naming", "comments"}
        naming = rs.rules["naming"]
        assert naming.enforcement == "must"
        assert naming.priority == 5
        assert naming.scope[0].files == ("**/*.py", "**/*.pyi")
        assert rs.kind is ResourceKind.RULESET

    def test_missing_metadata_id(self) -> None:
        """metadata.id is required."""
        doc = RULESET.replace(b"  id: clean-code\n", b"")
        with pytest.raises(ParseError, match="metadata.id"):
            parse_ruleset(File("rules.yml", doc))

    def test_bad_enforcement(self) -> None:
        """Enforcement must be may, should or must."""
        doc = RULESET.replace(b"enforcement: may", b"enforcement: always")
        with pytest.raises(ParseError, match="enforcement"):
            parse_ruleset(File("rules.yml", doc))

    def test_missing_body(self) -> None:
        """Every rule needs a body."""
        doc = RULESET.replace(b"      body: Comment sparingly.\n", b"")
        with pytest.raises(ParseError, match="body"):
            parse_ruleset(File("rules.yml", doc))

    def test_kind_mismatch(self) -> None:
        """A promptset document is not a ruleset."""
        doc = RULESET.replace(b"kind: Ruleset", b"kind: Promptset")
        with pytest.raises(ParseError, match="expected kind Ruleset"):
            parse_ruleset(File("rules.yml", doc))

    def test_invalid_yaml(self) -> None:
        """Broken YAML is a ParseError."""
        with pytest.raises(ParseError):
            parse_ruleset(File("rules.yml", b"kind: [unclosed"))

    def test_non_mapping(self) -> None:
        """A YAML list at top level is rejected."""
        with pytest.raises(ParseError, match="mapping"):
            parse_ruleset(File("rules.yml", b"- a\n- b\n"))


class TestParsePromptset:
    """Promptset documents."""

    def test_parses_prompts(self, make_promptset) -> None:
        """Prompts are keyed by id."""
        ps = parse_promptset(File("p.yml", make_promptset("p", ("ask", "review"))))
        assert set(ps.prompts) == {"ask", "review"}
        assert ps.prompts["ask"].body == "Prompt ask."

    def test_rules_in_promptset_rejected(self, make_promptset) -> None:
        """A promptset must not carry spec.rules."""
        doc = make_promptset() + b"  rules:\n    x:\n      body: y\n"
        with pytest.raises(ParseError, match="spec.rules"):
            parse_promptset(File("p.yml", doc))

    def test_empty_prompts_rejected(self) -> None:
        """spec.prompts must be a non-empty mapping."""
        doc = b"apiVersion: v1\nkind: Promptset\nmetadata:\n  id: p\nspec:\n  prompts: {}\n"
        with pytest.raises(ParseError, match="non-empty"):
            parse_promptset(File("p.yml", doc))


class TestDetectKind:
    """Resource detection for package payloads."""

    def test_ruleset(self) -> None:
        """A Ruleset document is detected."""
        assert detect_kind(File("r.yaml", RULESET)) is ResourceKind.RULESET

    def test_promptset(self, make_promptset) -> None:
        """A Promptset document is detected."""
        assert detect_kind(File("p.yml", make_promptset())) is ResourceKind.PROMPTSET

    @pytest.mark.parametrize(
        "path,content",
        [
            ("README.md", b"kind: Ruleset"),
            ("config.yml", b"name: not a resource\n"),
            ("broken.yml", b"kind: [oops"),
            ("list.yml", b"- 1\n"),
        ],
    )
    def test_non_resources(self, path: str, content: bytes) -> None:
        """Other files are not resources."""
        assert detect_kind(File(path, content)) is None
