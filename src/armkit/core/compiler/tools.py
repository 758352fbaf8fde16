"""Closed set of compile targets and their filename conventions."""

from __future__ import annotations

from enum import Enum

from armkit.exceptions import CompileError, ConfigError


class Tool(Enum):
    """Supported AI-assistant targets."""

    CURSOR = "cursor"
    AMAZONQ = "amazonq"
    COPILOT = "copilot"
    MARKDOWN = "markdown"

    @classmethod
    def parse(cls, name: str) -> Tool:
        """Look up a tool by its manifest name.

        Raises:
            ConfigError: If *name* is not a supported tool.
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            supported = ", ".join(t.value for t in cls)
            raise ConfigError(f"unknown compile target {name!r} (supported: {supported})") from None


_RULE_SUFFIX: dict[Tool, str] = {
    Tool.CURSOR: ".mdc",
    Tool.AMAZONQ: ".md",
    Tool.COPILOT: ".instructions.md",
    Tool.MARKDOWN: ".md",
}

PROMPT_SUFFIX = ".md"


def _stem(set_id: str, item_id: str, set_label: str, item_label: str) -> str:
    if not set_id:
        raise CompileError(f"{set_label} cannot be empty")
    if not item_id:
        raise CompileError(f"{item_label} cannot be empty")
    return f"{set_id}_{item_id}"


def rule_filename(tool: Tool, ruleset_id: str, rule_id: str) -> str:
    """Return ``{rulesetId}_{ruleId}`` plus the tool's rule suffix.

    Raises:
        CompileError: If either identifier is empty.
    """
    return _stem(ruleset_id, rule_id, "rulesetID", "ruleID") + _RULE_SUFFIX[tool]


def prompt_filename(tool: Tool, promptset_id: str, prompt_id: str) -> str:
    """Return ``{promptsetId}_{promptId}.md`` (identical for every tool).

    Raises:
        CompileError: If either identifier is empty.
    """
    return _stem(promptset_id, prompt_id, "promptsetID", "promptID") + PROMPT_SUFFIX
