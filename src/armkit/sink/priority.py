"""Generated "ARM Rulesets Index" rule listing installed rulesets by priority.

Assistants read this rule to resolve conflicts between rulesets: higher
priority wins. It is compiled for the sink's tool like any other rule.
"""

from __future__ import annotations

from armkit.core.compiler import Tool, compile_ruleset
from armkit.core.files import File
from armkit.core.resource import ResourceMetadata, Rule, Ruleset
from armkit.sink.index import IndexEntry

INDEX_RULESET_ID = "arm"
INDEX_RULE_ID = "index"
INDEX_NAME = "ARM Rulesets Index"
INDEX_PRIORITY = 1000

_PREAMBLE = (
    "# ARM Rulesets\n\n"
    "This file defines the installation priorities for rulesets managed by ARM.\n\n"
    "## Priority Rules\n\n"
    "**This index is the authoritative source of truth for ruleset priorities.** "
    "When conflicts arise between rulesets, follow this priority order:\n\n"
    "1. **Higher priority numbers take precedence** over lower priority numbers\n"
    "2. **Rules from higher priority rulesets override** conflicting rules from "
    "lower priority rulesets\n"
    "3. **Always consult this index** to resolve any ambiguity about which rules to follow\n\n"
    "## Installed Rulesets\n\n"
)


def build_index_body(rulesets: list[IndexEntry]) -> str:
    """Render the index body; *rulesets* must already be priority-ordered."""
    body = _PREAMBLE
    for entry in rulesets:
        body += f"### {entry.key}\n"
        body += f"- **Priority:** {entry.priority}\n"
        body += "- **Rules:**\n"
        for path in sorted(entry.files):
            body += f"  - {path}\n"
        body += "\n"
    return body


def build_index_file(tool: Tool, rulesets: list[IndexEntry]) -> File:
    """Compile the index rule for *tool*; the returned path is a bare filename."""
    ruleset = Ruleset(
        api_version="v1",
        metadata=ResourceMetadata(id=INDEX_RULESET_ID, name=INDEX_NAME),
        rules={
            INDEX_RULE_ID: Rule(
                id=INDEX_RULE_ID,
                name=INDEX_NAME,
                enforcement="must",
                priority=INDEX_PRIORITY,
                body=build_index_body(rulesets),
            )
        },
    )
    (compiled,) = compile_ruleset(tool, INDEX_RULESET_ID, ruleset)
    return compiled
