"""Compile rulesets and promptsets into tool-specific files.

``compile_ruleset`` and ``compile_promptset`` are pure: they turn one
in-memory resource into a list of ``File`` objects sorted by id.
``compile_package_files`` applies them to a whole package payload,
writing compiled output next to each resource file and passing
non-resource files through unchanged.
"""

from __future__ import annotations

import logging
import posixpath

from armkit.core.compiler.metadata import build_rule_content
from armkit.core.compiler.tools import Tool, prompt_filename, rule_filename
from armkit.core.files import File, sort_files
from armkit.core.resource import (
    Promptset,
    ResourceKind,
    Ruleset,
    detect_kind,
    parse_promptset,
    parse_ruleset,
)

logger = logging.getLogger(__name__)


def compile_ruleset(tool: Tool, namespace: str, ruleset: Ruleset) -> list[File]:
    """Compile every rule of *ruleset* for *tool*.

    Args:
        tool: Target tool.
        namespace: ``registry/package@version`` of the owning package.
        ruleset: Parsed ruleset.

    Returns:
        One file per rule, ordered by rule id.

    Raises:
        CompileError: If the ruleset or a rule id is empty.
    """
    files = []
    for rule_id in sorted(ruleset.rules):
        rule = ruleset.rules[rule_id]
        name = rule_filename(tool, ruleset.metadata.id, rule_id)
        content = build_rule_content(namespace, ruleset, rule)
        files.append(File(path=name, content=content.encode("utf-8")))
    return files


def compile_promptset(tool: Tool, namespace: str, promptset: Promptset) -> list[File]:
    """Compile every prompt of *promptset* for *tool*.

    Prompts carry no metadata; the file content is the prompt body.

    Raises:
        CompileError: If the promptset or a prompt id is empty.
    """
    files = []
    for prompt_id in sorted(promptset.prompts):
        prompt = promptset.prompts[prompt_id]
        name = prompt_filename(tool, promptset.metadata.id, prompt_id)
        files.append(File(path=name, content=prompt.body.encode("utf-8")))
    return files


def compile_package_files(tool: Tool, namespace: str, files: list[File]) -> list[File]:
    """Compile all resource files of a package payload.

    Compiled files keep the directory of the resource they came from.
    Files that are not ruleset/promptset documents are returned as-is.

    Raises:
        ParseError: If a file declares a resource kind but is malformed.
        CompileError: If a resource has an empty id.
    """
    out: list[File] = []
    for f in files:
        kind = detect_kind(f)
        if kind is None:
            out.append(f)
            continue
        if kind is ResourceKind.RULESET:
            compiled = compile_ruleset(tool, namespace, parse_ruleset(f))
        else:
            compiled = compile_promptset(tool, namespace, parse_promptset(f))
        directory = posixpath.dirname(f.path)
        logger.debug("Compiled %s into %d %s file(s)", f.path, len(compiled), tool.value)
        out.extend(
            File(path=posixpath.join(directory, c.path), content=c.content)
            for c in compiled
        )
    return sort_files(out)
