"""Per-tool compilation of rulesets and promptsets."""

from armkit.core.compiler.compiler import (
    compile_package_files,
    compile_promptset,
    compile_ruleset,
)
from armkit.core.compiler.metadata import (
    build_cursor_header,
    build_rule_content,
    build_rule_descriptor,
)
from armkit.core.compiler.tools import Tool, prompt_filename, rule_filename

__all__ = [
    "Tool",
    "build_cursor_header",
    "build_rule_content",
    "build_rule_descriptor",
    "compile_package_files",
    "compile_promptset",
    "compile_ruleset",
    "prompt_filename",
    "rule_filename",
]
