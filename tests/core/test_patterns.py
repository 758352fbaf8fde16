"""Tests for include/exclude glob selection and pattern normalization."""

from __future__ import annotations

import pytest

from armkit.core.files import File, normalize_path, sort_files
from armkit.core.patterns import (
    filter_files,
    is_selected,
    match_pattern,
    normalize_patterns,
)
from armkit.core.request import PackageRequest


class TestMatchPattern:
    """Glob semantics."""

    @pytest.mark.parametrize(
        "pattern,path,expected",
        [
            ("*.yml", "a.yml", True),
            ("*.yml", "rules/a.yml", False),
            ("**/*.yml", "a.yml", True),
            ("**/*.yml", "rules/deep/a.yml", True),
            ("rules/**", "rules/a/b.md", True),
            ("rules/**", "other/a.md", False),
            ("rules/?.yml", "rules/a.yml", True),
            ("rules/?.yml", "rules/ab.yml", False),
            ("docs/**/*.md", "docs/x.md", True),
            ("a+b.yml", "a+b.yml", True),
        ],
    )
    def test_globs(self, pattern: str, path: str, expected: bool) -> None:
        """Each glob matches exactly the expected paths."""
        assert match_pattern(pattern, path) is expected

    def test_backslash_patterns_are_folded(self) -> None:
        """Windows separators in patterns match forward-slash paths."""
        assert match_pattern("rules\\*.yml", "rules/a.yml")


class TestSelection:
    """Include/exclude combination."""

    def test_empty_include_selects_all(self) -> None:
        """No include globs means everything is included."""
        assert is_selected("any/file.txt", [], [])

    def test_exclude_wins(self) -> None:
        """An exclude match drops an included path."""
        assert not is_selected("rules/a.yml", ["**/*.yml"], ["rules/**"])

    def test_filter_files(self) -> None:
        """filter_files keeps only selected files."""
        files = [File("a.yml", b""), File("b.md", b""), File("x/c.yml", b"")]
        kept = filter_files(files, ["**/*.yml"], ["x/**"])
        assert [f.path for f in kept] == ["a.yml"]


class TestNormalization:
    """Pattern lists and paths are canonicalized."""

    def test_normalize_patterns(self) -> None:
        """Trimmed, folded, de-duplicated and sorted; empties dropped."""
        assert normalize_patterns([" b/*.md ", "a\\*.yml", "", "a/*.yml"]) == ["a/*.yml", "b/*.md"]

    def test_normalize_none(self) -> None:
        """None normalizes to an empty list."""
        assert normalize_patterns(None) == []

    def test_requests_compare_equal_after_normalization(self) -> None:
        """Equivalent requests are equal value objects."""
        a = PackageRequest.create("pkg", ["b", "a"], None)
        b = PackageRequest.create("pkg", (" a", "b "), [])
        assert a == b
        assert a.to_dict() == {"name": "pkg", "include": ["a", "b"], "exclude": []}

    def test_normalize_path(self) -> None:
        """Leading ./ and / are stripped and backslashes folded."""
        assert normalize_path(".\\rules\\a.yml") == "rules/a.yml"
        assert normalize_path("/abs/x") == "abs/x"

    def test_sort_files(self) -> None:
        """Files sort by path."""
        files = [File("b", b""), File("a", b"")]
        assert [f.path for f in sort_files(files)] == ["a", "b"]
