"""Package fetch request: the version-independent identity of a package."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from armkit.core.patterns import normalize_patterns


@dataclass(frozen=True)
class PackageRequest:
    """Name plus include/exclude globs, normalized at construction.

    Two requests that differ only in pattern order, outer whitespace or
    path separators are equal and share one cache directory.
    """

    name: str
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        name: str,
        include: list[str] | tuple[str, ...] | None = None,
        exclude: list[str] | tuple[str, ...] | None = None,
    ) -> PackageRequest:
        return cls(
            name=name,
            include=tuple(normalize_patterns(list(include or ()))),
            exclude=tuple(normalize_patterns(list(exclude or ()))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "include": list(self.include),
            "exclude": list(self.exclude),
        }
