"""Version constraint algebra.

Re-exports the data models and the pure parsing/matching functions so that
callers can write ``from armkit.core.version import parse_constraint``.
"""

from armkit.core.version.algebra import (
    LATEST,
    admits,
    best_match,
    newest,
    parse_constraint,
    parse_version,
)
from armkit.core.version.models import (
    Constraint,
    ConstraintKind,
    ParseMode,
    Version,
)

__all__ = [
    "LATEST",
    "Constraint",
    "ConstraintKind",
    "ParseMode",
    "Version",
    "admits",
    "best_match",
    "newest",
    "parse_constraint",
    "parse_version",
]
