"""``.armrc`` credential files.

INI files with one section per registry, named ``registry <authKey>``::

    [registry https://gitlab.example.com/project/42]
    token = ${GITLAB_TOKEN}

The user's ``~/.armrc`` is read first and the project ``.armrc`` second;
a project section replaces the user section of the same name wholesale.
``$VAR`` and ``${VAR}`` references are expanded from the environment.
"""

from __future__ import annotations

import configparser
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from armkit.exceptions import ParseError

logger = logging.getLogger(__name__)

RC_FILENAME = ".armrc"
SECTION_PREFIX = "registry "


class CredentialSource(ABC):
    """Provides per-registry credential values."""

    @abstractmethod
    def get(self, auth_key: str, key: str) -> str | None:
        """Return *key* from the ``registry <auth_key>`` section, or None."""


class RcFile(CredentialSource):
    """Merged view of the user and project ``.armrc`` files.

    Args:
        project_dir: Directory holding the project ``.armrc``.
        home_dir: Directory holding the user ``.armrc``.
    """

    def __init__(self, project_dir: Path | None = None, home_dir: Path | None = None) -> None:
        self._paths = [
            p / RC_FILENAME for p in (home_dir, project_dir) if p is not None
        ]
        self._sections: dict[str, dict[str, str]] | None = None

    @property
    def sections(self) -> dict[str, dict[str, str]]:
        if self._sections is None:
            self._sections = {}
            for path in self._paths:
                self._sections.update(_read(path))
        return self._sections

    def get(self, auth_key: str, key: str) -> str | None:
        section = self.sections.get(SECTION_PREFIX + auth_key.rstrip("/"))
        if section is None:
            return None
        return section.get(key)


def _read(path: Path) -> dict[str, dict[str, str]]:
    if not path.is_file():
        return {}
    parser = configparser.ConfigParser(interpolation=None, default_section="__default__")
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    try:
        parser.read(path, encoding="utf-8")
    except configparser.Error as exc:
        raise ParseError(f"{path}: {exc}") from exc
    logger.debug("Loaded credentials file %s", path)
    return {
        name: {k: os.path.expandvars(v) for k, v in parser.items(name)}
        for name in parser.sections()
    }
