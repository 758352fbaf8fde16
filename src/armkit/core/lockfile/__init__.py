"""Package lockfile (``arm-lock.json``).

The package is split into focused submodules:

- ``models``: ``LockedPackage`` and key helpers.
- ``lockfile``: The ``Lockfile`` class with entry management, integrity
  hashing and deterministic serialization.
- ``operations``: Deserialization (``from_dict``, ``from_json``,
  ``read``) and integrity validation.
"""

from armkit.core.lockfile.models import (
    LockedPackage,
    _INTEGRITY_RE,
    make_key,
    split_key,
)
from armkit.core.lockfile.lockfile import Lockfile

from armkit.core.lockfile import operations as _ops

Lockfile.from_dict = classmethod(_ops._from_dict)
Lockfile.from_json = classmethod(_ops._from_json)
Lockfile.read = classmethod(_ops._read)
Lockfile.validate = _ops._validate

__all__ = [
    "Lockfile",
    "LockedPackage",
    "_INTEGRITY_RE",
    "make_key",
    "split_key",
]
