"""Manifest data models: registries, sinks and declared dependencies.

Mirrors the ``arm.json`` document::

    {"version": "1.0.0",
     "registries": {"<name>": {"type": "git", "url": "...", ...}},
     "sinks": {"<name>": {"directory": "...", "layout": "hierarchical",
                          "compileTarget": "cursor"}},
     "packages": {"<registry>": {"<name>": {"resourceType": "ruleset",
                                            "version": "^1.0.0",
                                            "sinks": ["<name>"]}}}}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from armkit.core.compiler import Tool
from armkit.exceptions import ConfigError, ParseError

REGISTRY_TYPES = ("git", "gitlab", "cloudsmith")


class ResourceType(Enum):
    RULESET = "ruleset"
    PROMPTSET = "promptset"


class Layout(Enum):
    """Placement of deployed files inside a sink directory."""

    HIERARCHICAL = "hierarchical"
    FLAT = "flat"


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistryConfig:
    """A named registry declaration.

    Attributes:
        name: Registry name used in package ids (``name/package``).
        type: One of ``git``, ``gitlab`` or ``cloudsmith``.
        url: Base URL of the registry.
        options: Type-specific fields exactly as written in the manifest
            (``branches``, ``projectId``, ``groupId``, ``apiVersion``,
            ``owner``, ``repository``).
    """

    name: str
    type: str
    url: str
    options: dict[str, Any] = field(default_factory=dict, hash=False)

    def to_dict(self) -> dict[str, Any]:
        """Manifest form; also the input of the registry cache key."""
        return {"type": self.type, "url": self.url, **self.options}

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> RegistryConfig:
        if not isinstance(data, dict):
            raise ParseError(f"registry {name!r} must be an object")
        rtype = data.get("type")
        url = data.get("url")
        if rtype not in REGISTRY_TYPES:
            raise ConfigError(f"registry {name!r} has unsupported type {rtype!r}")
        if not isinstance(url, str) or not url:
            raise ParseError(f"registry {name!r} needs a url")
        options = {k: v for k, v in data.items() if k not in ("type", "url")}
        return cls(name=name, type=rtype, url=url, options=options)


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SinkConfig:
    name: str
    directory: str
    tool: Tool
    layout: Layout = Layout.HIERARCHICAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "directory": self.directory,
            "layout": self.layout.value,
            "compileTarget": self.tool.value,
        }

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> SinkConfig:
        if not isinstance(data, dict) or not data.get("directory"):
            raise ParseError(f"sink {name!r} needs a directory")
        target = data.get("compileTarget") or data.get("tool")
        if not target:
            raise ParseError(f"sink {name!r} needs a compileTarget")
        try:
            layout = Layout(data.get("layout", Layout.HIERARCHICAL.value))
        except ValueError:
            raise ParseError(f"sink {name!r} has unknown layout {data.get('layout')!r}") from None
        return cls(name=name, directory=data["directory"], tool=Tool.parse(target), layout=layout)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Dependency:
    """A declared package dependency.

    Attributes:
        registry: Registry name.
        package: Package name within the registry.
        resource_type: Ruleset or promptset.
        version: Constraint string (e.g. "^1.0.0", "latest").
        sinks: Names of the sinks to deploy into.
        include: Include globs; empty selects everything.
        exclude: Exclude globs.
        priority: Ruleset priority; always None for promptsets.
    """

    registry: str
    package: str
    resource_type: ResourceType
    version: str
    sinks: tuple[str, ...] = ()
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    priority: int | None = None

    def __post_init__(self) -> None:
        if self.resource_type is ResourceType.PROMPTSET and self.priority is not None:
            raise ParseError(f"promptset {self.id} cannot declare a priority")

    @property
    def id(self) -> str:
        return f"{self.registry}/{self.package}"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "resourceType": self.resource_type.value,
            "version": self.version,
            "sinks": list(self.sinks),
        }
        if self.include:
            out["include"] = list(self.include)
        if self.exclude:
            out["exclude"] = list(self.exclude)
        if self.priority is not None:
            out["priority"] = self.priority
        return out

    @classmethod
    def from_dict(cls, registry: str, package: str, data: dict[str, Any]) -> Dependency:
        where = f"package {registry}/{package}"
        if not isinstance(data, dict):
            raise ParseError(f"{where} must be an object")
        try:
            rtype = ResourceType(data.get("resourceType", data.get("type", "ruleset")))
        except ValueError:
            raise ParseError(f"{where} has unknown resourceType") from None
        version = data.get("version", "latest")
        if not isinstance(version, str):
            raise ParseError(f"{where}: version must be a string")
        priority = data.get("priority")
        if priority is not None and not isinstance(priority, int):
            raise ParseError(f"{where}: priority must be an integer")
        return cls(
            registry=registry,
            package=package,
            resource_type=rtype,
            version=version,
            sinks=tuple(_str_list(data.get("sinks"), f"{where}: sinks")),
            include=tuple(_str_list(data.get("include"), f"{where}: include")),
            exclude=tuple(_str_list(data.get("exclude"), f"{where}: exclude")),
            priority=priority,
        )


def _str_list(value: Any, where: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ParseError(f"{where} must be a list of strings")
    return value


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


@dataclass
class Manifest:
    version: str = "1.0.0"
    registries: dict[str, RegistryConfig] = field(default_factory=dict)
    sinks: dict[str, SinkConfig] = field(default_factory=dict)
    packages: dict[str, Dependency] = field(default_factory=dict)

    def registry(self, name: str) -> RegistryConfig:
        try:
            return self.registries[name]
        except KeyError:
            raise ConfigError(f"registry {name!r} is not defined in the manifest") from None

    def sink(self, name: str) -> SinkConfig:
        try:
            return self.sinks[name]
        except KeyError:
            raise ConfigError(f"sink {name!r} is not defined in the manifest") from None

    def dependency(self, package_id: str) -> Dependency:
        try:
            return self.packages[package_id]
        except KeyError:
            raise ConfigError(f"package {package_id!r} is not declared in the manifest") from None

    def put(self, dep: Dependency) -> None:
        self.packages[dep.id] = dep

    def remove(self, package_id: str) -> Dependency:
        dep = self.dependency(package_id)
        del self.packages[package_id]
        return dep
