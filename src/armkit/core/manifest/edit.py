"""In-place edits of a loaded manifest for ``arm set`` and ``arm remove``.

Every function mutates the ``Manifest`` it is given and returns the new
(or removed) declaration; saving is left to the caller. Values arrive as
command-line strings: list fields are comma separated and an empty value
clears them.
"""

from __future__ import annotations

import dataclasses
import logging

from armkit.core.compiler import Tool
from armkit.core.manifest.models import (
    Dependency,
    Layout,
    Manifest,
    RegistryConfig,
    ResourceType,
    SinkConfig,
)
from armkit.exceptions import ConfigError

logger = logging.getLogger(__name__)

REGISTRY_FIELDS: dict[str, tuple[str, ...]] = {
    "git": ("url", "branches"),
    "gitlab": ("url", "projectId", "groupId", "apiVersion"),
    "cloudsmith": ("url", "owner", "repository"),
}
SINK_FIELDS = ("directory", "layout", "compileTarget")
PACKAGE_FIELDS = ("version", "sinks", "include", "exclude", "priority")


def split_list(value: str) -> tuple[str, ...]:
    """Split a comma separated value, dropping blanks."""
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _users(manifest: Manifest, *, registry: str | None = None, sink: str | None = None) -> list[str]:
    return sorted(
        dep.id
        for dep in manifest.packages.values()
        if (registry is not None and dep.registry == registry) or (sink is not None and sink in dep.sinks)
    )


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------


def remove_registry(manifest: Manifest, name: str) -> RegistryConfig:
    """Drop registry *name*.

    Raises:
        ConfigError: If the registry is unknown or a declared package uses it.
    """
    config = manifest.registry(name)
    users = _users(manifest, registry=name)
    if users:
        raise ConfigError(
            f"cannot remove registry {name!r}: used by {', '.join(users)}; uninstall them first"
        )
    del manifest.registries[name]
    logger.info("Removed registry %s (%s %s)", name, config.type, config.url)
    return config


def remove_sink(manifest: Manifest, name: str) -> SinkConfig:
    """Drop sink *name*.

    Raises:
        ConfigError: If the sink is unknown or a declared package deploys to it.
    """
    config = manifest.sink(name)
    users = _users(manifest, sink=name)
    if users:
        raise ConfigError(f"cannot remove sink {name!r}: used by {', '.join(users)}; uninstall them first")
    del manifest.sinks[name]
    logger.info("Removed sink %s (%s)", name, config.directory)
    return config


# ---------------------------------------------------------------------------
# Field updates
# ---------------------------------------------------------------------------


def set_registry_field(manifest: Manifest, name: str, key: str, value: str) -> RegistryConfig:
    """Set one field of registry *name*.

    Raises:
        ConfigError: If the registry is unknown, *key* does not apply to its
            type, or *value* is empty where a value is required.
    """
    config = manifest.registry(name)
    allowed = REGISTRY_FIELDS[config.type]
    if key not in allowed:
        raise ConfigError(f"unknown {config.type} registry field {key!r} (valid: {', '.join(allowed)})")
    value = value.strip()
    if key == "url":
        if not value:
            raise ConfigError("url cannot be empty")
        updated = dataclasses.replace(config, url=value)
    else:
        options = dict(config.options)
        if key == "branches":
            branches = list(split_list(value))
            if branches:
                options["branches"] = branches
            else:
                options.pop("branches", None)
        elif value:
            options[key] = value
        else:
            options.pop(key, None)
        if config.type == "gitlab" and not (options.get("projectId") or options.get("groupId")):
            raise ConfigError(f"gitlab registry {name!r} needs a projectId or a groupId")
        if config.type == "cloudsmith" and not (options.get("owner") and options.get("repository")):
            raise ConfigError(f"cloudsmith registry {name!r} needs an owner and a repository")
        updated = dataclasses.replace(config, options=options)
    manifest.registries[name] = updated
    logger.info("Set registry %s %s=%s", name, key, value)
    return updated


def set_sink_field(manifest: Manifest, name: str, key: str, value: str) -> SinkConfig:
    """Set one field of sink *name*; ``tool`` is accepted for ``compileTarget``.

    Raises:
        ConfigError: If the sink is unknown or *key* or *value* is invalid.
    """
    config = manifest.sink(name)
    value = value.strip()
    if key == "directory":
        if not value:
            raise ConfigError("directory cannot be empty")
        updated = dataclasses.replace(config, directory=value)
    elif key == "layout":
        try:
            layout = Layout(value)
        except ValueError:
            raise ConfigError(f"layout must be one of: {', '.join(m.value for m in Layout)}") from None
        updated = dataclasses.replace(config, layout=layout)
    elif key in ("compileTarget", "tool"):
        updated = dataclasses.replace(config, tool=Tool.parse(value))
    else:
        raise ConfigError(f"unknown sink field {key!r} (valid: {', '.join(SINK_FIELDS)})")
    manifest.sinks[name] = updated
    logger.info("Set sink %s %s=%s", name, key, value)
    return updated


def set_package_field(
    manifest: Manifest,
    package_id: str,
    key: str,
    value: str,
    resource_type: ResourceType | None = None,
) -> Dependency:
    """Set one field of a declared package.

    Args:
        manifest: Manifest to edit.
        package_id: ``registry/package``.
        key: One of ``version``, ``sinks``, ``include``, ``exclude`` or
            ``priority``.
        value: New value as typed on the command line.
        resource_type: When given, the package must be of this type.

    Raises:
        ConfigError: If the package is unknown or of another type, a named
            sink is undeclared, or *key* or *value* is invalid.
    """
    dep = manifest.dependency(package_id)
    if resource_type is not None and dep.resource_type is not resource_type:
        raise ConfigError(f"{package_id} is a {dep.resource_type.value}, not a {resource_type.value}")
    value = value.strip()
    if key == "version":
        if not value:
            raise ConfigError("version cannot be empty")
        updated = dataclasses.replace(dep, version=value)
    elif key == "sinks":
        sinks = split_list(value)
        if not sinks:
            raise ConfigError(f"{package_id} needs at least one sink")
        for sink_name in sinks:
            manifest.sink(sink_name)
        updated = dataclasses.replace(dep, sinks=sinks)
    elif key in ("include", "exclude"):
        updated = dataclasses.replace(dep, **{key: split_list(value)})
    elif key == "priority":
        if dep.resource_type is not ResourceType.RULESET:
            raise ConfigError(f"{package_id}: only rulesets have a priority")
        if not value:
            priority = None
        else:
            try:
                priority = int(value)
            except ValueError:
                raise ConfigError(f"priority must be an integer, got {value!r}") from None
        updated = dataclasses.replace(dep, priority=priority)
    else:
        raise ConfigError(f"unknown package field {key!r} (valid: {', '.join(PACKAGE_FIELDS)})")
    manifest.put(updated)
    logger.info("Set %s %s=%s", package_id, key, value)
    return updated
