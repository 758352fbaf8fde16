"""Project manifest (``arm.json``): models, file store and field edits."""

from armkit.core.manifest.edit import (
    remove_registry,
    remove_sink,
    set_package_field,
    set_registry_field,
    set_sink_field,
)
from armkit.core.manifest.manifest import (
    ManifestFile,
    manifest_from_dict,
    manifest_to_dict,
)
from armkit.core.manifest.models import (
    REGISTRY_TYPES,
    Dependency,
    Layout,
    Manifest,
    RegistryConfig,
    ResourceType,
    SinkConfig,
)

__all__ = [
    "REGISTRY_TYPES",
    "Dependency",
    "Layout",
    "Manifest",
    "ManifestFile",
    "RegistryConfig",
    "ResourceType",
    "SinkConfig",
    "manifest_from_dict",
    "manifest_to_dict",
    "remove_registry",
    "remove_sink",
    "set_package_field",
    "set_registry_field",
    "set_sink_field",
]
