"""Deployment of compiled files into project sink directories."""

from armkit.sink.deployer import SinkDeployer
from armkit.sink.index import IndexEntry, SinkIndex
from armkit.sink.paths import flat_path, hierarchical_path

__all__ = [
    "IndexEntry",
    "SinkDeployer",
    "SinkIndex",
    "flat_path",
    "hierarchical_path",
]
