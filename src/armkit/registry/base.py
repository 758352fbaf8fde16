"""Abstract registry backend.

A backend lists the versions a remote source offers for a package and
fetches the raw files of one version. It knows nothing about the cache;
``RegistryAdapter`` layers caching, archive expansion and include/exclude
filtering on top.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from armkit.config.rc import CredentialSource
from armkit.core.cancel import CancelToken
from armkit.core.files import File
from armkit.core.manifest import RegistryConfig
from armkit.core.request import PackageRequest
from armkit.core.version import Version

logger = logging.getLogger(__name__)


class RegistryBackend(ABC):
    """Capability set shared by every registry type.

    Args:
        config: The registry declaration from the manifest.
    """

    #: ``.armrc`` key holding the credential for this backend.
    CREDENTIAL_KEY = "token"

    def __init__(self, config: RegistryConfig) -> None:
        self.config = config
        self.token: str | None = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def auth_key(self) -> str:
        """Section suffix used to look up credentials in ``.armrc``."""
        return self.config.url.rstrip("/")

    def option(self, key: str, default: str = "") -> str:
        value = self.config.options.get(key, default)
        return str(value) if value is not None else default

    @abstractmethod
    def list_versions(self, request: PackageRequest, cancel: CancelToken | None = None) -> list[Version]:
        """Return every version the remote offers for *request*.

        Raises:
            BackendError: On transport faults.
        """

    @abstractmethod
    def fetch(
        self,
        request: PackageRequest,
        version: Version,
        cancel: CancelToken | None = None,
    ) -> list[File]:
        """Return the unfiltered files of *version*.

        Raises:
            BackendError: On transport faults.
            NotFoundError: If the version does not exist remotely.
        """

    def apply_credentials(self, source: CredentialSource) -> None:
        """Load the credential for this registry, if one is configured."""
        self.token = source.get(self.auth_key, self.CREDENTIAL_KEY)
        if self.token is None:
            logger.debug("No credentials for registry %s (%s)", self.name, self.auth_key)

    def close(self) -> None:
        """Release network resources held by the backend."""
