"""Cloudsmith raw package repository backend.

Packages are listed with ``GET {api}/v1/packages/{owner}/{repository}/``
filtered by ``query``, following ``Link: rel="next"`` for pagination. A
package matches a request when its format is ``raw`` and its name equals
the request name or its filename starts with it. Files are downloaded
from each package's ``cdn_url``. Requests carry ``Authorization: Token``
from the ``.armrc`` section ``registry {url}/{owner}/{repository}``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from armkit.core.cancel import CancelToken, ensure_token
from armkit.core.files import File
from armkit.core.manifest import RegistryConfig
from armkit.core.request import PackageRequest
from armkit.core.version import Version, parse_version
from armkit.exceptions import BackendError, ConfigError, NotFoundError
from armkit.registry.base import RegistryBackend
from armkit.registry.http_client import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.cloudsmith.io"
RAW_FORMAT = "raw"
PAGE_SIZE = 100


class CloudsmithBackend(RegistryBackend):
    """Raw packages from a Cloudsmith repository."""

    def __init__(self, config: RegistryConfig, transport: httpx.BaseTransport | None = None) -> None:
        super().__init__(config)
        self.owner = self.option("owner")
        self.repository = self.option("repository")
        if not self.owner or not self.repository:
            raise ConfigError(f"cloudsmith registry {config.name!r} needs owner and repository")
        self.api_url = (config.url or DEFAULT_API_URL).rstrip("/")
        self.http = HttpClient(transport=transport)

    @property
    def auth_key(self) -> str:
        return f"{self.config.url.rstrip('/')}/{self.owner}/{self.repository}"

    def apply_credentials(self, source: Any) -> None:
        super().apply_credentials(source)
        if self.token:
            self.http.set_header("Authorization", f"Token {self.token}")

    def _packages(self, name: str, cancel: CancelToken) -> list[dict[str, Any]]:
        url: str | None = f"{self.api_url}/v1/packages/{self.owner}/{self.repository}/"
        params: dict[str, Any] | None = {"query": name, "page_size": PAGE_SIZE}
        found: list[dict[str, Any]] = []
        while url:
            cancel.check()
            data, resp = self.http.get_json(url, params=params)
            if not isinstance(data, list):
                raise BackendError(f"unexpected response from {url}")
            found.extend(
                p
                for p in data
                if isinstance(p, dict)
                and p.get("format") == RAW_FORMAT
                and (p.get("name") == name or str(p.get("filename", "")).startswith(name))
            )
            url = resp.links.get("next", {}).get("url")
            # the next link already carries the query string
            params = None
        return found

    def list_versions(self, request: PackageRequest, cancel: CancelToken | None = None) -> list[Version]:
        token = ensure_token(cancel)
        seen: dict[str, Version] = {}
        for pkg in self._packages(request.name, token):
            raw = str(pkg.get("version", ""))
            if raw:
                seen.setdefault(raw, parse_version(raw))
        return list(seen.values())

    def fetch(
        self,
        request: PackageRequest,
        version: Version,
        cancel: CancelToken | None = None,
    ) -> list[File]:
        token = ensure_token(cancel)
        matches = [
            p for p in self._packages(request.name, token) if str(p.get("version")) == version.raw
        ]
        if not matches:
            raise NotFoundError(f"{self.name}/{request.name}@{version.raw} not found in Cloudsmith")
        files: list[File] = []
        for pkg in sorted(matches, key=lambda p: str(p.get("filename", ""))):
            token.check()
            cdn_url = pkg.get("cdn_url")
            if not cdn_url:
                raise BackendError(f"package {pkg.get('filename')!r} has no download URL")
            files.append(File(path=str(pkg["filename"]), content=self.http.get_bytes(cdn_url)))
        return files

    def close(self) -> None:
        self.http.close()
