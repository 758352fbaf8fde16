"""GitLab generic package registry backend.

Packages live under a project (``projectId``) or a group (``groupId``)
and are listed through the packages API::

    GET {url}/api/{apiVersion}/projects/{id}/packages?page=N&per_page=100
    GET {url}/api/{apiVersion}/projects/{id}/packages/{pkgId}/package_files
    GET {url}/api/{apiVersion}/projects/{id}/packages/generic/{name}/{version}/{file}

Group registries use ``groups/{id}`` for listing and ``groups/{id}/-/``
for package files and downloads. Requests carry ``Authorization: Bearer``
with the token from the ``.armrc`` section
``registry {url}/project/{id}`` (or ``/group/{id}``).
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

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

PER_PAGE = 100
DEFAULT_API_VERSION = "v4"
PACKAGE_TYPE = "generic"


def _q(value: str) -> str:
    return quote(value, safe="")


class GitLabBackend(RegistryBackend):
    """Generic packages from a GitLab project or group."""

    def __init__(self, config: RegistryConfig, transport: httpx.BaseTransport | None = None) -> None:
        super().__init__(config)
        self.project_id = self.option("projectId")
        self.group_id = self.option("groupId")
        if not self.project_id and not self.group_id:
            raise ConfigError(f"gitlab registry {config.name!r} needs projectId or groupId")
        self.api_version = self.option("apiVersion", DEFAULT_API_VERSION) or DEFAULT_API_VERSION
        self.http = HttpClient(transport=transport)

    @property
    def auth_key(self) -> str:
        base = self.config.url.rstrip("/")
        if self.project_id:
            return f"{base}/project/{self.project_id}"
        return f"{base}/group/{self.group_id}"

    @property
    def _api(self) -> str:
        return f"{self.config.url.rstrip('/')}/api/{self.api_version}"

    def _scope(self, with_dash: bool) -> str:
        if self.project_id:
            return f"projects/{_q(self.project_id)}"
        dash = "/-" if with_dash else ""
        return f"groups/{_q(self.group_id)}{dash}"

    def apply_credentials(self, source: Any) -> None:
        super().apply_credentials(source)
        if self.token:
            self.http.set_header("Authorization", f"Bearer {self.token}")

    # -- API helpers ----------------------------------------------------------

    def _paginate(self, url: str, params: dict[str, Any], cancel: CancelToken) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            cancel.check()
            data, resp = self.http.get_json(url, params={**params, "page": page, "per_page": PER_PAGE})
            if not isinstance(data, list):
                raise BackendError(f"unexpected response from {url}")
            items.extend(d for d in data if isinstance(d, dict))
            total = resp.headers.get("X-Total-Pages")
            if total is not None and total.isdigit():
                if page >= int(total):
                    break
            elif len(data) < PER_PAGE:
                break
            page += 1
        return items

    def _packages(self, name: str, cancel: CancelToken) -> list[dict[str, Any]]:
        url = f"{self._api}/{self._scope(with_dash=False)}/packages"
        params = {"package_type": PACKAGE_TYPE, "package_name": name}
        return [
            p
            for p in self._paginate(url, params, cancel)
            if p.get("name") == name and p.get("package_type", PACKAGE_TYPE) == PACKAGE_TYPE
        ]

    # -- RegistryBackend ------------------------------------------------------

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
            raise NotFoundError(f"{self.name}/{request.name}@{version.raw} not found in GitLab")
        pkg = matches[0]
        scope = self._scope(with_dash=True)
        files_url = f"{self._api}/{scope}/packages/{pkg['id']}/package_files"

        files: list[File] = []
        names = sorted({str(f["file_name"]) for f in self._paginate(files_url, {}, token) if f.get("file_name")})
        for file_name in names:
            token.check()
            url = (
                f"{self._api}/{scope}/packages/generic/"
                f"{_q(request.name)}/{_q(version.raw)}/{_q(file_name)}"
            )
            files.append(File(path=file_name, content=self.http.get_bytes(url)))
        logger.debug("Downloaded %d file(s) for %s@%s", len(files), request.name, version.raw)
        return files

    def close(self) -> None:
        self.http.close()
