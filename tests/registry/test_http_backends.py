"""Tests for the GitLab and Cloudsmith backends over a stubbed transport."""

from __future__ import annotations

import httpx
import pytest

from armkit.core.manifest import RegistryConfig
from armkit.core.request import PackageRequest
from armkit.core.version import parse_version
from armkit.exceptions import BackendError, ConfigError, NotFoundError
from armkit.registry.cloudsmith import CloudsmithBackend
from armkit.registry.gitlab import GitLabBackend


class StaticCredentials:
    def __init__(self, token: str) -> None:
        self.token = token
        self.asked: list[str] = []

    def get(self, auth_key: str, key: str) -> str | None:
        self.asked.append(auth_key)
        return self.token


# ===========================================================================
# GitLab
# ===========================================================================


GITLAB_URL = "https://gitlab.example.com"


def _gitlab_handler(seen: list[httpx.Request], scope: str = "projects/42"):
    api = f"/api/v4/{scope}"
    dash_api = api if scope.startswith("projects") else f"{api}/-"

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        path = request.url.path
        if path == f"{api}/packages":
            page = request.url.params.get("page")
            if page == "1":
                return httpx.Response(
                    200,
                    json=[
                        {"id": 1, "name": "rules", "version": "1.0.0", "package_type": "generic"},
                        {"id": 2, "name": "rules", "version": "1.1.0", "package_type": "generic"},
                    ],
                    headers={"X-Total-Pages": "2"},
                )
            return httpx.Response(
                200,
                json=[
                    {"id": 3, "name": "rules", "version": "2.0.0", "package_type": "generic"},
                    {"id": 4, "name": "other", "version": "9.0.0", "package_type": "generic"},
                ],
                headers={"X-Total-Pages": "2"},
            )
        if path == f"{dash_api}/packages/2/package_files":
            return httpx.Response(
                200,
                json=[{"file_name": "b.yml"}, {"file_name": "a.yml"}, {"file_name": "a.yml"}],
            )
        if path.startswith(f"{dash_api}/packages/generic/rules/1.1.0/"):
            return httpx.Response(200, content=path.rsplit("/", 1)[1].encode())
        return httpx.Response(404)

    return handler


class TestGitLabBackend:
    """Project and group generic package registries."""

    def _backend(self, seen: list[httpx.Request], **options: str) -> GitLabBackend:
        scope = f"groups/{options['groupId']}" if "groupId" in options else "projects/42"
        config = RegistryConfig("gl", "gitlab", GITLAB_URL, options or {"projectId": "42"})
        return GitLabBackend(config, transport=httpx.MockTransport(_gitlab_handler(seen, scope)))

    def test_requires_project_or_group(self) -> None:
        """A GitLab registry needs a projectId or groupId."""
        with pytest.raises(ConfigError):
            GitLabBackend(RegistryConfig("gl", "gitlab", GITLAB_URL))

    def test_list_versions_paginates(self) -> None:
        """Every page is read and other package names are ignored."""
        seen: list[httpx.Request] = []
        versions = self._backend(seen).list_versions(PackageRequest.create("rules"))
        assert [v.raw for v in versions] == ["1.0.0", "1.1.0", "2.0.0"]
        assert [r.url.params["page"] for r in seen] == ["1", "2"]
        assert seen[0].url.params["package_name"] == "rules"

    def test_fetch_downloads_each_file_once(self) -> None:
        """Package files are de-duplicated and downloaded by name."""
        seen: list[httpx.Request] = []
        files = self._backend(seen).fetch(PackageRequest.create("rules"), parse_version("1.1.0"))
        assert [(f.path, f.content) for f in files] == [("a.yml", b"a.yml"), ("b.yml", b"b.yml")]

    def test_fetch_missing_version(self) -> None:
        """A version without a package raises NotFoundError."""
        with pytest.raises(NotFoundError):
            self._backend([]).fetch(PackageRequest.create("rules"), parse_version("3.0.0"))

    def test_group_scope(self) -> None:
        """Group registries list under groups/{id} and download under groups/{id}/-."""
        seen: list[httpx.Request] = []
        backend = self._backend(seen, groupId="7")
        files = backend.fetch(PackageRequest.create("rules"), parse_version("1.1.0"))
        assert len(files) == 2
        assert backend.auth_key == f"{GITLAB_URL}/group/7"
        assert any("/groups/7/-/packages/generic/" in r.url.path for r in seen)

    def test_bearer_token(self) -> None:
        """Credentials are sent as a bearer token."""
        seen: list[httpx.Request] = []
        backend = self._backend(seen)
        creds = StaticCredentials("glpat-123")
        backend.apply_credentials(creds)
        backend.list_versions(PackageRequest.create("rules"))
        assert creds.asked == [f"{GITLAB_URL}/project/42"]
        assert seen[0].headers["Authorization"] == "Bearer glpat-123"

    def test_server_error(self) -> None:
        """HTTP 5xx surfaces as BackendError."""
        config = RegistryConfig("gl", "gitlab", GITLAB_URL, {"projectId": "42"})
        backend = GitLabBackend(config, transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        with pytest.raises(BackendError, match="503"):
            backend.list_versions(PackageRequest.create("rules"))


# ===========================================================================
# Cloudsmith
# ===========================================================================


CLOUDSMITH_URL = "https://api.cloudsmith.io"


def _cloudsmith_handler(seen: list[httpx.Request]):
    listing = f"{CLOUDSMITH_URL}/v1/packages/acme/prompts/"

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        url = str(request.url)
        if request.url.path == "/v1/packages/acme/prompts/" and "page=2" not in url:
            return httpx.Response(
                200,
                json=[
                    {"name": "team", "version": "1.0.0", "format": "raw",
                     "filename": "team.yml", "cdn_url": "https://cdn.example/team-1.yml"},
                    {"name": "team", "version": "1.0.0", "format": "npm",
                     "filename": "team.tgz", "cdn_url": "https://cdn.example/npm.tgz"},
                ],
                headers={"Link": f'<{listing}?query=team&page=2>; rel="next"'},
            )
        if request.url.path == "/v1/packages/acme/prompts/":
            return httpx.Response(
                200,
                json=[
                    {"name": "other", "version": "2.0.0", "format": "raw",
                     "filename": "team-extra.md", "cdn_url": "https://cdn.example/extra.md"},
                ],
            )
        if request.url.host == "cdn.example":
            return httpx.Response(200, content=request.url.path.encode())
        return httpx.Response(404)

    return handler


class TestCloudsmithBackend:
    """Raw package repositories."""

    def _backend(self, seen: list[httpx.Request]) -> CloudsmithBackend:
        config = RegistryConfig(
            "cs", "cloudsmith", CLOUDSMITH_URL, {"owner": "acme", "repository": "prompts"}
        )
        return CloudsmithBackend(config, transport=httpx.MockTransport(_cloudsmith_handler(seen)))

    def test_requires_owner_and_repository(self) -> None:
        """owner and repository are mandatory."""
        with pytest.raises(ConfigError):
            CloudsmithBackend(RegistryConfig("cs", "cloudsmith", CLOUDSMITH_URL, {"owner": "acme"}))

    def test_list_versions_follows_next_link(self) -> None:
        """Raw packages across pages are listed; other formats are skipped."""
        seen: list[httpx.Request] = []
        versions = self._backend(seen).list_versions(PackageRequest.create("team"))
        assert sorted(v.raw for v in versions) == ["1.0.0", "2.0.0"]
        assert len([r for r in seen if r.url.host == "api.cloudsmith.io"]) == 2

    def test_fetch_downloads_cdn_files(self) -> None:
        """Matching raw packages are downloaded from their CDN URL."""
        files = self._backend([]).fetch(PackageRequest.create("team"), parse_version("1.0.0"))
        assert [(f.path, f.content) for f in files] == [("team.yml", b"/team-1.yml")]

    def test_token_header(self) -> None:
        """Credentials are sent with the Token scheme."""
        seen: list[httpx.Request] = []
        backend = self._backend(seen)
        backend.apply_credentials(StaticCredentials("cs-key"))
        backend.list_versions(PackageRequest.create("team"))
        assert backend.auth_key == f"{CLOUDSMITH_URL}/acme/prompts"
        assert seen[0].headers["Authorization"] == "Token cs-key"

    def test_missing_version(self) -> None:
        """Unknown versions raise NotFoundError."""
        with pytest.raises(NotFoundError):
            self._backend([]).fetch(PackageRequest.create("team"), parse_version("5.0.0"))
