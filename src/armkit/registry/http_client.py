"""Shared HTTP client for the GitLab and Cloudsmith backends.

A thin wrapper around ``httpx.Client`` with standard timeouts, a
user-agent header and error translation: a 404 raises ``NotFoundError``;
other HTTP failures, timeouts and invalid JSON raise ``BackendError``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from armkit import __version__
from armkit.exceptions import BackendError, NotFoundError

logger = logging.getLogger(__name__)

# Timeout for all registry HTTP requests (seconds).
DEFAULT_TIMEOUT: float = 30.0

# User-Agent sent with every request.
USER_AGENT: str = f"armkit/{__version__}"


class HttpClient:
    """Synchronous JSON/bytes client bound to one registry.

    Args:
        headers: Extra headers (typically ``Authorization``).
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport, used to stub the network.
    """

    def __init__(
        self,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT, **(headers or {})},
            follow_redirects=True,
            transport=transport,
        )

    def set_header(self, name: str, value: str) -> None:
        self._client.headers[name] = value

    def get(self, url: str, *, params: dict[str, Any] | None = None) -> httpx.Response:
        """Issue a GET and return the successful response.

        Raises:
            NotFoundError: On HTTP 404.
            BackendError: On any other HTTP error, timeout or transport fault.
        """
        try:
            resp = self._client.get(url, params=params)
            resp.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("Timeout fetching %s", url)
            raise BackendError(f"timeout fetching {url}") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("HTTP %d from %s", status, url)
            if status == 404:
                raise NotFoundError(f"not found: {url}") from exc
            if status in (401, 403):
                raise BackendError(f"HTTP {status} from {url}; check credentials in .armrc") from exc
            raise BackendError(f"HTTP {status} from {url}") from exc
        except httpx.RequestError as exc:
            logger.warning("Request error for %s: %s", url, exc)
            raise BackendError(f"request to {url} failed: {exc}") from exc
        return resp

    def get_json(self, url: str, *, params: dict[str, Any] | None = None) -> tuple[Any, httpx.Response]:
        """GET *url* and decode the body as JSON; returns ``(data, response)``."""
        resp = self.get(url, params=params)
        try:
            return resp.json(), resp
        except ValueError as exc:
            raise BackendError(f"invalid JSON from {url}") from exc

    def get_bytes(self, url: str) -> bytes:
        return self.get(url).content

    def close(self) -> None:
        self._client.close()
