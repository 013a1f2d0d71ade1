"""GitHub REST API client — release metadata and pull requests.

Only the two calls the release flow needs:

1. Look up a published release by tag
2. Open a pull request from a pushed branch
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from relnotes.errors import ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
API_VERSION = "2022-11-28"


@dataclass
class Release:
    """The parts of a GitHub release used to build a changelog entry."""

    tag: str
    name: str
    body: str
    published_at: datetime | None
    html_url: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Release:
        published = data.get("published_at")
        return cls(
            tag=data.get("tag_name", ""),
            name=data.get("name") or data.get("tag_name", ""),
            body=data.get("body") or "",
            published_at=datetime.fromisoformat(published) if published else None,
            html_url=data.get("html_url", ""),
        )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text[:200]


class GitHubClient:
    """Thin async wrapper around ``httpx.AsyncClient``.

    Usage::

        async with GitHubClient(token) as gh:
            release = await gh.fetch_release("owner", "repo", "elements_v1.2.0")
    """

    def __init__(
        self,
        token: str | None = None,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_release(self, owner: str, repo: str, tag: str) -> Release:
        """Fetch the release published for *tag*."""
        data = await self._request("GET", f"/repos/{owner}/{repo}/releases/tags/{tag}")
        release = Release.from_api(data)
        logger.info("Fetched release %s from %s/%s", release.tag or tag, owner, repo)
        return release

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        head: str,
        base: str,
        title: str,
        body: str = "",
    ) -> str:
        """Open a pull request from *head* into *base*; return its URL."""
        data = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={"title": title, "head": head, "base": base, "body": body},
        )
        url = str(data.get("html_url", ""))
        logger.info("Opened pull request %s", url)
        return url

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            msg = f"GitHub API {method} {path} returned {status}: {_error_message(e.response)}"
            raise ExternalServiceError(msg, status_code=status) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"GitHub API {method} {path} failed: {e}") from e
        data = resp.json()
        if not isinstance(data, dict):
            raise ExternalServiceError(f"GitHub API {method} {path} returned unexpected payload")
        return data
