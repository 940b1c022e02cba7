"""GitHub client implementing the star query and star mutation.

``viewer_has_starred`` is one GraphQL query per repository; ``star`` is a REST
``PUT /user/starred/{owner}/{repo}``. Transient failures (transport errors,
429, 5xx) are retried a bounded number of times; everything else surfaces
immediately as GitHubApiError.
"""

import json
import logging
import time

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .errors import GitHubApiError, TransientGitHubError
from .http_client import USER_AGENT

log = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.github.com"
GITHUB_MAX_ATTEMPTS = 3

VIEWER_HAS_STARRED_QUERY = """
query ViewerHasStarred($owner: String!, $name: String!) {
  repository(owner: $owner, name: $name) {
    viewerHasStarred
  }
}
"""


class GitHubClient:
    """Star API backed by an injected ``httpx.AsyncClient``.

    The caller owns the HTTP client's lifecycle. Usable directly or as an
    async context manager, which logs call statistics on exit:

        async with GitHubClient(token, client) as github:
            if not await github.viewer_has_starred("owner", "repo"):
                await github.star("owner", "repo")
    """

    def __init__(self, token: str, client: httpx.AsyncClient, base_url: str = DEFAULT_API_BASE):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": USER_AGENT,
        }
        self._call_count = 0
        self._total_time = 0.0

    def __repr__(self) -> str:
        return f"GitHubClient(base_url={self._base_url!r}, token='***')"

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc):
        log.info("GitHub session: %d calls, %.1fs total", self._call_count, self._total_time)

    async def viewer_has_starred(self, owner: str, name: str) -> bool:
        response = await self._send(
            "POST",
            f"{self._base_url}/graphql",
            json={
                "query": VIEWER_HAS_STARRED_QUERY,
                "variables": {"owner": owner, "name": name},
            },
        )
        if not response.is_success:
            raise GitHubApiError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise GitHubApiError(response.status_code, f"invalid JSON response: {response.text}") from exc

        if payload.get("errors"):
            raise GitHubApiError(response.status_code, json.dumps(payload["errors"]))

        repository = (payload.get("data") or {}).get("repository")
        if repository is None:
            raise GitHubApiError(response.status_code, f"repository {owner}/{name} not found")
        return bool(repository.get("viewerHasStarred"))

    async def star(self, owner: str, name: str) -> None:
        response = await self._send(
            "PUT",
            f"{self._base_url}/user/starred/{owner}/{name}",
            content=b"",
        )
        # 304: already starred as a side effect of something else
        if response.is_success or response.status_code == 304:
            return
        raise GitHubApiError(response.status_code, response.text)

    @retry(
        stop=stop_after_attempt(GITHUB_MAX_ATTEMPTS),
        wait=wait_exponential(multiplier=0.5, max=4),
        retry=retry_if_exception_type(TransientGitHubError),
        before_sleep=before_sleep_log(log, logging.WARNING),
        reraise=True,
    )
    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        t0 = time.monotonic()
        try:
            response = await self._client.request(method, url, headers=self._headers, **kwargs)
        except httpx.TransportError as exc:
            raise TransientGitHubError(f"{method} {url} failed: {exc}") from exc
        finally:
            self._call_count += 1
            self._total_time += time.monotonic() - t0

        log.debug("%s %s → %d", method, url, response.status_code)
        if response.status_code == 429 or response.status_code >= 500:
            raise TransientGitHubError(
                f"GitHub API responded with status {response.status_code}: {response.text}",
                status=response.status_code,
            )
        return response
