"""Tests for the GitHub star client against a mocked transport."""

import json

import httpx
import pytest

from thanks_stars.errors import GitHubApiError, TransientGitHubError
from thanks_stars.github import GITHUB_MAX_ATTEMPTS, GitHubClient
from thanks_stars.http_client import build_http_client


# -- Helpers --


def _client(handler):
    """GitHubClient over a MockTransport; returns (github, requests)."""
    requests: list[httpx.Request] = []

    def record(request):
        requests.append(request)
        return handler(request)

    http = build_http_client(transport=httpx.MockTransport(record))
    return GitHubClient("test-token", http, base_url="https://api.test"), requests


def _graphql(starred):
    return httpx.Response(200, json={"data": {"repository": {"viewerHasStarred": starred}}})


# -- Tests --


class TestViewerHasStarred:
    @pytest.mark.parametrize("starred", [True, False])
    async def test_returns_flag(self, starred):
        github, requests = _client(lambda request: _graphql(starred))
        assert await github.viewer_has_starred("owner", "repo") is starred

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.test/graphql"
        body = json.loads(request.content)
        assert body["variables"] == {"owner": "owner", "name": "repo"}
        assert "viewerHasStarred" in body["query"]

    async def test_headers(self):
        github, requests = _client(lambda request: _graphql(False))
        await github.viewer_has_starred("owner", "repo")

        headers = requests[0].headers
        assert headers["Authorization"] == "Bearer test-token"
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert headers["User-Agent"] == "thanks-stars"

    async def test_graphql_errors_raise(self):
        github, _ = _client(lambda request: httpx.Response(
            200, json={"data": None, "errors": [{"message": "Could not resolve to a Repository"}]},
        ))
        with pytest.raises(GitHubApiError, match="Could not resolve to a Repository") as exc_info:
            await github.viewer_has_starred("owner", "missing")
        assert exc_info.value.status == 200

    async def test_null_repository_raises(self):
        github, _ = _client(lambda request: httpx.Response(200, json={"data": {"repository": None}}))
        with pytest.raises(GitHubApiError, match="owner/missing"):
            await github.viewer_has_starred("owner", "missing")

    async def test_unauthorized(self):
        github, requests = _client(lambda request: httpx.Response(401, text="Bad credentials"))
        with pytest.raises(GitHubApiError) as exc_info:
            await github.viewer_has_starred("owner", "repo")
        assert exc_info.value.status == 401
        assert str(exc_info.value) == "GitHub API responded with status 401: Bad credentials"
        assert len(requests) == 1

    async def test_invalid_json(self):
        github, _ = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(GitHubApiError, match="invalid JSON"):
            await github.viewer_has_starred("owner", "repo")


class TestStar:
    @pytest.mark.parametrize("status", [204, 200, 304])
    async def test_success_statuses(self, status):
        github, requests = _client(lambda request: httpx.Response(status))
        await github.star("owner", "repo")

        request = requests[0]
        assert request.method == "PUT"
        assert str(request.url) == "https://api.test/user/starred/owner/repo"
        assert request.headers["Authorization"] == "Bearer test-token"

    async def test_forbidden(self):
        github, _ = _client(lambda request: httpx.Response(403, text="Resource not accessible"))
        with pytest.raises(GitHubApiError, match="status 403: Resource not accessible"):
            await github.star("owner", "repo")


class TestRetry:
    async def test_retries_server_error_then_succeeds(self):
        responses = iter([httpx.Response(502, text="bad gateway"), httpx.Response(204)])
        github, requests = _client(lambda request: next(responses))

        await github.star("owner", "repo")
        assert len(requests) == 2

    async def test_gives_up_after_max_attempts(self):
        github, requests = _client(lambda request: httpx.Response(503, text="unavailable"))
        with pytest.raises(TransientGitHubError) as exc_info:
            await github.star("owner", "repo")
        assert exc_info.value.status == 503
        assert len(requests) == GITHUB_MAX_ATTEMPTS

    async def test_transport_error_is_transient(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        github, requests = _client(handler)
        with pytest.raises(TransientGitHubError, match="connection refused"):
            await github.viewer_has_starred("owner", "repo")
        assert len(requests) == GITHUB_MAX_ATTEMPTS

    async def test_client_errors_are_not_retried(self):
        github, requests = _client(lambda request: httpx.Response(404, text="Not Found"))
        with pytest.raises(GitHubApiError):
            await github.star("owner", "repo")
        assert len(requests) == 1


class TestSession:
    async def test_context_manager_and_repr(self):
        github, _ = _client(lambda request: _graphql(True))
        async with github as session:
            assert await session.viewer_has_starred("owner", "repo")
        assert "test-token" not in repr(github)
