"""End-to-end tests for the run pipeline."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from thanks_stars.errors import DiscoveryError, NoFrameworksError
from thanks_stars.github import GitHubClient
from thanks_stars.models import Framework, Repository
from thanks_stars.pipeline import run
from thanks_stars.reconcile import RunEventHandler


# -- Helpers --


class FakeGitHub:
    """Minimal GitHub API: GraphQL star query plus PUT /user/starred."""

    def __init__(self, starred=()):
        self.starred = set(starred)
        self.star_requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/graphql":
            variables = json.loads(request.content)["variables"]
            key = (variables["owner"], variables["name"])
            return httpx.Response(200, json={"data": {"repository": {"viewerHasStarred": key in self.starred}}})
        if request.method == "PUT" and request.url.path.startswith("/user/starred/"):
            owner, name = request.url.path.removeprefix("/user/starred/").split("/")
            self.star_requests.append(f"{owner}/{name}")
            self.starred.add((owner, name))
            return httpx.Response(204)
        return httpx.Response(404)


def _node_project(root, deps):
    (root / "package.json").write_text(json.dumps({"dependencies": {name: "1" for name in deps}}))
    for name, repository in deps.items():
        manifest = root / "node_modules" / name / "package.json"
        manifest.parent.mkdir(parents=True)
        manifest.write_text(json.dumps({"repository": repository}))


def _repo(owner, name, via):
    return Repository(owner=owner, name=name, url=f"https://github.com/{owner}/{name}", via=via)


class Collector(RunEventHandler):
    def __init__(self):
        self.lines = []

    def on_starred(self, repository, already_starred, index, total):
        self.lines.append((repository.key, repository.via, already_starred, index, total))


# -- Tests --


class TestRun:
    async def test_stars_node_and_go_dependencies_once(self, tmp_path):
        _node_project(tmp_path, {
            "dep": "https://github.com/example/dep",
            "shared": "https://github.com/example/shared.git",
        })
        (tmp_path / "go.mod").write_text(
            "module app\n\nrequire (\n\tgithub.com/example/shared v1.0.0\n\tgithub.com/example/gomod v1.0.0\n)\n"
        )
        fake = FakeGitHub(starred={("example", "dep")})
        handler = Collector()

        async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as client:
            github = GitHubClient("t", client, base_url="https://api.test")
            summary = await run(tmp_path, github, client, handler=handler)

        assert handler.lines == [
            (("example", "dep"), "package.json", True, 1, 3),
            (("example", "shared"), "package.json", False, 2, 3),
            (("example", "gomod"), "go.mod", False, 3, 3),
        ]
        assert fake.star_requests == ["example/shared", "example/gomod"]
        assert summary.newly_starred_count == 2
        assert summary.already_starred_count == 1

    async def test_second_run_is_idempotent(self, tmp_path):
        _node_project(tmp_path, {"dep": "https://github.com/example/dep"})
        fake = FakeGitHub()

        async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as client:
            github = GitHubClient("t", client, base_url="https://api.test")
            await run(tmp_path, github, client)
            second = await run(tmp_path, github, client)

        assert fake.star_requests == ["example/dep"]
        assert second.already_starred_count == 1

    async def test_dry_run(self, tmp_path):
        _node_project(tmp_path, {"dep": "https://github.com/example/dep"})
        fake = FakeGitHub()

        async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as client:
            github = GitHubClient("t", client, base_url="https://api.test")
            summary = await run(tmp_path, github, client, dry_run=True)

        assert fake.star_requests == []
        assert summary.newly_starred_count == 1

    async def test_framework_override(self, tmp_path):
        _node_project(tmp_path, {"dep": "https://github.com/example/dep"})
        (tmp_path / "go.mod").write_text("module app\n\nrequire github.com/example/gomod v1.0.0\n")
        fake = FakeGitHub()

        async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as client:
            github = GitHubClient("t", client, base_url="https://api.test")
            summary = await run(tmp_path, github, client, frameworks=[Framework.GO])

        assert [s.repository.key for s in summary.starred] == [("example", "gomod")]

    async def test_no_frameworks(self, tmp_path):
        async with httpx.AsyncClient(transport=httpx.MockTransport(FakeGitHub())) as client:
            github = GitHubClient("t", client, base_url="https://api.test")
            with pytest.raises(NoFrameworksError, match="no supported package managers"):
                await run(tmp_path, github, client)

    async def test_no_repositories(self, tmp_path):
        (tmp_path / "package.json").write_text("{}")
        fake = FakeGitHub()

        async with httpx.AsyncClient(transport=httpx.MockTransport(fake)) as client:
            github = GitHubClient("t", client, base_url="https://api.test")
            summary = await run(tmp_path, github, client)

        assert summary.starred == ()

    async def test_discovery_failure_stops_before_reconciliation(self, tmp_path):
        class BrokenManifest(DiscoveryError):
            framework = Framework.NODE

        class Failing:
            framework = Framework.NODE

            async def discover(self, project_root):
                raise BrokenManifest("failed to parse package.json")

        class Succeeding:
            framework = Framework.GO

            async def discover(self, project_root):
                return [_repo("example", "gomod", "go.mod")]

        api = AsyncMock()
        registry = {
            Framework.NODE: lambda client: Failing(),
            Framework.GO: lambda client: Succeeding(),
        }

        async with httpx.AsyncClient(transport=httpx.MockTransport(FakeGitHub())) as client:
            with pytest.raises(BrokenManifest, match="package.json"):
                await run(
                    tmp_path, api, client,
                    frameworks=[Framework.NODE, Framework.GO], registry=registry,
                )

        api.viewer_has_starred.assert_not_awaited()
        api.star.assert_not_awaited()
