"""Tests for the CLI: run output, dry run, auth, --output and error exits."""

import io
import json

import httpx
import pytest

from thanks_stars.__main__ import main
from thanks_stars.errors import GitHubApiError


# -- Helpers --


class FakeGitHub:
    def __init__(self, starred=()):
        self.starred = set(starred)
        self.star_requests: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/graphql":
            variables = json.loads(request.content)["variables"]
            key = (variables["owner"], variables["name"])
            return httpx.Response(200, json={"data": {"repository": {"viewerHasStarred": key in self.starred}}})
        if request.method == "PUT":
            self.star_requests.append(request.url.path.removeprefix("/user/starred/"))
            return httpx.Response(204)
        return httpx.Response(404)


@pytest.fixture
def fake_github(monkeypatch, tmp_path):
    """Route every HTTP call made by main() to an in-memory GitHub."""
    fake = FakeGitHub(starred={("example", "starred")})
    monkeypatch.setattr(
        "thanks_stars.__main__.build_http_client",
        lambda timeout: httpx.AsyncClient(transport=httpx.MockTransport(fake)),
    )
    monkeypatch.setattr("thanks_stars.__main__.load_dotenv", lambda: None)
    monkeypatch.setenv("GITHUB_TOKEN", "test-token")
    monkeypatch.setenv("THANKS_STARS_API_BASE", "https://api.test")
    monkeypatch.setenv("THANKS_STARS_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.delenv("THANKS_STARS_HTTP_TIMEOUT", raising=False)
    return fake


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    (root / "package.json").write_text(json.dumps({"dependencies": {"new": "1", "starred": "1"}}))
    for name in ("new", "starred"):
        manifest = root / "node_modules" / name / "package.json"
        manifest.parent.mkdir(parents=True)
        manifest.write_text(json.dumps({"repository": f"https://github.com/example/{name}"}))
    return root


def _run_main_error(monkeypatch, capsys, argv):
    """Run main() expecting SystemExit, return (exit_code, stderr)."""
    monkeypatch.setattr("sys.argv", ["thanks-stars", *argv])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code, capsys.readouterr().err


# -- Run --


class TestRun:
    def test_stars_and_reports(self, monkeypatch, capsys, fake_github, project):
        monkeypatch.setattr("sys.argv", ["thanks-stars", "--path", str(project)])
        main()

        out = capsys.readouterr().out
        assert "Checking 2 repositories..." in out
        assert "⭐ Starred https://github.com/example/new via package.json" in out
        assert (
            "✅ Already starred https://github.com/example/starred (already starred) via package.json"
        ) in out
        assert "✨ Completed! Starred 1 repository, 1 already starred." in out
        assert fake_github.star_requests == ["example/new"]

    def test_run_subcommand(self, monkeypatch, capsys, fake_github, project):
        monkeypatch.setattr("sys.argv", ["thanks-stars", "run", "-p", str(project)])
        main()
        assert "✨ Completed!" in capsys.readouterr().out

    def test_options_before_subcommand_survive(self, monkeypatch, capsys, fake_github, project):
        monkeypatch.setattr("sys.argv", ["thanks-stars", "--path", str(project), "--dry-run", "run"])
        main()
        assert "✨ Dry run complete!" in capsys.readouterr().out
        assert fake_github.star_requests == []

    def test_dry_run(self, monkeypatch, capsys, fake_github, project):
        monkeypatch.setattr("sys.argv", ["thanks-stars", "--path", str(project), "--dry-run"])
        main()

        out = capsys.readouterr().out
        assert "Dry run: evaluating 2 repositories..." in out
        assert "⭐ Would star https://github.com/example/new via package.json" in out
        assert "✨ Dry run complete! 1 repository would be starred, 1 already starred." in out
        assert fake_github.star_requests == []

    def test_framework_option(self, monkeypatch, capsys, fake_github, project):
        (project / "go.mod").write_text("module app\n\nrequire github.com/example/gomod v1.0.0\n")
        monkeypatch.setattr("sys.argv", ["thanks-stars", "-p", str(project), "--framework", "go"])
        main()

        out = capsys.readouterr().out
        assert "https://github.com/example/gomod via go.mod" in out
        assert "example/new" not in out

    def test_output_json(self, monkeypatch, capsys, fake_github, project, tmp_path):
        output = tmp_path / "summary.json"
        monkeypatch.setattr("sys.argv", ["thanks-stars", "-p", str(project), "-o", str(output)])
        main()

        data = json.loads(output.read_text())
        assert data["newly_starred"] == 1
        assert data["already_starred"] == 1
        assert data["dry_run"] is False
        assert [r["name"] for r in data["repositories"]] == ["new", "starred"]
        assert data["repositories"][0]["via"] == "package.json"
        assert "Results written to" in capsys.readouterr().err

    def test_nothing_to_star(self, monkeypatch, capsys, fake_github, tmp_path):
        (tmp_path / "package.json").write_text("{}")
        monkeypatch.setattr("sys.argv", ["thanks-stars", "-p", str(tmp_path)])
        main()
        assert "🌱 No repositories required starring today." in capsys.readouterr().out


# -- Errors --


class TestRunErrors:
    def test_no_frameworks(self, monkeypatch, capsys, fake_github, tmp_path):
        code, err = _run_main_error(monkeypatch, capsys, ["-p", str(tmp_path)])
        assert code == 1
        assert "no supported package managers" in err

    def test_path_not_a_directory(self, monkeypatch, capsys, fake_github, tmp_path):
        code, err = _run_main_error(monkeypatch, capsys, ["-p", str(tmp_path / "missing")])
        assert code == 1
        assert "is not a directory" in err

    def test_missing_token(self, monkeypatch, capsys, fake_github, project):
        monkeypatch.delenv("GITHUB_TOKEN")
        code, err = _run_main_error(monkeypatch, capsys, ["-p", str(project)])
        assert code == 1
        assert "Config error" in err
        assert "thanks-stars auth" in err

    def test_discovery_error(self, monkeypatch, capsys, fake_github, tmp_path):
        (tmp_path / "package.json").write_text("{not json")
        code, err = _run_main_error(monkeypatch, capsys, ["-p", str(tmp_path)])
        assert code == 1
        assert "Discovery error" in err
        assert "package.json" in err

    def test_unwritable_output(self, monkeypatch, capsys, fake_github, project, tmp_path):
        output = tmp_path / "missing-dir" / "summary.json"
        code, err = _run_main_error(monkeypatch, capsys, ["-p", str(project), "-o", str(output)])
        assert code == 1
        assert f"Error: failed to write {output}" in err
        assert "Traceback" not in err

    def test_github_error(self, monkeypatch, capsys, fake_github, project):
        async def fail(self, owner, name):
            raise GitHubApiError(401, "Bad credentials")

        monkeypatch.setattr("thanks_stars.github.GitHubClient.viewer_has_starred", fail)
        code, err = _run_main_error(monkeypatch, capsys, ["-p", str(project)])
        assert code == 1
        assert "GitHub error" in err
        assert "Bad credentials" in err


# -- Auth --


class TestAuth:
    def test_saves_token(self, monkeypatch, capsys, fake_github, tmp_path):
        monkeypatch.setattr("sys.argv", ["thanks-stars", "auth", "--token", "saved-token"])
        main()

        config_file = tmp_path / "config" / "config.env"
        assert f"Token saved to {config_file}" in capsys.readouterr().out
        assert "saved-token" in config_file.read_text()

    def test_saved_token_is_used(self, monkeypatch, capsys, fake_github, project):
        monkeypatch.setattr("sys.argv", ["thanks-stars", "auth", "--token", "saved-token"])
        main()
        monkeypatch.delenv("GITHUB_TOKEN")

        monkeypatch.setattr("sys.argv", ["thanks-stars", "-p", str(project)])
        main()
        assert "✨ Completed!" in capsys.readouterr().out

    def test_prompts_for_token(self, monkeypatch, capsys, fake_github, tmp_path):
        monkeypatch.setattr("sys.stdin", io.StringIO("prompted-token\n"))
        monkeypatch.setattr("sys.argv", ["thanks-stars", "auth"])
        main()
        assert "prompted-token" in (tmp_path / "config" / "config.env").read_text()

    def test_empty_token(self, monkeypatch, capsys, fake_github):
        monkeypatch.setattr("sys.stdin", io.StringIO("\n"))
        code, err = _run_main_error(monkeypatch, capsys, ["auth"])
        assert code == 1
        assert "token must not be empty" in err
