"""Ruby: git remotes and RubyGems metadata for gems pinned in Gemfile.lock.

Gems sourced from git carry their remote in the lockfile's GIT sections.
Gems from a gem server are looked up on RubyGems, whose gem document names
the source repository under ``source_code_uri`` (or ``homepage_uri`` /
``bug_tracker_uri`` for older gems).
"""

import logging
from pathlib import Path
from typing import Optional

import httpx

from ..errors import DiscoveryError
from ..models import Framework, Repository
from .base import RegistryError, fetch_registry, first_github_repository, read_text

log = logging.getLogger(__name__)

VIA = "Gemfile.lock"
DEFAULT_BASE_URL = "https://rubygems.org"
_METADATA_KEYS = ("source_code_uri", "homepage_uri", "bug_tracker_uri")


class RubyDiscoveryError(DiscoveryError):
    framework = Framework.RUBY


class RubyDiscoverer:
    framework = Framework.RUBY

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_BASE_URL):
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def discover(self, project_root: Path) -> list[Repository]:
        content = read_text(project_root / "Gemfile.lock", RubyDiscoveryError, missing_ok=True)
        if content is None:
            return []

        lockfile = parse_lockfile(content)
        repositories = []
        seen: set[tuple[str, str]] = set()

        def add(repository: Optional[Repository]) -> None:
            if repository is not None and repository.key not in seen:
                seen.add(repository.key)
                repositories.append(repository)

        for remote in lockfile.git_remotes:
            add(first_github_repository([remote], VIA))

        for gem in lockfile.gems:
            try:
                candidates = await self.fetch_candidates(gem)
            except RegistryError as exc:
                raise RubyDiscoveryError(f"failed to fetch metadata for gem {gem}") from exc
            add(first_github_repository(candidates, VIA))

        return repositories

    async def fetch_candidates(self, gem: str) -> list[str]:
        response = await fetch_registry(self._client, f"{self._base_url}/api/v1/gems/{gem}.json")
        if response is None:
            return []
        try:
            document = response.json()
        except ValueError as exc:
            raise RegistryError(f"invalid JSON from RubyGems for {gem}") from exc
        if not isinstance(document, dict):
            return []
        return [document[key] for key in _METADATA_KEYS if isinstance(document.get(key), str)]


class Lockfile:
    def __init__(self):
        self.git_remotes: list[str] = []
        self.gems: list[str] = []


def parse_lockfile(content: str) -> Lockfile:
    """Collect GIT remotes and top-level GEM specs from a Gemfile.lock."""
    lockfile = Lockfile()
    section = None
    in_specs = False
    for line in content.splitlines():
        if not line.strip():
            section = None
            in_specs = False
            continue
        if not line.startswith(" "):
            section = line.strip()
            in_specs = False
            continue

        stripped = line.strip()
        if section == "GIT" and stripped.startswith("remote:"):
            lockfile.git_remotes.append(stripped[len("remote:"):].strip())
        elif section == "GEM":
            if stripped == "specs:":
                in_specs = True
            # Four-space indent is a gem; six-space lines are its own dependencies
            elif in_specs and line.startswith("    ") and not line.startswith("      "):
                name = stripped.split(" ", 1)[0]
                if name and name not in lockfile.gems:
                    lockfile.gems.append(name)
    return lockfile
