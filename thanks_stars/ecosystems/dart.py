"""Dart: pubspec.yaml git dependencies directly, hosted ones through pub.dev."""

import logging
from pathlib import Path
from typing import Any, Optional

import httpx
import yaml

from ..errors import DiscoveryError
from ..identity import parse_github_repository
from ..models import Framework, Repository
from .base import RegistryError, fetch_registry, first_github_repository, read_text, unique_urls

log = logging.getLogger(__name__)

VIA = "pubspec.yaml"
DEFAULT_BASE_URL = "https://pub.dev/api/packages"
_DEPENDENCY_SECTIONS = ("dependencies", "dev_dependencies", "dependency_overrides")
_PUBSPEC_URL_FIELDS = ("repository", "homepage", "issue_tracker", "documentation")


class DartDiscoveryError(DiscoveryError):
    framework = Framework.DART


class DartDiscoverer:
    framework = Framework.DART

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_BASE_URL):
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def discover(self, project_root: Path) -> list[Repository]:
        path = project_root / VIA
        content = read_text(path, DartDiscoveryError)
        try:
            pubspec = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise DartDiscoveryError(f"failed to parse {path} as YAML", path=path) from exc

        hosted: set[str] = set()
        git_urls: set[str] = set()
        if isinstance(pubspec, dict):
            for section in _DEPENDENCY_SECTIONS:
                deps = pubspec.get(section)
                if isinstance(deps, dict):
                    _collect_dependencies(deps, hosted, git_urls)

        repositories = []
        for url in sorted(git_urls):
            repository = parse_github_repository(url)
            if repository is not None:
                repositories.append(repository.with_via(VIA))

        for name in sorted(hosted):
            try:
                candidates = await self.fetch_candidates(name)
            except RegistryError as exc:
                raise DartDiscoveryError(f"failed to fetch metadata for package {name}") from exc
            repository = first_github_repository(candidates, VIA)
            if repository is not None:
                repositories.append(repository)
        return repositories

    async def fetch_candidates(self, name: str) -> list[str]:
        response = await fetch_registry(self._client, f"{self._base_url}/{name}")
        if response is None:
            return []
        try:
            document = response.json()
        except ValueError as exc:
            raise RegistryError(f"invalid JSON from pub.dev for {name}") from exc

        latest = document.get("latest") if isinstance(document, dict) else None
        pubspec = latest.get("pubspec") if isinstance(latest, dict) else None
        if not isinstance(pubspec, dict):
            return []
        return unique_urls(pubspec.get(field) for field in _PUBSPEC_URL_FIELDS)


def _collect_dependencies(deps: dict, hosted: set[str], git_urls: set[str]) -> None:
    for name, details in deps.items():
        if not isinstance(name, str):
            continue
        if isinstance(details, dict):
            url = _git_url(details.get("git"))
            if url:
                git_urls.add(url)
                continue
            if "sdk" in details or "path" in details:
                continue
        hosted.add(name)


def _git_url(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("url"), str):
        return value["url"]
    return None
