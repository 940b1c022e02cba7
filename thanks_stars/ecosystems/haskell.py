"""Haskell: package.yaml / *.cabal dependencies resolved through Hackage."""

import logging
from pathlib import Path
from typing import Any, Iterator, Optional

import httpx
import yaml

from ..errors import DiscoveryError
from ..models import Framework, Repository
from .base import RegistryError, fetch_registry, first_github_repository, read_text, unique_urls

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://hackage.haskell.org/package"
_DEPENDS_FIELDS = ("build-depends:", "build-tool-depends:")


class HaskellDiscoveryError(DiscoveryError):
    framework = Framework.HASKELL


class HaskellDiscoverer:
    framework = Framework.HASKELL

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_BASE_URL):
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def discover(self, project_root: Path) -> list[Repository]:
        dependencies: dict[str, set[str]] = {}

        def add(name: str, via: str) -> None:
            dependencies.setdefault(name, set()).add(via)

        for name in self._package_yaml_dependencies(project_root):
            add(name, "package.yaml")
        for cabal_file in find_cabal_files(project_root):
            content = read_text(cabal_file, HaskellDiscoveryError)
            for name in parse_cabal_dependencies(content):
                add(name, cabal_file.name)

        repositories = []
        for name in sorted(dependencies):
            try:
                candidates = await self.fetch_candidates(name)
            except RegistryError as exc:
                raise HaskellDiscoveryError(f"failed to fetch metadata for package {name}") from exc
            repository = first_github_repository(candidates, min(dependencies[name]))
            if repository is not None:
                repositories.append(repository)
        return repositories

    async def fetch_candidates(self, name: str) -> list[str]:
        response = await fetch_registry(
            self._client, f"{self._base_url}/{name}/{name}.cabal", accept="text/plain",
        )
        if response is None:
            return []
        return cabal_candidate_urls(response.text)

    def _package_yaml_dependencies(self, project_root: Path) -> list[str]:
        path = project_root / "package.yaml"
        content = read_text(path, HaskellDiscoveryError, missing_ok=True)
        if content is None:
            return []
        try:
            document = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise HaskellDiscoveryError(f"failed to parse {path} as YAML", path=path) from exc
        if not isinstance(document, dict):
            return []
        return [
            name for name in map(parse_dependency_name, _yaml_dependency_entries(document.get("dependencies")))
            if name
        ]


def _yaml_dependency_entries(deps: Any) -> Iterator[str]:
    if isinstance(deps, str):
        yield deps
    elif isinstance(deps, list):
        for entry in deps:
            if isinstance(entry, str):
                yield entry
            elif isinstance(entry, dict):
                name = entry.get("package") or entry.get("name")
                if isinstance(name, str):
                    yield name


def find_cabal_files(project_root: Path) -> list[Path]:
    """``*.cabal`` files directly under ``project_root``; the extension match ignores case."""
    try:
        entries = list(project_root.iterdir())
    except OSError:
        return []
    return sorted(
        entry for entry in entries
        if entry.suffix.lower() == ".cabal" and entry.is_file()
    )


def parse_cabal_dependencies(content: str) -> set[str]:
    """Names listed under build-depends / build-tool-depends, including continuation lines."""
    dependencies: set[str] = set()
    lines = content.splitlines()
    i = 0
    while i < len(lines):
        trimmed = lines[i].strip()
        i += 1
        field = next((f for f in _DEPENDS_FIELDS if trimmed.startswith(f)), None)
        if field is None:
            continue

        entries = [trimmed[len(field):]]
        while i < len(lines):
            line = lines[i]
            next_trimmed = line.strip()
            if next_trimmed.startswith("--"):
                i += 1
                continue
            if next_trimmed.startswith(","):
                entries.append(next_trimmed)
            elif line[:1] in (" ", "\t") and ":" not in next_trimmed:
                entries.append(", " + next_trimmed)
            else:
                break
            i += 1

        for entry in " ".join(entries).split(","):
            name = parse_dependency_name(entry.split("--", 1)[0])
            if name:
                dependencies.add(name)
    return dependencies


def parse_dependency_name(value: str) -> Optional[str]:
    """``base >=4 && <5`` → ``base``; version-only fragments yield None."""
    trimmed = value.strip()
    if not trimmed or trimmed[0].isdigit():
        return None
    for separator in (" ", "\t", "(", ":"):
        trimmed = trimmed.split(separator, 1)[0]
    return trimmed.strip() or None


def cabal_candidate_urls(cabal: str) -> list[str]:
    """homepage, bug-reports and source-repository locations from a .cabal file."""
    urls = []
    in_source_repo = False
    for line in cabal.splitlines():
        trimmed = line.strip()
        if trimmed.startswith("--"):
            continue
        if not trimmed:
            in_source_repo = False
            continue
        if trimmed.startswith("source-repository "):
            in_source_repo = True
            continue
        if line[:1] not in (" ", "\t"):
            in_source_repo = False

        for field in ("homepage:", "bug-reports:"):
            if trimmed.startswith(field):
                urls.append(trimmed[len(field):])
        if in_source_repo and trimmed.startswith("location:"):
            urls.append(trimmed[len("location:"):])
    return unique_urls(urls)
