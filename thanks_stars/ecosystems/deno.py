"""Deno: GitHub references anywhere in deno.lock."""

from pathlib import Path
from typing import Any, Iterator, Optional
from urllib.parse import urlsplit

from ..errors import DiscoveryError
from ..identity import parse_github_repository, repository_from_owner_repo
from ..models import Framework, Repository
from .base import FileDiscoverer, read_json

VIA = "deno.lock"
_GITHUB_CONTENT_HOSTS = {"raw.githubusercontent.com", "codeload.github.com"}


class DenoDiscoveryError(DiscoveryError):
    framework = Framework.DENO


class DenoDiscoverer(FileDiscoverer):
    framework = Framework.DENO

    def scan(self, project_root: Path) -> list[Repository]:
        lock = read_json(project_root / "deno.lock", DenoDiscoveryError, missing_ok=True)
        if lock is None:
            return []

        repositories = []
        seen: set[tuple[str, str]] = set()
        for value in _strings(lock):
            repository = _repository_from_value(value)
            if repository is not None and repository.key not in seen:
                seen.add(repository.key)
                repositories.append(repository.with_via(VIA))
        return repositories


def _strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, list):
        for item in value:
            yield from _strings(item)
    elif isinstance(value, dict):
        # v3+ locks key the "remote" section by module URL
        for key, item in value.items():
            yield key
            yield from _strings(item)


def _repository_from_value(value: str) -> Optional[Repository]:
    repository = parse_github_repository(value)
    if repository is not None:
        return repository

    try:
        parts = urlsplit(value)
        host = parts.hostname
    except ValueError:
        return None
    if host not in _GITHUB_CONTENT_HOSTS:
        return None
    segments = [segment for segment in parts.path.split("/") if segment]
    if len(segments) < 2:
        return None
    return repository_from_owner_repo(segments[0], segments[1])
