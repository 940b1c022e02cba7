"""Shared plumbing for ecosystem discoverers.

A discoverer reads one ecosystem's files under the project root (and, for
some ecosystems, that ecosystem's package registry) and returns the GitHub
repositories it can attribute. Failures are raised as the ecosystem's own
DiscoveryError subclass; a candidate that simply isn't a GitHub reference is
skipped.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Protocol

import httpx

from ..errors import DiscoveryError
from ..identity import parse_github_repository
from ..models import Framework, Repository

log = logging.getLogger(__name__)


class Discoverer(Protocol):
    framework: Framework

    async def discover(self, project_root: Path) -> list[Repository]: ...


DiscovererFactory = Callable[[httpx.AsyncClient], Discoverer]


class FileDiscoverer:
    """Base for discoverers that only read files under the project root.

    ``scan`` does blocking file I/O; ``discover`` runs it in a worker thread.
    """

    framework: Framework

    async def discover(self, project_root: Path) -> list[Repository]:
        return await asyncio.to_thread(self.scan, project_root)

    def scan(self, project_root: Path) -> list[Repository]:
        raise NotImplementedError


class RegistryError(Exception):
    """A package registry could not be reached or answered unexpectedly."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def read_text(
    path: Path,
    error_cls: type[DiscoveryError],
    missing_ok: bool = False,
) -> Optional[str]:
    """Read a UTF-8 file; None if it is absent and ``missing_ok``."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        if missing_ok:
            return None
        raise error_cls(f"failed to read {path}", path=path) from exc
    except OSError as exc:
        raise error_cls(f"failed to read {path}", path=path) from exc


def read_json(
    path: Path,
    error_cls: type[DiscoveryError],
    missing_ok: bool = False,
) -> Any:
    content = read_text(path, error_cls, missing_ok=missing_ok)
    if content is None:
        return None
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise error_cls(f"failed to parse {path} as JSON", path=path) from exc


async def fetch_registry(
    client: httpx.AsyncClient,
    url: str,
    accept: str = "application/json",
) -> Optional[httpx.Response]:
    """GET a registry document. None on 404, RegistryError on anything else unexpected."""
    try:
        response = await client.get(url, headers={"Accept": accept})
    except httpx.HTTPError as exc:
        raise RegistryError(f"GET {url} failed: {exc}") from exc

    if response.status_code == 404:
        log.debug("%s not found in registry", url)
        return None
    if not response.is_success:
        raise RegistryError(
            f"unexpected status {response.status_code} from {url}",
            status=response.status_code,
        )
    return response


def first_github_repository(candidates: Iterable[Optional[str]], via: str) -> Optional[Repository]:
    """Return the first candidate that parses as a GitHub repository, labelled ``via``."""
    for candidate in candidates:
        if not candidate:
            continue
        repository = parse_github_repository(candidate)
        if repository is not None:
            return repository.with_via(via)
    return None


def unique_urls(values: Iterable[Optional[str]]) -> list[str]:
    """Trim, drop empties, and dedupe case-insensitively, preserving order."""
    seen: set[str] = set()
    urls: list[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        trimmed = value.strip()
        if trimmed and trimmed.lower() not in seen:
            seen.add(trimmed.lower())
            urls.append(trimmed)
    return urls
