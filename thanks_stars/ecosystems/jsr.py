"""JSR: jsr: specifiers from Deno/JSR manifests, resolved via jsr.io package pages."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

import httpx

from ..errors import DiscoveryError
from ..models import Framework, Repository
from .base import RegistryError, fetch_registry, first_github_repository, read_text

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://jsr.io"
MANIFESTS = ("jsr.json", "deno.json", "deno.jsonc")

_GITHUB_ANCHOR_RE = re.compile(r'<a[^>]*aria-label\s*=\s*"GitHub repository"[^>]*>')
_HREF_RE = re.compile(r'href\s*=\s*"([^"]+)"')
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


class JsrDiscoveryError(DiscoveryError):
    framework = Framework.JSR


class JsrDiscoverer:
    framework = Framework.JSR

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_BASE_URL):
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def discover(self, project_root: Path) -> list[Repository]:
        packages: dict[str, str] = {}
        for manifest in MANIFESTS:
            content = read_text(project_root / manifest, JsrDiscoveryError, missing_ok=True)
            if content is None:
                continue
            try:
                data = json.loads(_strip_comments(content) if manifest.endswith(".jsonc") else content)
            except json.JSONDecodeError as exc:
                raise JsrDiscoveryError(
                    f"failed to parse {project_root / manifest} as JSON",
                    path=project_root / manifest,
                ) from exc
            for package in sorted(collect_jsr_packages(data)):
                packages.setdefault(package, manifest)

        repositories = []
        for package, via in packages.items():
            try:
                url = await self.fetch_repository_url(package)
            except RegistryError as exc:
                raise JsrDiscoveryError(f"failed to fetch metadata for package {package}") from exc
            repository = first_github_repository([url], via)
            if repository is not None:
                repositories.append(repository)
        return repositories

    async def fetch_repository_url(self, package: str) -> Optional[str]:
        response = await fetch_registry(
            self._client,
            self._package_url(package),
            accept="text/html,application/xhtml+xml",
        )
        if response is None:
            return None
        return extract_github_repository(response.text)

    def _package_url(self, package: str) -> str:
        path = package.strip().lstrip("/")
        if path.startswith("@"):
            return f"{self._base_url}/%40{path[1:]}"
        return f"{self._base_url}/{path}"


def parse_jsr_specifier(specifier: str) -> Optional[str]:
    """Package name of a jsr: specifier, e.g. jsr:@std/path@^1.0 → @std/path."""
    if not specifier.startswith("jsr:"):
        return None
    return normalize_jsr_name(specifier[len("jsr:"):])


def normalize_jsr_name(name: str) -> Optional[str]:
    trimmed = name.strip()
    if not trimmed:
        return None
    idx = trimmed.rfind("@")
    if idx > 0 and "/" not in trimmed[idx + 1:]:
        return trimmed[:idx]
    return trimmed


def collect_jsr_packages(value: Any) -> set[str]:
    packages: set[str] = set()
    _collect(value, packages)
    return packages


def _collect(value: Any, packages: set[str]) -> None:
    if isinstance(value, str):
        package = parse_jsr_specifier(value)
        if package:
            packages.add(package)
    elif isinstance(value, list):
        for item in value:
            _collect(item, packages)
    elif isinstance(value, dict):
        imports = value.get("imports")
        if isinstance(imports, dict):
            for key in imports:
                package = parse_jsr_specifier(key)
                if package:
                    packages.add(package)
        # Dependency sections and import maps are covered by their jsr: values
        for item in value.values():
            _collect(item, packages)


def extract_github_repository(html: str) -> Optional[str]:
    anchor = _GITHUB_ANCHOR_RE.search(html)
    if anchor is None:
        return None
    href = _HREF_RE.search(anchor.group(0))
    return href.group(1) if href else None


def _strip_comments(content: str) -> str:
    content = _BLOCK_COMMENT_RE.sub("", content)
    return "\n".join(
        line for line in content.splitlines() if not line.strip().startswith("//")
    )
