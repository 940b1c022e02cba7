"""Python: declared packages resolved through local virtualenvs, then PyPI.

Package names come from, in order: ``uv.lock`` registry packages,
``requirements.txt``, ``pyproject.toml`` ``[project].dependencies`` and the
``Pipfile`` package tables. A name is attributed to the first file that
declares it.

Each package is looked up in the site-packages of any virtualenv under the
project root (``.venv``, ``venv`` or any directory holding ``pyvenv.cfg``),
reading ``Home-page`` and ``Project-URL`` from its installed metadata. Packages
that are not installed, or whose metadata names no GitHub repository, fall
back to the PyPI JSON API.
"""

import asyncio
import logging
import tomllib
from pathlib import Path
from typing import Iterable, Optional

import httpx

from ..errors import DiscoveryError
from ..identity import parse_github_repository
from ..models import Framework, Repository
from .base import RegistryError, fetch_registry, first_github_repository, read_text

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://pypi.org"
_REQUIREMENT_DELIMITERS = "[=<>!~;@("
_METADATA_FIELDS = ("Home-page:", "Project-URL:")


class PythonDiscoveryError(DiscoveryError):
    framework = Framework.PYTHON


class PythonDiscoverer:
    framework = Framework.PYTHON

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_BASE_URL):
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def discover(self, project_root: Path) -> list[Repository]:
        packages = await asyncio.to_thread(self.declared_packages, project_root)
        site_packages = await asyncio.to_thread(find_all_site_packages, project_root)

        repositories = []
        seen: set[str] = set()
        for package, via in packages.items():
            normalized = normalize_package_name(package)
            if normalized in seen:
                continue
            seen.add(normalized)

            repository = await asyncio.to_thread(repository_from_site_packages, site_packages, package)
            if repository is None:
                try:
                    candidates = await self.fetch_candidates(package)
                except RegistryError as exc:
                    raise PythonDiscoveryError(f"failed to fetch metadata for package {package}") from exc
                repository = first_github_repository(candidates, via)
            if repository is not None:
                repositories.append(repository.with_via(via))
        return repositories

    def declared_packages(self, project_root: Path) -> dict[str, str]:
        """Package name -> file that first declared it."""
        packages: dict[str, str] = {}

        def add(names: Iterable[str], via: str) -> None:
            for name in sorted(names):
                packages.setdefault(name, via)

        uv_lock = self._read_toml(project_root / "uv.lock")
        if uv_lock is not None:
            add(_uv_lock_packages(uv_lock), "uv.lock")

        requirements = read_text(project_root / "requirements.txt", PythonDiscoveryError, missing_ok=True)
        if requirements is not None:
            add(
                filter(None, (parse_requirement_line(line) for line in requirements.splitlines())),
                "requirements.txt",
            )

        pyproject = self._read_toml(project_root / "pyproject.toml")
        if pyproject is not None:
            add(_pyproject_packages(pyproject), "pyproject.toml")

        pipfile = self._read_toml(project_root / "Pipfile")
        if pipfile is not None:
            add(_pipfile_packages(pipfile), "Pipfile")

        return packages

    async def fetch_candidates(self, package: str) -> list[str]:
        response = await fetch_registry(self._client, f"{self._base_url}/pypi/{package}/json")
        if response is None:
            return []
        try:
            document = response.json()
        except ValueError as exc:
            raise RegistryError(f"invalid JSON from PyPI for {package}") from exc

        info = document.get("info") if isinstance(document, dict) else None
        if not isinstance(info, dict):
            return []
        candidates = []
        project_urls = info.get("project_urls")
        if isinstance(project_urls, dict):
            candidates.extend(url for url in project_urls.values() if isinstance(url, str))
        if isinstance(info.get("home_page"), str):
            candidates.append(info["home_page"])
        return candidates

    def _read_toml(self, path: Path) -> Optional[dict]:
        content = read_text(path, PythonDiscoveryError, missing_ok=True)
        if content is None:
            return None
        try:
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as exc:
            raise PythonDiscoveryError(f"failed to parse {path} as TOML", path=path) from exc


def parse_requirement_line(line: str) -> Optional[str]:
    """Distribution name from a requirements/PEP 508 line; None for comments and options."""
    line = line.split("#", 1)[0].strip()
    if not line or line.startswith("-"):
        return None
    token = line.split()[0]
    end = len(token)
    for delimiter in _REQUIREMENT_DELIMITERS:
        idx = token.find(delimiter)
        if idx != -1:
            end = min(end, idx)
    name = token[:end].strip()
    return name or None


def normalize_package_name(name: str) -> str:
    return name.lower().replace("_", "-")


def find_python_environments(project_root: Path) -> list[Path]:
    envs = {project_root / name for name in (".venv", "venv") if (project_root / name).is_dir()}
    try:
        envs.update(
            entry for entry in project_root.iterdir()
            if entry.is_dir() and (entry / "pyvenv.cfg").exists()
        )
    except OSError:
        log.debug("Cannot list %s", project_root)
    return sorted(envs)


def find_all_site_packages(project_root: Path) -> list[Path]:
    return [site for env in find_python_environments(project_root) for site in find_site_packages(env)]


def find_site_packages(env: Path) -> list[Path]:
    paths = sorted(
        site
        for site in env.glob("lib/python*/site-packages")
        if site.is_dir()
    )
    windows_site = env / "Lib" / "site-packages"
    if windows_site.is_dir():
        paths.append(windows_site)
    return paths


def repository_from_site_packages(site_packages: list[Path], package: str) -> Optional[Repository]:
    normalized = normalize_package_name(package)
    for base in site_packages:
        for entry in sorted(base.iterdir()):
            if entry.suffix == ".dist-info":
                metadata_file = entry / "METADATA"
            elif entry.suffix == ".egg-info":
                metadata_file = entry / "PKG-INFO"
            else:
                continue
            stem = normalize_package_name(entry.stem)
            if stem != normalized and not stem.startswith(normalized + "-"):
                continue
            try:
                metadata = metadata_file.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            repository = repository_from_metadata(metadata)
            if repository is not None:
                return repository
    return None


def repository_from_metadata(metadata: str) -> Optional[Repository]:
    for line in metadata.splitlines():
        trimmed = line.strip()
        if not trimmed.startswith(_METADATA_FIELDS):
            continue
        idx = trimmed.find("http")
        if idx == -1:
            continue
        repository = parse_github_repository(trimmed[idx:])
        if repository is not None:
            return repository
    return None


def _uv_lock_packages(lock: dict) -> list[str]:
    names = []
    for package in lock.get("package", []):
        source = package.get("source") if isinstance(package, dict) else None
        if isinstance(source, dict) and source.get("registry") and isinstance(package.get("name"), str):
            names.append(package["name"])
    return names


def _pyproject_packages(pyproject: dict) -> list[str]:
    project = pyproject.get("project")
    dependencies = project.get("dependencies") if isinstance(project, dict) else None
    if not isinstance(dependencies, list):
        return []
    return [
        name for name in (parse_requirement_line(dep) for dep in dependencies if isinstance(dep, str))
        if name
    ]


def _pipfile_packages(pipfile: dict) -> list[str]:
    names = []
    for table in ("packages", "dev-packages"):
        section = pipfile.get(table)
        if isinstance(section, dict):
            names.extend(section)
    return names
