"""Composer: GitHub source URLs recorded in composer.lock."""

from pathlib import Path
from typing import Any

from ..errors import DiscoveryError
from ..models import Framework, Repository
from .base import FileDiscoverer, first_github_repository, read_json

VIA = "composer.lock"
_PACKAGE_SECTIONS = ("packages", "packages-dev")


class ComposerDiscoveryError(DiscoveryError):
    framework = Framework.COMPOSER


class ComposerDiscoverer(FileDiscoverer):
    framework = Framework.COMPOSER

    def scan(self, project_root: Path) -> list[Repository]:
        lock = read_json(project_root / "composer.lock", ComposerDiscoveryError, missing_ok=True)
        if not isinstance(lock, dict):
            return []

        repositories = []
        seen: set[tuple[str, str]] = set()
        for section in _PACKAGE_SECTIONS:
            packages = lock.get(section)
            if not isinstance(packages, list):
                continue
            for package in packages:
                repository = first_github_repository(_candidates(package), VIA)
                if repository is not None and repository.key not in seen:
                    seen.add(repository.key)
                    repositories.append(repository)
        return repositories


def _candidates(package: Any) -> list[str]:
    if not isinstance(package, dict):
        return []
    source = package.get("source") if isinstance(package.get("source"), dict) else {}
    support = package.get("support") if isinstance(package.get("support"), dict) else {}
    values = [source.get("url"), support.get("source"), package.get("homepage")]
    return [value for value in values if isinstance(value, str)]
