"""Node: dependencies from package.json, repository URLs from node_modules."""

import logging
from pathlib import Path
from typing import Any, Optional

from ..errors import DiscoveryError
from ..identity import parse_github_repository
from ..models import Framework, Repository
from .base import FileDiscoverer, read_json

log = logging.getLogger(__name__)

VIA = "package.json"
_DEPENDENCY_KEYS = ("dependencies", "devDependencies")


class NodeDiscoveryError(DiscoveryError):
    framework = Framework.NODE


class NodeDiscoverer(FileDiscoverer):
    framework = Framework.NODE

    def scan(self, project_root: Path) -> list[Repository]:
        package_json = read_json(project_root / "package.json", NodeDiscoveryError)

        names: set[str] = set()
        if isinstance(package_json, dict):
            for key in _DEPENDENCY_KEYS:
                deps = package_json.get(key)
                if isinstance(deps, dict):
                    names.update(deps)

        repositories = []
        for name in sorted(names):
            # Uninstalled or broken dependency manifests are skipped, not fatal
            try:
                dependency_json = read_json(_dependency_manifest(project_root, name), NodeDiscoveryError)
            except NodeDiscoveryError as exc:
                log.debug("Skipping %s: %s", name, exc)
                continue

            reference = _repository_reference(dependency_json)
            repository = parse_github_repository(reference) if reference else None
            if repository is not None:
                repositories.append(repository.with_via(VIA))

        return repositories


def _dependency_manifest(project_root: Path, name: str) -> Path:
    # Scoped packages (@scope/pkg) live in nested directories
    return project_root.joinpath("node_modules", *name.split("/"), "package.json")


def _repository_reference(package: Any) -> Optional[str]:
    if not isinstance(package, dict):
        return None
    repo = package.get("repository")
    if isinstance(repo, str):
        return repo
    if isinstance(repo, dict) and isinstance(repo.get("url"), str):
        return repo["url"]
    homepage = package.get("homepage")
    if isinstance(homepage, str):
        return homepage
    return None
