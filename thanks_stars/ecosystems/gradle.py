"""Gradle: JitPack-style ``com.github.<owner>`` / ``io.github.<owner>`` coordinates."""

import re
from pathlib import Path
from typing import Iterator, Optional

from ..errors import DiscoveryError
from ..identity import repository_from_owner_repo
from ..models import Framework, Repository
from .base import FileDiscoverer, read_text

LOCKFILE = "gradle.lockfile"
BUILD_FILES = ("build.gradle", "build.gradle.kts", "settings.gradle", "settings.gradle.kts")
_GITHUB_GROUP_PREFIXES = ("com.github.", "io.github.")
# 'group:artifact:version' or "group:artifact:version"
_COORDINATE_RE = re.compile(r"""['"]([^:'"]+):([^:'"]+):[^'"]+['"]""")


class GradleDiscoveryError(DiscoveryError):
    framework = Framework.GRADLE


class GradleDiscoverer(FileDiscoverer):
    framework = Framework.GRADLE

    def scan(self, project_root: Path) -> list[Repository]:
        repositories = []
        seen: set[tuple[str, str]] = set()

        for file_name in (LOCKFILE, *BUILD_FILES):
            content = read_text(project_root / file_name, GradleDiscoveryError, missing_ok=True)
            if content is None:
                continue
            coordinates = _lockfile_coordinates(content) if file_name == LOCKFILE else _build_coordinates(content)
            for group, artifact in coordinates:
                repository = repository_from_group_artifact(group, artifact)
                if repository is not None and repository.key not in seen:
                    seen.add(repository.key)
                    repositories.append(repository.with_via(file_name))
        return repositories


def repository_from_group_artifact(group: str, artifact: str) -> Optional[Repository]:
    group = group.strip()
    for prefix in _GITHUB_GROUP_PREFIXES:
        if group.startswith(prefix):
            owner = group[len(prefix):].split(".")[0]
            return repository_from_owner_repo(owner, artifact)
    return None


def _lockfile_coordinates(content: str) -> Iterator[tuple[str, str]]:
    for line in content.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        parts = trimmed.split("=", 1)[0].split(":")
        if len(parts) >= 2:
            yield parts[0], parts[1]


def _build_coordinates(content: str) -> Iterator[tuple[str, str]]:
    for match in _COORDINATE_RE.finditer(content):
        yield match.group(1), match.group(2)
