"""Maven: pom.xml dependencies resolved through their published POMs.

Dependencies are read from ``<project><dependencies>`` of the root pom and,
recursively, of every ``<modules>`` entry. Managed dependencies and plugin
dependencies are not project dependencies and are ignored. Each coordinate's
POM is fetched from Maven Central and its ``url`` / ``scm`` elements are the
repository candidates.
"""

import asyncio
import logging
import re
# stdlib ElementTree is not vulnerable to XXE (no external entity support)
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import NamedTuple, Optional

import httpx

from ..errors import DiscoveryError
from ..models import Framework, Repository
from .base import RegistryError, fetch_registry, first_github_repository, read_text, unique_urls

log = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://repo1.maven.org/maven2"
_PROPERTY_RE = re.compile(r"\$\{([^}]+)\}")
_SCM_PREFIXES = ("scm:", "git:")


class MavenDiscoveryError(DiscoveryError):
    framework = Framework.MAVEN


class Coordinate(NamedTuple):
    group: str
    artifact: str
    version: str

    def __str__(self) -> str:
        return f"{self.group}:{self.artifact}:{self.version}"


class MavenDiscoverer:
    framework = Framework.MAVEN

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_BASE_URL):
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def discover(self, project_root: Path) -> list[Repository]:
        dependencies: dict[Coordinate, str] = {}
        await asyncio.to_thread(
            collect_pom_dependencies, project_root, project_root, dependencies, set(),
        )

        repositories = []
        for coordinate in sorted(dependencies):
            try:
                candidates = await self.fetch_candidates(coordinate)
            except RegistryError as exc:
                raise MavenDiscoveryError(f"failed to fetch metadata for {coordinate}") from exc
            repository = first_github_repository(candidates, dependencies[coordinate])
            if repository is not None:
                repositories.append(repository)
        return repositories

    async def fetch_candidates(self, coordinate: Coordinate) -> list[str]:
        group_path = coordinate.group.replace(".", "/")
        url = (
            f"{self._base_url}/{group_path}/{coordinate.artifact}/{coordinate.version}/"
            f"{coordinate.artifact}-{coordinate.version}.pom"
        )
        response = await fetch_registry(self._client, url, accept="application/xml")
        if response is None:
            return []
        try:
            root = ET.fromstring(response.content)
        except ET.ParseError as exc:
            raise RegistryError(f"failed to parse POM for {coordinate}") from exc
        return candidate_urls(root)


def collect_pom_dependencies(
    project_root: Path,
    module_root: Path,
    dependencies: dict[Coordinate, str],
    visited: set[Path],
) -> None:
    pom_path = module_root / "pom.xml"
    resolved = pom_path.resolve()
    if resolved in visited:
        return
    visited.add(resolved)

    content = read_text(pom_path, MavenDiscoveryError, missing_ok=True)
    if content is None:
        return
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise MavenDiscoveryError(f"failed to parse {pom_path}", path=pom_path) from exc

    via = pom_path.relative_to(project_root).as_posix()
    ns = _namespace(root)
    properties = _properties(root, ns)

    for dependency in root.findall(f"{ns}dependencies/{ns}dependency"):
        values = [
            _substitute(_child_text(dependency, ns, tag), properties)
            for tag in ("groupId", "artifactId", "version")
        ]
        if all(values):
            dependencies.setdefault(Coordinate(*values), via)

    resolved_root = project_root.resolve()
    for module in root.findall(f"{ns}modules/{ns}module"):
        if not module.text or not module.text.strip():
            continue
        module_path = (module_root / module.text.strip()).resolve()
        if not module_path.is_relative_to(resolved_root):
            log.debug("Skipping module %s outside %s", module.text, project_root)
            continue
        relative = module_path.relative_to(resolved_root)
        collect_pom_dependencies(project_root, project_root / relative, dependencies, visited)


def candidate_urls(root: ET.Element) -> list[str]:
    """``project/url``, then ``scm`` url / connection / developerConnection."""
    ns = _namespace(root)
    raw = [_child_text(root, ns, "url")]
    scm = root.find(f"{ns}scm")
    if scm is not None:
        raw.extend(_child_text(scm, ns, tag) for tag in ("url", "connection", "developerConnection"))

    cleaned = []
    for value in raw:
        if not value:
            continue
        for prefix in _SCM_PREFIXES:
            value = value.removeprefix(prefix)
        cleaned.append(value)
    return unique_urls(cleaned)


def _namespace(root: ET.Element) -> str:
    match = re.match(r"\{(.+)\}", root.tag)
    return f"{{{match.group(1)}}}" if match else ""


def _child_text(element: ET.Element, ns: str, tag: str) -> Optional[str]:
    child = element.find(f"{ns}{tag}")
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _properties(root: ET.Element, ns: str) -> dict[str, str]:
    properties = {}
    block = root.find(f"{ns}properties")
    if block is not None:
        for prop in block:
            if prop.text:
                properties[prop.tag.removeprefix(ns)] = prop.text.strip()
    version = _child_text(root, ns, "version")
    if version:
        properties["project.version"] = version
    return properties


def _substitute(value: Optional[str], properties: dict[str, str]) -> Optional[str]:
    """Expand ``${name}`` from the pom's properties; None if anything stays unresolved."""
    if value is None:
        return None
    expanded = _PROPERTY_RE.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
    return None if "${" in expanded else expanded
