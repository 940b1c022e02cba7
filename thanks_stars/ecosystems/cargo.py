"""Cargo: direct dependencies of workspace members, from `cargo metadata`."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from ..errors import DiscoveryError
from ..identity import parse_github_repository
from ..models import Framework, Repository

log = logging.getLogger(__name__)

VIA = "Cargo.toml"
METADATA_TIMEOUT_SECONDS = 120.0


class CargoDiscoveryError(DiscoveryError):
    framework = Framework.CARGO


class MetadataFetcher(Protocol):
    async def fetch(self, project_root: Path) -> str: ...


class CommandMetadataFetcher:
    """Runs ``cargo metadata --format-version 1`` in the project root."""

    def __init__(self, timeout: float = METADATA_TIMEOUT_SECONDS):
        self._timeout = timeout

    async def fetch(self, project_root: Path) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                "cargo", "metadata", "--format-version", "1",
                cwd=project_root,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise CargoDiscoveryError("failed to execute `cargo metadata`", path=project_root) from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), self._timeout)
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise CargoDiscoveryError(
                f"`cargo metadata` timed out after {self._timeout:.0f}s", path=project_root,
            ) from exc

        if process.returncode != 0:
            raise CargoDiscoveryError(
                f"failed to run `cargo metadata`: {stderr.decode('utf-8', 'replace').strip()}",
                path=project_root,
            )
        return stdout.decode("utf-8", "replace")


class CargoDiscoverer:
    framework = Framework.CARGO

    def __init__(self, fetcher: Optional[MetadataFetcher] = None):
        self._fetcher = fetcher or CommandMetadataFetcher()

    async def discover(self, project_root: Path) -> list[Repository]:
        raw = await self._fetcher.fetch(project_root)
        try:
            metadata = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CargoDiscoveryError("failed to parse cargo metadata", path=project_root) from exc

        try:
            nodes = {node["id"]: node for node in (metadata.get("resolve") or {}).get("nodes", [])}
            dependency_ids: set[str] = set()
            for member in metadata.get("workspace_members", []):
                node = nodes.get(member)
                if node:
                    dependency_ids.update(dep["pkg"] for dep in node.get("deps", []))

            packages = {package["id"]: package for package in metadata["packages"]}
        except (KeyError, TypeError, AttributeError) as exc:
            raise CargoDiscoveryError("unexpected cargo metadata layout", path=project_root) from exc

        repositories = []
        for package_id in sorted(dependency_ids):
            reference = (packages.get(package_id) or {}).get("repository")
            repository = parse_github_repository(reference) if reference else None
            if repository is not None:
                repositories.append(repository.with_via(VIA))
        return repositories
