"""End-to-end pipeline: detect frameworks → discover → dedup → reconcile stars."""

import logging
import time
from pathlib import Path
from typing import Iterable, Optional

import httpx

from .dedup import dedup_repositories
from .discover import detect_frameworks, discover_for_frameworks
from .ecosystems import DiscovererFactory
from .errors import NoFrameworksError
from .models import Framework, RunSummary
from .reconcile import RunEventHandler, StarAPI, reconcile

log = logging.getLogger(__name__)


async def run(
    project_root: str | Path,
    api: StarAPI,
    client: httpx.AsyncClient,
    frameworks: Optional[Iterable[Framework]] = None,
    dry_run: bool = False,
    handler: Optional[RunEventHandler] = None,
    registry: Optional[dict[Framework, DiscovererFactory]] = None,
) -> RunSummary:
    """Star every GitHub repository the project at ``project_root`` depends on.

    Args:
        project_root: Directory holding the project's manifests.
        api: Star API collaborator (a GitHubClient outside tests).
        client: Shared HTTP client for package registries.
        frameworks: Frameworks to scan; detected from marker files when None.
        dry_run: Query star state but never star.
        handler: Receives start / per-repository / completion events.
        registry: Discoverer factories; defaults to every supported framework.

    Raises NoFrameworksError when nothing in the project root is recognised,
    and propagates discovery and GitHub errors unchanged.
    """
    project_root = Path(project_root)
    t0 = time.monotonic()

    frameworks = detect_frameworks(project_root) if frameworks is None else list(frameworks)
    if not frameworks:
        raise NoFrameworksError(project_root)
    log.info("Frameworks in %s: %s", project_root, ", ".join(f.value for f in frameworks))

    discovered = await discover_for_frameworks(project_root, frameworks, client, registry=registry)
    repositories = dedup_repositories(discovered)

    elapsed_discovery = time.monotonic() - t0
    log.info("--- Discovery phase (%.1fs) ---", elapsed_discovery)
    log.info("  %d references, %d unique repositories", len(discovered), len(repositories))
    for repository in repositories:
        log.debug("  %s/%s via %s", repository.owner, repository.name, repository.via)

    summary = await reconcile(repositories, api, dry_run=dry_run, handler=handler)

    elapsed = time.monotonic() - t0
    log.info("--- Reconcile phase (%.1fs) ---", elapsed - elapsed_discovery)
    log.info(
        "  %d newly starred, %d already starred%s",
        summary.newly_starred_count,
        summary.already_starred_count,
        " (dry run)" if dry_run else "",
    )
    return summary
