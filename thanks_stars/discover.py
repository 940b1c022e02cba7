"""Framework detection and the discovery dispatcher.

Each detected framework's discoverer runs as its own asyncio task; the
dispatcher waits for all of them before returning, so results and errors are
independent of completion order.
"""

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Optional

import httpx

from .ecosystems import DISCOVERERS, DiscovererFactory
from .ecosystems.haskell import find_cabal_files
from .errors import DiscoveryError
from .models import Framework, Repository

log = logging.getLogger(__name__)


def detect_frameworks(project_root: Path) -> list[Framework]:
    """Frameworks whose marker files exist in ``project_root``, in declaration order."""
    detected = []
    for framework in Framework:
        if any((project_root / marker).is_file() for marker in framework.markers):
            detected.append(framework)
        elif framework is Framework.HASKELL and find_cabal_files(project_root):
            detected.append(framework)
    return detected


async def discover_for_frameworks(
    project_root: Path,
    frameworks: Iterable[Framework],
    client: httpx.AsyncClient,
    registry: Optional[dict[Framework, DiscovererFactory]] = None,
) -> list[Repository]:
    """Run the discoverer of every framework and concatenate their results.

    Results are concatenated in the order ``frameworks`` lists them, never in
    completion order. If any discoverer fails, the whole call fails once all
    tasks have finished: a non-DiscoveryError (a bug) is re-raised first,
    otherwise the DiscoveryError of the earliest listed framework.
    """
    registry = DISCOVERERS if registry is None else registry
    frameworks = list(frameworks)

    if not frameworks:
        return []

    discoverers = [registry[framework](client) for framework in frameworks]

    if len(discoverers) == 1:
        repositories = await discoverers[0].discover(project_root)
        log.info("%s: %d repositories", frameworks[0].value, len(repositories))
        return repositories

    outcomes = await asyncio.gather(
        *(discoverer.discover(project_root) for discoverer in discoverers),
        return_exceptions=True,
    )

    first_error: Optional[DiscoveryError] = None
    for framework, outcome in zip(frameworks, outcomes):
        if isinstance(outcome, DiscoveryError):
            log.debug("%s discovery failed: %s", framework.value, outcome)
            first_error = first_error or outcome
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            log.info("%s: %d repositories", framework.value, len(outcome))
    if first_error is not None:
        raise first_error

    return [repository for outcome in outcomes for repository in outcome]
