"""Star reconciliation: make sure every discovered repository is starred.

For each repository, in order and one at a time:
  1. ask GitHub whether the viewer already starred it
  2. star it if not (skipped in dry-run mode)
  3. record the outcome and notify the handler

The query always runs, even in dry-run mode; it is what makes a second run
issue zero mutations. Any API failure aborts the run: no partial summary is
produced and ``on_complete`` is not called.
"""

import logging
from typing import Optional, Protocol, Sequence

from .models import Repository, RunSummary, StarredRepository

log = logging.getLogger(__name__)


class StarAPI(Protocol):
    async def viewer_has_starred(self, owner: str, name: str) -> bool: ...

    async def star(self, owner: str, name: str) -> None: ...


class RunEventHandler:
    """Lifecycle notifications for a run. Every hook defaults to a no-op."""

    def on_start(self, total: int) -> None:
        pass

    def on_starred(
        self,
        repository: Repository,
        already_starred: bool,
        index: int,
        total: int,
    ) -> None:
        pass

    def on_complete(self, summary: RunSummary) -> None:
        pass


async def reconcile(
    repositories: Sequence[Repository],
    api: StarAPI,
    dry_run: bool = False,
    handler: Optional[RunEventHandler] = None,
) -> RunSummary:
    """Star every repository the viewer hasn't starred yet.

    Args:
        repositories: Deduplicated repositories, in processing order.
        api: GitHub star query/mutation endpoints.
        dry_run: Query starred state but never call ``api.star``.
        handler: Receives on_start / on_starred / on_complete events.

    Returns:
        RunSummary with one entry per repository, in input order.
    """
    handler = handler or RunEventHandler()
    total = len(repositories)
    handler.on_start(total)

    results: list[StarredRepository] = []
    for index, repository in enumerate(repositories, start=1):
        already_starred = await api.viewer_has_starred(repository.owner, repository.name)

        if already_starred:
            log.debug("[%d/%d] %s already starred", index, total, repository.url)
        elif dry_run:
            log.debug("[%d/%d] %s would be starred (dry run)", index, total, repository.url)
        else:
            await api.star(repository.owner, repository.name)
            log.debug("[%d/%d] starred %s", index, total, repository.url)

        results.append(StarredRepository(repository=repository, already_starred=already_starred))
        handler.on_starred(repository, already_starred, index, total)

    summary = RunSummary(starred=tuple(results))
    handler.on_complete(summary)
    return summary
