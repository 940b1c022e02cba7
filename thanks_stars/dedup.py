from typing import Iterable

from .models import Repository


def dedup_repositories(repositories: Iterable[Repository]) -> list[Repository]:
    """Collapse repositories by (owner, name), keeping first-seen order.

    The first record for an identity wins, including its ``via`` label.
    Comparison is case-sensitive: "Owner/Repo" and "owner/repo" stay distinct.
    """
    seen: set[tuple[str, str]] = set()
    unique: list[Repository] = []
    for repository in repositories:
        if repository.key not in seen:
            seen.add(repository.key)
            unique.append(repository)
    return unique
