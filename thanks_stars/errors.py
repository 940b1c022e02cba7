"""Exception hierarchy shared by discovery, the GitHub client, and the CLI."""

from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Framework


class ThanksStarsError(Exception):
    """Base class for every error this package raises on purpose."""


class DiscoveryError(ThanksStarsError):
    """An ecosystem discoverer failed.

    Each ecosystem defines a subclass that sets ``framework``; the underlying
    cause (I/O, parse, or registry failure) is chained as ``__cause__``.
    """

    framework: Optional["Framework"] = None

    def __init__(self, message: str, path: str | Path | None = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class GitHubError(ThanksStarsError):
    """A call to the GitHub API failed."""


class GitHubApiError(GitHubError):
    """GitHub answered with a non-success status or a GraphQL error payload."""

    def __init__(self, status: int, body: str):
        super().__init__(f"GitHub API responded with status {status}: {body}")
        self.status = status
        self.body = body


class TransientGitHubError(GitHubError):
    """A failure worth retrying: transport errors, 429, and 5xx responses."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NoFrameworksError(ThanksStarsError):
    def __init__(self, project_root: str | Path):
        super().__init__(
            f"no supported package managers found in project root {project_root}"
        )
        self.project_root = str(project_root)


def causal_chain(exc: BaseException) -> str:
    """Render an exception and its ``__cause__`` chain on one line."""
    parts = []
    seen: set[int] = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        text = str(current) or type(current).__name__
        if not parts or text not in parts[-1]:
            parts.append(text)
        current = current.__cause__
    return ": ".join(parts)
