from .dedup import dedup_repositories
from .discover import detect_frameworks, discover_for_frameworks
from .identity import parse_github_repository
from .models import Framework, Repository, RunSummary, StarredRepository
from .pipeline import run
from .reconcile import RunEventHandler, StarAPI, reconcile

__all__ = [
    "dedup_repositories",
    "detect_frameworks",
    "discover_for_frameworks",
    "parse_github_repository",
    "reconcile",
    "run",
    "Framework",
    "Repository",
    "RunEventHandler",
    "RunSummary",
    "StarAPI",
    "StarredRepository",
]
