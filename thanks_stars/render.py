"""Console rendering of run events."""

import sys
from typing import Optional, TextIO

from .models import Repository, RunSummary
from .reconcile import RunEventHandler

UNKNOWN_SOURCE = "unknown source"


def _pluralize(count: int) -> str:
    return "repository" if count == 1 else "repositories"


class ConsoleRunHandler(RunEventHandler):
    """Prints one line per repository and a completion line.

        ⭐ Starred https://github.com/owner/repo via package.json
        ✅ Already starred https://github.com/owner/other (already starred) via go.mod
        ✨ Completed! Starred 1 repository, 1 already starred.
    """

    def __init__(self, dry_run: bool = False, stream: Optional[TextIO] = None):
        self.dry_run = dry_run
        self.stream = stream or sys.stdout

    def _print(self, line: str) -> None:
        print(line, file=self.stream, flush=True)

    def on_start(self, total: int) -> None:
        if total:
            action = "Dry run: evaluating" if self.dry_run else "Checking"
            self._print(f"{action} {total} {_pluralize(total)}...")

    def on_starred(self, repository: Repository, already_starred: bool, index: int, total: int) -> None:
        if already_starred:
            label = "✅ Already starred"
        elif self.dry_run:
            label = "⭐ Would star"
        else:
            label = "⭐ Starred"
        suffix = " (already starred)" if already_starred else ""
        self._print(f"{label} {repository.url}{suffix} via {repository.via or UNKNOWN_SOURCE}")

    def on_complete(self, summary: RunSummary) -> None:
        self._print(completion_message(summary, self.dry_run))


def completion_message(summary: RunSummary, dry_run: bool) -> str:
    if not summary.starred:
        return "🌱 No repositories required starring today."

    new = summary.newly_starred_count
    already = summary.already_starred_count

    if dry_run:
        if new and already:
            detail = f"{new} {_pluralize(new)} would be starred, {already} already starred."
        elif new:
            detail = f"{new} {_pluralize(new)} would be starred."
        else:
            detail = f"All {already} {_pluralize(already)} are already starred."
        return f"✨ Dry run complete! {detail}"

    if new and already:
        detail = f"Starred {new} {_pluralize(new)}, {already} already starred."
    elif new:
        detail = f"Starred {new} {_pluralize(new)}."
    else:
        detail = f"All {already} {_pluralize(already)} were already starred."
    return f"✨ Completed! {detail}"
