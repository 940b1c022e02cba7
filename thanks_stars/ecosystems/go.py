"""Go: github.com module paths from go.mod require directives."""

from pathlib import Path
from typing import Optional

from ..errors import DiscoveryError
from ..identity import repository_from_owner_repo
from ..models import Framework, Repository
from .base import FileDiscoverer, read_text

VIA = "go.mod"


class GoDiscoveryError(DiscoveryError):
    framework = Framework.GO


class GoDiscoverer(FileDiscoverer):
    framework = Framework.GO

    def scan(self, project_root: Path) -> list[Repository]:
        content = read_text(project_root / "go.mod", GoDiscoveryError)

        repositories = []
        for module in sorted(parse_requirements(content)):
            repository = _repository_from_module(module)
            if repository is not None:
                repositories.append(repository.with_via(VIA))
        return repositories


def parse_requirements(content: str) -> set[str]:
    """Module paths from single-line and block ``require`` directives."""
    modules: set[str] = set()
    in_block = False
    for raw_line in content.splitlines():
        line = raw_line.strip()
        if line.startswith("require ("):
            in_block = True
            continue
        if in_block:
            if line == ")":
                in_block = False
                continue
            name = _module_name(line)
        elif line.startswith("require "):
            name = _module_name(line[len("require "):])
        else:
            continue
        if name:
            modules.add(name)
    return modules


def _module_name(line: str) -> Optional[str]:
    without_comment = line.split("//", 1)[0].strip()
    if not without_comment:
        return None
    return without_comment.split()[0]


def _repository_from_module(module: str) -> Optional[Repository]:
    if not module.startswith("github.com/"):
        return None
    parts = module[len("github.com/"):].split("/")
    if len(parts) < 2:
        return None
    return repository_from_owner_repo(parts[0], parts[1])
