from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Framework(str, Enum):
    NODE = "node"
    DENO = "deno"
    JSR = "jsr"
    CARGO = "cargo"
    GO = "go"
    DART = "dart"
    COMPOSER = "composer"
    RUBY = "ruby"
    PYTHON = "python"
    GRADLE = "gradle"
    MAVEN = "maven"
    RENV = "renv"
    HASKELL = "haskell"

    @property
    def markers(self) -> tuple[str, ...]:
        return _FRAMEWORK_MARKERS[self]


# Files in the project root whose presence selects a framework.
# Haskell is also selected by any *.cabal file (see discover.detect_frameworks).
_FRAMEWORK_MARKERS: dict[Framework, tuple[str, ...]] = {
    Framework.NODE: ("package.json",),
    Framework.DENO: ("deno.lock", "deno.json", "deno.jsonc"),
    Framework.JSR: ("jsr.json", "deno.json", "deno.jsonc"),
    Framework.CARGO: ("Cargo.toml",),
    Framework.GO: ("go.mod",),
    Framework.DART: ("pubspec.yaml",),
    Framework.COMPOSER: ("composer.lock", "composer.json"),
    Framework.RUBY: ("Gemfile", "Gemfile.lock"),
    Framework.PYTHON: (
        "pyproject.toml",
        "requirements.txt",
        "Pipfile",
        "Pipfile.lock",
        "uv.lock",
    ),
    Framework.GRADLE: ("gradle.lockfile", "build.gradle", "build.gradle.kts"),
    Framework.MAVEN: ("pom.xml",),
    Framework.RENV: ("renv.lock",),
    Framework.HASKELL: ("package.yaml", "stack.yaml", "cabal.project"),
}


class Repository(BaseModel):
    """A GitHub repository a project depends on.

    Identity is the case-sensitive ``(owner, name)`` pair; ``via`` is
    provenance only and never takes part in deduplication.
    """

    model_config = ConfigDict(frozen=True)

    owner: str = Field(description="Repository owner, as written by the source")
    name: str = Field(description="Repository name with any trailing .git removed")
    url: str = Field(description="Canonical https://github.com/{owner}/{name} URL")
    via: Optional[str] = Field(
        default=None,
        description="Manifest file or registry that produced this reference",
    )

    @property
    def key(self) -> tuple[str, str]:
        return (self.owner, self.name)

    def with_via(self, via: str) -> "Repository":
        return self.model_copy(update={"via": via})


class StarredRepository(BaseModel):
    model_config = ConfigDict(frozen=True)

    repository: Repository
    already_starred: bool = Field(
        description="True if the viewer had starred the repository before this run",
    )


class RunSummary(BaseModel):
    """Outcome of one reconciliation run, in processing order."""

    model_config = ConfigDict(frozen=True)

    starred: tuple[StarredRepository, ...] = ()

    @property
    def already_starred_count(self) -> int:
        return sum(1 for entry in self.starred if entry.already_starred)

    @property
    def newly_starred_count(self) -> int:
        return len(self.starred) - self.already_starred_count
