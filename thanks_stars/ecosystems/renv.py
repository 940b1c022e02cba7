"""renv: GitHub-sourced R packages recorded in renv.lock."""

from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ..errors import DiscoveryError
from ..identity import parse_github_repository, repository_from_owner_repo
from ..models import Framework, Repository
from .base import FileDiscoverer, read_json

VIA = "renv.lock"
_GITHUB_HOST_FIELDS = ("remote_host", "remote_url", "repository", "url", "bug_reports")


class RenvDiscoveryError(DiscoveryError):
    framework = Framework.RENV


class RenvPackage(BaseModel):
    """One entry of renv.lock ``Packages``; only the source fields are kept."""

    model_config = ConfigDict(extra="ignore")

    source: Optional[str] = Field(None, alias="Source")
    remote_type: Optional[str] = Field(None, alias="RemoteType")
    remote_host: Optional[str] = Field(None, alias="RemoteHost")
    remote_repo: Optional[str] = Field(None, alias="RemoteRepo")
    remote_url: Optional[str] = Field(None, alias="RemoteUrl")
    repository: Optional[str] = Field(None, alias="Repository")
    remote_owner: Optional[str] = Field(
        None, validation_alias=AliasChoices("RemoteUsername", "RemoteOwner", "RemoteUser"),
    )
    url: Optional[str] = Field(None, alias="URL")
    bug_reports: Optional[str] = Field(None, alias="BugReports")

    def is_github_source(self) -> bool:
        if any((value or "").lower() == "github" for value in (self.remote_type, self.source)):
            return True
        return any("github.com" in (getattr(self, name) or "") for name in _GITHUB_HOST_FIELDS)

    def github_owner_repo(self) -> Optional[tuple[str, str]]:
        if not self.is_github_source():
            return None

        from_remote = self._owner_repo_from_remote_fields()
        if from_remote:
            return from_remote

        remote = self.remote_url or self.repository
        if remote:
            from_url = owner_repo_from_url(remote)
            if from_url:
                return from_url

        for urls in (self.url, self.bug_reports):
            for candidate in (urls or "").replace(";", ",").split(","):
                candidate = candidate.strip()
                from_url = owner_repo_from_url(candidate) if candidate else None
                if from_url:
                    return from_url
        return None

    def _owner_repo_from_remote_fields(self) -> Optional[tuple[str, str]]:
        repo = (self.remote_repo or "").strip().removesuffix(".git")
        if not repo:
            return None
        if self.remote_owner is not None:
            owner = self.remote_owner.strip()
            return (owner, repo) if owner else None
        owner, _, name = repo.partition("/")
        if owner.strip() and name.strip():
            return owner.strip(), name.strip()
        return None


class RenvDiscoverer(FileDiscoverer):
    framework = Framework.RENV

    def scan(self, project_root: Path) -> list[Repository]:
        path = project_root / "renv.lock"
        lock = read_json(path, RenvDiscoveryError)
        packages = lock.get("Packages") if isinstance(lock, dict) else None
        if not isinstance(packages, dict):
            return []

        repositories = []
        seen: set[tuple[str, str]] = set()
        for name in sorted(packages):
            try:
                package = RenvPackage.model_validate(packages[name])
            except ValidationError as exc:
                raise RenvDiscoveryError(f"invalid entry for package {name} in {path}", path=path) from exc

            owner_repo = package.github_owner_repo()
            repository = repository_from_owner_repo(*owner_repo) if owner_repo else None
            if repository is not None and repository.key not in seen:
                seen.add(repository.key)
                repositories.append(repository.with_via(VIA))
        return repositories


def owner_repo_from_url(value: str) -> Optional[tuple[str, str]]:
    repository = parse_github_repository(value)
    if repository is not None:
        return repository.key

    try:
        parts = urlsplit(value)
        host = parts.hostname
    except ValueError:
        return None
    segments = [segment for segment in parts.path.split("/") if segment]
    if host == "api.github.com":
        # /repos/<owner>/<repo>/...
        if len(segments) >= 3 and segments[0] == "repos":
            return segments[1], segments[2]
    elif host == "codeload.github.com" and len(segments) >= 2:
        return segments[0], segments[1].removesuffix(".git")
    return None
