"""Recognise GitHub repository references in free-form strings.

Accepted shapes, tried in order:
  - "github:owner/repo"                    (npm-style shorthand)
  - "git+https://github.com/owner/repo.git" (prefix stripped, then URL rules)
  - "https://github.com/owner/repo/..."     (host must be exactly github.com)
  - "git@github.com:owner/repo.git"         (SSH)
  - "owner/repo"                            (bare shorthand, exactly two segments)

Anything else is a non-match (None), never an error: discoverers feed every
candidate field through here and drop what doesn't parse.
"""

import re
from typing import Optional
from urllib.parse import urlsplit

from .models import Repository

GITHUB_HOST = "github.com"

_GITHUB_SHORTHAND_PREFIX = "github:"
_GIT_PLUS_PREFIX = "git+"
_SSH_PREFIX = "git@github.com:"
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")
# Characters GitHub allows in owner and repository names
_SHORTHAND_SEGMENT_RE = re.compile(r"^(?=.*[A-Za-z0-9])[A-Za-z0-9_.\-]+$")


def parse_github_repository(value: str) -> Optional[Repository]:
    """Parse ``value`` into a canonical Repository, or None if it isn't one."""
    trimmed = value.strip()
    if not trimmed:
        return None

    if trimmed.startswith(_GITHUB_SHORTHAND_PREFIX):
        return _parse_owner_repo(trimmed[len(_GITHUB_SHORTHAND_PREFIX):].strip())

    candidate = trimmed.removeprefix(_GIT_PLUS_PREFIX)

    if _SCHEME_RE.match(candidate):
        return _parse_url(candidate)

    if candidate.startswith(_SSH_PREFIX):
        return _parse_owner_repo(candidate[len(_SSH_PREFIX):])

    return _parse_owner_repo(candidate)


def repository_from_owner_repo(owner: str, name: str) -> Optional[Repository]:
    """Build a Repository from already-split parts, applying the same rules."""
    return _build_repository(owner.strip(), name.strip())


def _parse_url(candidate: str) -> Optional[Repository]:
    try:
        parts = urlsplit(candidate)
        host = parts.hostname
    except ValueError:
        return None

    if parts.scheme.lower() == "file" or host != GITHUB_HOST:
        return None

    segments = [segment for segment in parts.path.split("/") if segment]
    if len(segments) < 2:
        return None
    return _build_repository(segments[0], segments[1])


def _parse_owner_repo(value: str) -> Optional[Repository]:
    segments = value.strip("/").split("/")
    if len(segments) != 2:
        return None
    owner, name = (segment.strip() for segment in segments)
    # Rejects "git@gitlab.com:owner/repo", "@scope/pkg@1.0" and similar
    if not _SHORTHAND_SEGMENT_RE.match(owner) or not _SHORTHAND_SEGMENT_RE.match(name):
        return None
    return _build_repository(owner, name)


def _build_repository(owner: str, name: str) -> Optional[Repository]:
    while name.endswith(".git"):
        name = name[: -len(".git")]
    if not owner or not name:
        return None
    return Repository(
        owner=owner,
        name=name,
        url=f"https://{GITHUB_HOST}/{owner}/{name}",
    )
