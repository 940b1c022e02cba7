"""GitHub credentials and client settings from the environment and the saved token."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values, set_key

from .github import DEFAULT_API_BASE
from .http_client import DEFAULT_TIMEOUT_SECONDS

CONFIG_FILE = "config.env"
TOKEN_KEY = "GITHUB_TOKEN"


class TokenStore:
    """The token saved by ``thanks-stars auth``, kept in a dotenv file.

    Directory, first match wins:
      - THANKS_STARS_CONFIG_DIR
      - $XDG_CONFIG_HOME/thanks-stars
      - ~/.config/thanks-stars
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else _default_base_dir()

    @property
    def config_file(self) -> Path:
        return self.base_dir / CONFIG_FILE

    def save_token(self, token: str) -> Path:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.config_file.touch(mode=0o600, exist_ok=True)
        set_key(self.config_file, TOKEN_KEY, token, quote_mode="never")
        return self.config_file

    def load_token(self) -> Optional[str]:
        if not self.config_file.is_file():
            return None
        token = dotenv_values(self.config_file).get(TOKEN_KEY)
        return token.strip() if token and token.strip() else None


def _default_base_dir() -> Path:
    explicit = os.getenv("THANKS_STARS_CONFIG_DIR", "")
    if explicit:
        return Path(explicit)
    xdg = os.getenv("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / "thanks-stars"
    return Path.home() / ".config" / "thanks-stars"


@dataclass(frozen=True)
class GitHubConfig:
    token: str
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, store: Optional[TokenStore] = None) -> "GitHubConfig":
        """Load from environment variables, falling back to the saved token.

        GITHUB_TOKEN               personal access token (else the saved one)
        THANKS_STARS_API_BASE      API root, default https://api.github.com
        THANKS_STARS_HTTP_TIMEOUT  per-request timeout in seconds, default 30
        """
        token = os.getenv(TOKEN_KEY, "").strip()
        if not token:
            token = (store or TokenStore()).load_token() or ""
        if not token:
            raise ValueError(
                "GitHub token not found. Run `thanks-stars auth --token <token>` or set GITHUB_TOKEN."
            )

        api_base = os.getenv("THANKS_STARS_API_BASE", "").strip() or DEFAULT_API_BASE

        raw_timeout = os.getenv("THANKS_STARS_HTTP_TIMEOUT", "").strip()
        timeout = DEFAULT_TIMEOUT_SECONDS
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise ValueError(
                    f"THANKS_STARS_HTTP_TIMEOUT must be a number of seconds, got {raw_timeout!r}"
                ) from None
            if timeout <= 0:
                raise ValueError("THANKS_STARS_HTTP_TIMEOUT must be positive")

        return cls(token=token, api_base=api_base.rstrip("/"), timeout=timeout)

    def __repr__(self) -> str:
        return f"GitHubConfig(token='***', api_base={self.api_base!r}, timeout={self.timeout!r})"
