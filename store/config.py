"""Runtime settings for the serverless handlers and the admin panel."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from store.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_OWNER = "shreeadvaya"
DEFAULT_REPO = "shreeadvaya"
DEFAULT_BRANCH = "main"
DEFAULT_ALLOWED_ORIGIN = "https://shreeadvaya.vercel.app"
GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
TOKEN_TTL_SECONDS = 60 * 60


def resolve_setting(explicit: str | None, *env_names: str) -> str:
    """Return the explicit value if given, else the first non-empty environment variable."""
    if explicit and explicit.strip():
        return explicit.strip()
    for name in env_names:
        value = os.environ.get(name, "").strip()
        if value:
            return value
    return ""


@dataclass
class Settings:
    github_token: str
    owner: str = DEFAULT_OWNER
    repo: str = DEFAULT_REPO
    branch: str = DEFAULT_BRANCH
    api_url: str = GITHUB_API_URL
    admin_password: str = ""
    allowed_origin: str = DEFAULT_ALLOWED_ORIGIN
    token_ttl_seconds: int = TOKEN_TTL_SECONDS
    timeout: float = 20.0

    @classmethod
    def from_env(cls, github_token: str | None = None) -> Settings:
        """Build settings from the environment (Vercel's repo variables win over custom ones)."""
        ttl = resolve_setting(None, "TOKEN_TTL_SECONDS")
        timeout = resolve_setting(None, "GITHUB_TIMEOUT")
        try:
            settings = cls(
                github_token=resolve_setting(github_token, "GITHUB_TOKEN"),
                owner=resolve_setting(None, "VERCEL_GIT_REPO_OWNER", "GITHUB_OWNER") or DEFAULT_OWNER,
                repo=resolve_setting(None, "VERCEL_GIT_REPO_SLUG", "GITHUB_REPO") or DEFAULT_REPO,
                branch=resolve_setting(None, "GITHUB_BRANCH") or DEFAULT_BRANCH,
                api_url=resolve_setting(None, "GITHUB_API_URL") or GITHUB_API_URL,
                admin_password=resolve_setting(None, "ADMIN_PASSWORD"),
                allowed_origin=resolve_setting(None, "ALLOWED_ORIGIN") or DEFAULT_ALLOWED_ORIGIN,
                token_ttl_seconds=int(ttl) if ttl else TOKEN_TTL_SECONDS,
                timeout=float(timeout) if timeout else 20.0,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}") from e

        logger.debug(
            "GitHub config: owner=%s repo=%s branch=%s has_token=%s token_length=%d",
            settings.owner, settings.repo, settings.branch,
            bool(settings.github_token), len(settings.github_token),
        )
        return settings

    def require_github_token(self) -> str:
        if not self.github_token:
            raise ConfigurationError(
                "GitHub token not configured. Please set GITHUB_TOKEN in Vercel environment variables."
            )
        return self.github_token

    def require_admin_password(self) -> str:
        if not self.admin_password:
            raise ConfigurationError(
                "Admin password not configured. Please set ADMIN_PASSWORD in Vercel environment variables."
            )
        return self.admin_password

    @property
    def owner_repo(self) -> str:
        return f"{self.owner}/{self.repo}"

    def raw_url(self, path: str) -> str:
        return f"https://raw.githubusercontent.com/{self.owner}/{self.repo}/{self.branch}/{path}"
