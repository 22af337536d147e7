"""Thin GitHub REST client for the Contents and Git Data APIs.

Only the calls the commit builder and the resource loaders need are wrapped.
Every method maps HTTP failures onto the ``store.errors`` taxonomy so callers
never see raw ``httpx`` exceptions.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any

import httpx

from store.config import GITHUB_API_URL, GITHUB_API_VERSION, Settings
from store.errors import (
    AuthError,
    MalformedResponse,
    NotFound,
    RefNotFound,
    RefUpdateConflict,
    RemoteUnavailable,
)

logger = logging.getLogger(__name__)


class GitHubClient:
    """Repository-scoped GitHub API client."""

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        api_url: str = GITHUB_API_URL,
        timeout: float = 20.0,
        http: httpx.Client | None = None,
    ) -> None:
        if not token:
            raise ValueError("GitHub token is required. Set GITHUB_TOKEN or pass token.")
        self.owner = owner
        self.repo = repo
        self._http = http or httpx.Client(base_url=api_url, timeout=timeout)
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.Client | None = None) -> GitHubClient:
        return cls(
            token=settings.require_github_token(),
            owner=settings.owner,
            repo=settings.repo,
            api_url=settings.api_url,
            timeout=settings.timeout,
            http=http,
        )

    @property
    def repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self._http.request(method, path, headers=self._headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("GitHub %s %s failed: %s", method, path, e)
            raise RemoteUnavailable(f"GitHub request failed: {e}") from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            return response.json().get("message") or response.reason_phrase
        except (ValueError, AttributeError):
            return response.text or response.reason_phrase

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        detail = self._error_detail(response)
        logger.error("%s failed: %d %s", action, response.status_code, detail)
        if response.status_code in (401, 403):
            raise AuthError(f"{action} failed: {response.status_code} {detail}", response.status_code)
        raise RemoteUnavailable(f"{action} failed: {response.status_code} {detail}", response.status_code)

    @staticmethod
    def _json(response: httpx.Response, action: str) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponse(f"{action}: response is not JSON") from e
        if not isinstance(data, dict):
            raise MalformedResponse(f"{action}: expected a JSON object")
        return data

    @staticmethod
    def _sha(data: dict[str, Any], action: str) -> str:
        sha = data.get("sha")
        if not isinstance(sha, str) or not sha:
            raise MalformedResponse(f"{action}: response has no sha")
        return sha

    # ------------------------------------------------------------------
    # Repository / Contents API
    # ------------------------------------------------------------------

    def check_repository(self) -> dict[str, Any]:
        """Probe the repository so a bad token is reported before any work is done."""
        response = self._request("GET", self.repo_path)
        logger.info("Token test response: status=%d", response.status_code)
        if response.status_code == 401:
            raise AuthError(
                "GitHub token is invalid or expired. Please create a new token and "
                "update it in Vercel environment variables.",
                401,
            )
        if response.status_code == 403:
            raise AuthError(
                'GitHub token does not have required permissions. Make sure the token '
                'has "repo" scope checked when creating it.',
                403,
            )
        if response.status_code == 404:
            raise NotFound(
                f"Repository {self.owner}/{self.repo} not found. Check repository name or token access."
            )
        if not response.is_success:
            raise RemoteUnavailable(
                f"GitHub API error: {self._error_detail(response)}", response.status_code
            )
        return self._json(response, "Repository check")

    def read_json(self, path: str, default: Any, ref: str | None = None) -> Any:
        """Read and decode a JSON file; a missing file yields ``default``."""
        params = {"ref": ref} if ref else None
        response = self._request("GET", f"{self.repo_path}/contents/{path}", params=params)
        if response.status_code == 404:
            logger.info("%s does not exist yet, using empty default", path)
            return default
        self._raise_for_status(response, f"Reading {path}")
        data = self._json(response, f"Reading {path}")

        if data.get("encoding") == "base64" and data.get("content"):
            raw = base64.b64decode(data["content"])
        else:
            # Files over 1 MB come back without inline content.
            raw = self.get_blob(self._sha(data, f"Reading {path}"))

        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise MalformedResponse(f"{path} is not valid JSON: {e}") from e

    # ------------------------------------------------------------------
    # Git Data API
    # ------------------------------------------------------------------

    def get_ref(self, branch: str) -> str:
        response = self._request("GET", f"{self.repo_path}/git/ref/heads/{branch}")
        if response.status_code == 404:
            raise RefNotFound(f"Branch '{branch}' not found in {self.owner}/{self.repo}")
        self._raise_for_status(response, "Failed to get current commit reference")
        data = self._json(response, "Reading ref")
        obj = data.get("object")
        if not isinstance(obj, dict):
            raise MalformedResponse("Reading ref: response has no object")
        return self._sha(obj, "Reading ref")

    def get_commit(self, sha: str) -> dict[str, Any]:
        response = self._request("GET", f"{self.repo_path}/git/commits/{sha}")
        self._raise_for_status(response, "Failed to get current commit")
        return self._json(response, "Reading commit")

    def get_tree(self, sha: str, recursive: bool = True) -> dict[str, Any]:
        params = {"recursive": "1"} if recursive else None
        response = self._request("GET", f"{self.repo_path}/git/trees/{sha}", params=params)
        self._raise_for_status(response, "Failed to read base tree")
        return self._json(response, "Reading tree")

    def get_blob(self, sha: str) -> bytes:
        response = self._request("GET", f"{self.repo_path}/git/blobs/{sha}")
        self._raise_for_status(response, f"Failed to read blob {sha}")
        data = self._json(response, "Reading blob")
        try:
            return base64.b64decode(data["content"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponse(f"Blob {sha} has no base64 content") from e

    def create_blob(self, content: bytes) -> str:
        response = self._request(
            "POST",
            f"{self.repo_path}/git/blobs",
            json={"content": base64.b64encode(content).decode("ascii"), "encoding": "base64"},
        )
        self._raise_for_status(response, "Failed to create blob")
        return self._sha(self._json(response, "Creating blob"), "Creating blob")

    def create_tree(self, entries: list[dict[str, str]], base_tree: str | None = None) -> str:
        payload: dict[str, Any] = {"tree": entries}
        if base_tree:
            payload["base_tree"] = base_tree
        response = self._request("POST", f"{self.repo_path}/git/trees", json=payload)
        self._raise_for_status(response, "Failed to create tree")
        return self._sha(self._json(response, "Creating tree"), "Creating tree")

    def create_commit(self, message: str, tree: str, parents: list[str]) -> str:
        response = self._request(
            "POST",
            f"{self.repo_path}/git/commits",
            json={"message": message, "tree": tree, "parents": parents},
        )
        self._raise_for_status(response, "Failed to create commit")
        return self._sha(self._json(response, "Creating commit"), "Creating commit")

    def update_ref(self, branch: str, sha: str, force: bool = False) -> None:
        response = self._request(
            "PATCH",
            f"{self.repo_path}/git/refs/heads/{branch}",
            json={"sha": sha, "force": force},
        )
        # 422 "Update is not a fast forward": the branch moved since we read it.
        if response.status_code in (409, 422):
            raise RefUpdateConflict(
                f"Branch '{branch}' moved while saving: {self._error_detail(response)}"
            )
        if response.status_code == 404:
            raise RefNotFound(f"Branch '{branch}' not found in {self.owner}/{self.repo}")
        self._raise_for_status(response, "Failed to update reference")
