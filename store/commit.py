"""Atomic multi-file commits through the GitHub Git Data API.

A save is one linear sequence of REST calls:

1. resolve the branch head commit and its root tree,
2. upload each changed file as a blob,
3. build a tree that keeps every unchanged blob and swaps in the new ones,
4. create a commit whose only parent is the old head,
5. move the branch to the new commit.

Step 5 is the only mutation anyone can observe. If any earlier step fails the
branch is untouched and the uploaded objects are left for GitHub's garbage
collection. Nothing is retried; the caller starts a fresh save instead.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Mapping

from messages.templates import BATCH_COMMIT
from store.errors import InvalidTree
from store.github import GitHubClient
from store.models import CommitResult, Head, SaveState, TreeEntry, iso_timestamp

logger = logging.getLogger(__name__)


def serialize(content: Any) -> bytes:
    """Encode file content the way the storefront expects to read it back."""
    if isinstance(content, bytes):
        return content
    return json.dumps(content, indent=2, ensure_ascii=False).encode("utf-8")


class CommitBuilder:
    """Builds one commit per save on a single branch.

    The builder tracks the state of the save in progress so the admin panel
    and the logs can report where a failure happened.
    """

    def __init__(self, client: GitHubClient, branch: str = "main", max_workers: int = 8) -> None:
        self.client = client
        self.branch = branch
        self.max_workers = max_workers
        self.state = SaveState.IDLE
        self.failure: str | None = None

    def _enter(self, state: SaveState) -> None:
        logger.debug("Save on %s: %s -> %s", self.branch, self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def resolve_head(self) -> Head:
        commit_sha = self.client.get_ref(self.branch)
        commit = self.client.get_commit(commit_sha)
        tree = commit.get("tree")
        if not isinstance(tree, dict) or not tree.get("sha"):
            raise InvalidTree(f"Commit {commit_sha} has no tree")
        return Head(commit_sha=commit_sha, tree_sha=tree["sha"])

    def upload_blob(self, data: bytes) -> str:
        return self.client.create_blob(data)

    def upload_blobs(self, files: Mapping[str, bytes]) -> dict[str, str]:
        """Upload all blobs concurrently and wait for every one of them."""
        paths = list(files)
        for path in paths:
            logger.info("Creating blob for %s, content size: %d bytes", path, len(files[path]))

        workers = max(1, min(self.max_workers, len(paths)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            shas = list(pool.map(self.upload_blob, (files[p] for p in paths)))
        return dict(zip(paths, shas))

    def build_tree(self, base_tree_sha: str, changed: Mapping[str, str]) -> str:
        base = self.client.get_tree(base_tree_sha, recursive=True)
        items = base.get("tree")
        if not isinstance(items, list):
            raise InvalidTree(f"Base tree {base_tree_sha} has no entry list")
        if base.get("truncated"):
            logger.warning("Base tree %s listing is truncated; relying on base_tree for the rest", base_tree_sha)

        entries: list[TreeEntry] = []
        for item in items:
            if not isinstance(item, dict) or item.get("type") != "blob":
                continue
            try:
                path, sha, mode = item["path"], item["sha"], item["mode"]
            except KeyError as e:
                raise InvalidTree(f"Base tree entry is missing {e}") from e
            if path not in changed:
                entries.append(TreeEntry(path=path, sha=sha, mode=mode))

        entries.extend(TreeEntry(path=path, sha=sha) for path, sha in changed.items())
        return self.client.create_tree([e.to_dict() for e in entries], base_tree=base_tree_sha)

    def create_commit(self, message: str, tree_sha: str, parent_sha: str) -> str:
        return self.client.create_commit(message, tree_sha, [parent_sha])

    def update_ref(self, commit_sha: str) -> None:
        self.client.update_ref(self.branch, commit_sha, force=False)

    # ------------------------------------------------------------------
    # End to end
    # ------------------------------------------------------------------

    def commit_files(self, files: Mapping[str, Any], message: str | None = None) -> CommitResult:
        """Commit every ``path -> content`` pair in ``files`` as one commit."""
        if not files:
            logger.info("No changes to commit on %s", self.branch)
            return CommitResult(commit_sha=None)

        if self.state not in (SaveState.IDLE, SaveState.DONE, SaveState.FAILED):
            raise RuntimeError(f"A save is already in progress ({self.state.value})")
        self.failure = None
        message = message or BATCH_COMMIT.substitute(timestamp=iso_timestamp())
        blobs = {path.lstrip("/"): serialize(content) for path, content in files.items()}

        try:
            self._enter(SaveState.RESOLVING_HEAD)
            head = self.resolve_head()

            self._enter(SaveState.UPLOADING_BLOBS)
            changed = self.upload_blobs(blobs)

            self._enter(SaveState.BUILDING_TREE)
            tree_sha = self.build_tree(head.tree_sha, changed)

            self._enter(SaveState.CREATING_COMMIT)
            commit_sha = self.create_commit(message, tree_sha, head.commit_sha)

            self._enter(SaveState.UPDATING_REF)
            self.update_ref(commit_sha)
        except Exception as e:
            logger.error("Save failed while %s: %s", self.state.value, e)
            self.failure = str(e)
            self._enter(SaveState.FAILED)
            raise

        self._enter(SaveState.DONE)
        logger.info(
            "Committed %d file(s) to %s: %s (parent %s)",
            len(changed), self.branch, commit_sha, head.commit_sha,
        )
        return CommitResult(
            commit_sha=commit_sha,
            parent_sha=head.commit_sha,
            tree_sha=tree_sha,
            paths=sorted(changed),
        )
