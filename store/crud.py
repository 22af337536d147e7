"""Single-resource, single-record operations behind the per-resource routes.

Every write reads the current file, applies the merge policy to it and
commits that one path through the commit builder.
"""

from __future__ import annotations

import logging
from typing import Any

from messages.templates import FILE_COMMIT
from store.commit import CommitBuilder
from store.errors import MalformedResponse, NotFound, ValidationError
from store.github import GitHubClient
from store.models import CommitResult, Resource, iso_timestamp
from store.resources import (
    ChangeSet,
    IdGenerator,
    apply_changes,
    merge_content,
    sort_by_order,
)

logger = logging.getLogger(__name__)

SORTED_RESOURCES = (Resource.CATEGORIES, Resource.COLLECTIONS)


class DataStore:
    """Reads and writes the storefront's JSON files in one GitHub repository."""

    def __init__(
        self,
        client: GitHubClient,
        branch: str = "main",
        ids: IdGenerator | None = None,
    ) -> None:
        self.client = client
        self.branch = branch
        self.ids = ids or IdGenerator()

    def builder(self) -> CommitBuilder:
        return CommitBuilder(self.client, branch=self.branch)

    def timestamp(self) -> str:
        return iso_timestamp(self.ids.clock())

    def load(self, resource: Resource) -> Any:
        data = self.client.read_json(resource.path, default=resource.empty(), ref=self.branch)
        expected = list if resource.is_collection else dict
        if not isinstance(data, expected):
            raise MalformedResponse(f"{resource.path} should hold a JSON {expected.__name__}")
        return data

    def commit(self, files: dict[str, Any], message: str | None = None) -> CommitResult:
        return self.builder().commit_files(files, message)

    def _commit_one(self, resource: Resource, content: Any) -> CommitResult:
        message = FILE_COMMIT.substitute(path=resource.path, timestamp=self.timestamp())
        return self.commit({resource.path: content}, message)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def list_records(self, resource: Resource) -> Any:
        data = self.load(resource)
        if resource in SORTED_RESOURCES:
            return sort_by_order(data)
        return data

    def create_record(self, resource: Resource, data: Any) -> dict[str, Any]:
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        records = self.load(resource)
        updated, _ = apply_changes(
            resource, records, ChangeSet(create=[data]), ids=self.ids, timestamp=self.timestamp()
        )
        created = updated[-1]
        self._commit_one(resource, updated)
        logger.info("Created %s id=%s", resource.value, created["id"])
        return created

    def update_record(self, resource: Resource, record_id: str | None, data: Any) -> dict[str, Any]:
        if not record_id:
            raise ValidationError(f"{resource.label} ID is required")
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        records = self.load(resource)
        if not any(r.get("id") == record_id for r in records):
            raise NotFound(f"{resource.label} not found")
        updated, _ = apply_changes(
            resource,
            records,
            ChangeSet(update=[{**data, "id": record_id}]),
            ids=self.ids,
            timestamp=self.timestamp(),
        )
        self._commit_one(resource, updated)
        return next(r for r in updated if r.get("id") == record_id)

    def delete_record(self, resource: Resource, record_id: str | None) -> None:
        if not record_id:
            raise ValidationError(f"{resource.label} ID is required")
        records = self.load(resource)
        updated, changed = apply_changes(resource, records, ChangeSet(delete=[record_id]), ids=self.ids)
        if not changed:
            raise NotFound(f"{resource.label} not found")
        self._commit_one(resource, updated)
        logger.info("Deleted %s id=%s", resource.value, record_id)

    # ------------------------------------------------------------------
    # Site content
    # ------------------------------------------------------------------

    def get_content(self) -> dict[str, Any]:
        return self.load(Resource.CONTENT)

    def update_content(self, data: Any) -> dict[str, Any]:
        current = self.load(Resource.CONTENT)
        updated = merge_content(current, data, self.timestamp())
        self._commit_one(Resource.CONTENT, updated)
        return updated
