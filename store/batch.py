"""Batch save: every pending admin change, one commit."""

from __future__ import annotations

import logging
from typing import Any

from messages.templates import BATCH_COMMIT
from store.crud import DataStore
from store.errors import ValidationError
from store.models import BATCH_RESOURCES, BatchResult, Resource, ResourceResult
from store.resources import ChangeSet, apply_changes, replace_content

logger = logging.getLogger(__name__)


def parse_batch(body: Any) -> dict[Resource, Any]:
    """Validate the payload shape and key it by resource."""
    if not isinstance(body, dict):
        raise ValidationError("Batch body must be a JSON object")
    allowed = {r.value: r for r in BATCH_RESOURCES}
    unknown = sorted(set(body) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown resource(s) in batch: {', '.join(unknown)}")

    sections: dict[Resource, Any] = {}
    for resource in BATCH_RESOURCES:
        section = body.get(resource.value)
        if not section:
            continue
        if resource is Resource.CONTENT:
            if not isinstance(section, dict):
                raise ValidationError("'content' must be an object with an 'update' field")
            if section.get("update"):
                sections[resource] = section["update"]
        else:
            sections[resource] = ChangeSet.from_dict(section, resource)
    return sections


def process_batch(store: DataStore, body: Any) -> BatchResult:
    """Apply a ``{resource: {create, update, delete}}`` payload as a single commit.

    Resources whose file would not change are left out of the commit. When no
    file changes at all, nothing is written and no commit is created.
    """
    sections = parse_batch(body)
    timestamp = store.timestamp()
    files: dict[str, Any] = {}
    result = BatchResult()

    for resource, section in sections.items():
        current = store.load(resource)
        if resource is Resource.CONTENT:
            content, changed = replace_content(current, section)
            if changed:
                files[resource.path] = content
                result.results[resource.value] = ResourceResult()
            continue

        records, changed = apply_changes(resource, current, section, ids=store.ids, timestamp=timestamp)
        logger.info(
            "%s: %d change(s) requested, file %s",
            resource.value, section.count(), "changed" if changed else "unchanged",
        )
        if changed:
            files[resource.path] = records
            result.results[resource.value] = ResourceResult(count=len(records))

    if not files:
        logger.info("Batch produced no file changes")
        return result

    commit = store.commit(files, BATCH_COMMIT.substitute(timestamp=timestamp))
    result.commit_sha = commit.commit_sha
    return result
