"""Client-side admin session: loaded records plus locally staged edits.

Nothing staged here reaches the repository until ``flush`` hands the batch
payload to a save callable. A failed flush keeps every pending change so the
admin can retry without re-entering anything.
"""

from __future__ import annotations

import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from store.errors import ValidationError
from store.models import BATCH_RESOURCES, TEMP_ID_PREFIX, Resource, is_temp_id
from store.resources import ChangeSet

logger = logging.getLogger(__name__)

STAGED_RESOURCES = tuple(r for r in BATCH_RESOURCES if r.is_collection)


def _new_changes() -> dict[Resource, ChangeSet]:
    return {r: ChangeSet() for r in STAGED_RESOURCES}


@dataclass
class AdminSession:
    """Tracks everything the admin has loaded and staged in this session."""

    original: dict[Resource, Any] = field(default_factory=dict)
    pending: dict[Resource, ChangeSet] = field(default_factory=_new_changes)
    pending_content: dict[str, Any] | None = None
    clock: Callable[[], float] = time.time
    _temp_counter: int = 0

    def load(self, resource: Resource, data: Any) -> None:
        self.original[resource] = copy.deepcopy(data)

    def _temp_id(self) -> str:
        self._temp_counter += 1
        return f"{TEMP_ID_PREFIX}{int(self.clock() * 1000)}_{self._temp_counter}"

    # ------------------------------------------------------------------
    # Staging
    # ------------------------------------------------------------------

    def stage_create(self, resource: Resource, data: dict[str, Any]) -> str:
        temp_id = self._temp_id()
        self.pending[resource].create.append({**data, "id": temp_id})
        return temp_id

    def stage_update(self, resource: Resource, record_id: str, data: dict[str, Any]) -> None:
        changes = self.pending[resource]
        if is_temp_id(record_id):
            # Still unsaved: edit the staged create in place.
            for index, item in enumerate(changes.create):
                if item["id"] == record_id:
                    changes.create[index] = {**data, "id": record_id}
                    return
            raise ValidationError(f"No staged {resource.label.lower()} with id {record_id}")

        entry = {**data, "id": record_id}
        for index, item in enumerate(changes.update):
            if item["id"] == record_id:
                changes.update[index] = entry
                return
        changes.update.append(entry)

    def stage_delete(self, resource: Resource, record_id: str) -> None:
        changes = self.pending[resource]
        changes.create = [c for c in changes.create if c["id"] != record_id]
        changes.update = [u for u in changes.update if u["id"] != record_id]
        if not is_temp_id(record_id) and record_id not in changes.delete:
            changes.delete.append(record_id)

    def stage_content(self, content: dict[str, Any]) -> None:
        self.pending_content = copy.deepcopy(content)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def display_records(self, resource: Resource) -> list[dict[str, Any]]:
        """Loaded records with every staged change applied, for rendering."""
        records = copy.deepcopy(self.original.get(resource) or [])
        changes = self.pending[resource]
        for update in changes.update:
            for index, record in enumerate(records):
                if record.get("id") == update["id"]:
                    records[index] = {**record, **update}
        records.extend(copy.deepcopy(changes.create))
        return [r for r in records if r.get("id") not in changes.delete]

    def display_content(self) -> dict[str, Any]:
        if self.pending_content is not None:
            return copy.deepcopy(self.pending_content)
        return copy.deepcopy(self.original.get(Resource.CONTENT) or {})

    def pending_count(self) -> int:
        count = sum(c.count() for c in self.pending.values())
        return count + (1 if self.pending_content else 0)

    @property
    def dirty(self) -> bool:
        return self.pending_count() > 0

    def to_batch_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for resource, changes in self.pending.items():
            if changes.is_empty():
                continue
            payload[resource.value] = {
                "create": [{k: v for k, v in item.items() if k != "id"} for item in changes.create],
                "update": copy.deepcopy(changes.update),
                "delete": [i for i in changes.delete if not is_temp_id(i)],
            }
        if self.pending_content:
            payload[Resource.CONTENT.value] = {"update": copy.deepcopy(self.pending_content)}
        return payload

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Discard every staged change."""
        self.pending = _new_changes()
        self.pending_content = None

    def flush(self, save: Callable[[dict[str, Any]], Any]) -> Any:
        """Send the staged changes through ``save``; clear them only if it succeeds."""
        if not self.dirty:
            return None
        payload = self.to_batch_payload()
        logger.info("Flushing %d pending change(s)", self.pending_count())
        result = save(payload)
        self.reset()
        return result
