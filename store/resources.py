"""Resource files and the merge policy applied before anything is committed.

Every collection resource is a JSON list of records keyed by ``id``. Partial
updates are parsed into a typed patch per resource and merged explicitly:
fields present in the patch override, absent fields keep their stored value,
and ``updatedAt`` is refreshed.
"""

from __future__ import annotations

import copy
import logging
import random
import re
from dataclasses import dataclass, field, fields
from typing import Any, Callable, ClassVar

from store.errors import ValidationError
from store.models import (
    BASE36_ALPHABET,
    Resource,
    is_temp_id,
    iso_timestamp,
    now_ms,
    to_base36,
)

logger = logging.getLogger(__name__)

# Keys the server owns; clients may echo them back but never set them.
READ_ONLY_KEYS = frozenset({"id", "createdAt", "updatedAt"})


# ============================================================================
# Typed patches
# ============================================================================


@dataclass
class Patch:
    """Base for per-resource patches. ``None`` means "not provided"."""

    FIELD_TYPES: ClassVar[dict[str, type | tuple[type, ...]]] = {}

    @classmethod
    def from_dict(cls, data: Any, resource: Resource | None = None) -> Patch:
        if not isinstance(data, dict):
            raise ValidationError(f"Expected an object, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key in READ_ONLY_KEYS:
                continue
            if key not in known:
                what = resource.label if resource else cls.__name__
                raise ValidationError(f"Unknown field '{key}' for {what}")
            if value is None:
                continue
            expected = cls.FIELD_TYPES.get(key)
            # bool is an int subclass; an order of True is a client bug.
            if expected and (not isinstance(value, expected) or isinstance(value, bool)):
                raise ValidationError(f"Field '{key}' has the wrong type ({type(value).__name__})")
            values[key] = value
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def merge(self, record: dict[str, Any], timestamp: str) -> dict[str, Any]:
        merged = dict(record)
        merged.update(copy.deepcopy(self.to_dict()))
        merged["updatedAt"] = timestamp
        return merged


@dataclass
class ProductPatch(Patch):
    FIELD_TYPES: ClassVar[dict[str, type | tuple[type, ...]]] = {
        "name": str,
        "category": str,
        "price": (str, int, float),
        "description": str,
        "images": list,
        "image": str,
        "alt": str,
    }

    name: str | None = None
    category: str | None = None
    price: str | int | float | None = None
    description: str | None = None
    images: list[str] | None = None
    image: str | None = None
    alt: str | None = None


@dataclass
class CategoryPatch(Patch):
    FIELD_TYPES: ClassVar[dict[str, type | tuple[type, ...]]] = {"name": str, "order": int}

    name: str | None = None
    order: int | None = None

    def merge(self, record: dict[str, Any], timestamp: str) -> dict[str, Any]:
        # The id is derived from the original name and stays fixed on rename.
        merged = dict(record)
        if self.name:
            merged["name"] = self.name
        if self.order is not None:
            merged["order"] = self.order
        merged["updatedAt"] = timestamp
        return merged


@dataclass
class HeroPatch(Patch):
    FIELD_TYPES: ClassVar[dict[str, type | tuple[type, ...]]] = {"image": str, "alt": str, "title": str}

    image: str | None = None
    alt: str | None = None
    title: str | None = None


@dataclass
class CollectionPatch(Patch):
    FIELD_TYPES: ClassVar[dict[str, type | tuple[type, ...]]] = {
        "name": str,
        "order": int,
        "subcategories": list,
    }

    name: str | None = None
    order: int | None = None
    subcategories: list[dict[str, Any]] | None = None

    def merge(self, record: dict[str, Any], timestamp: str) -> dict[str, Any]:
        merged = super().merge(record, timestamp)
        if self.subcategories is not None:
            merged["subcategories"] = normalize_subcategories(self.subcategories)
        return merged


@dataclass
class ContentPatch(Patch):
    FIELD_TYPES: ClassVar[dict[str, type | tuple[type, ...]]] = {
        "siteName": str,
        "logo": str,
        "hero": dict,
        "features": list,
        "social": dict,
        "about": str,
        "email": str,
        "phone": str,
        "whatsapp": str,
        "policies": dict,
    }

    siteName: str | None = None
    logo: str | None = None
    hero: dict[str, Any] | None = None
    features: list[dict[str, Any]] | None = None
    social: dict[str, str] | None = None
    about: str | None = None
    email: str | None = None
    phone: str | None = None
    whatsapp: str | None = None
    policies: dict[str, Any] | None = None


PATCH_TYPES: dict[Resource, type[Patch]] = {
    Resource.PRODUCTS: ProductPatch,
    Resource.CATEGORIES: CategoryPatch,
    Resource.HERO: HeroPatch,
    Resource.COLLECTIONS: CollectionPatch,
    Resource.CONTENT: ContentPatch,
}


def parse_patch(resource: Resource, data: Any) -> Patch:
    return PATCH_TYPES[resource].from_dict(data, resource)


# ============================================================================
# Ids
# ============================================================================


def slugify(name: str) -> str:
    """Category id: lowercase, every other character becomes a dash, runs collapsed."""
    return re.sub(r"-+", "-", re.sub(r"[^a-z0-9]", "-", name.lower()))


def slugify_trimmed(name: str) -> str:
    return re.sub(r"(^-|-$)", "", re.sub(r"[^a-z0-9]+", "-", name.lower()))


def normalize_subcategories(items: list[Any]) -> list[dict[str, Any]]:
    result = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict) or not isinstance(item.get("name"), str) or not item["name"].strip():
            raise ValidationError("Each subcategory needs a name")
        name = item["name"].strip()
        order = item.get("order")
        result.append({
            "id": item.get("id") or slugify_trimmed(name),
            "name": name,
            "order": order if isinstance(order, int) and not isinstance(order, bool) else index,
        })
    return result


class IdGenerator:
    """Timestamp-based record ids. Clock and randomness are injectable for tests."""

    def __init__(self, clock: Callable[[], int] = now_ms, rng: random.Random | None = None) -> None:
        self.clock = clock
        self.rng = rng or random.Random()
        self._counter = 0

    def product_id(self) -> str:
        suffix = "".join(self.rng.choices(BASE36_ALPHABET, k=9))
        return f"{self.clock()}{suffix}"

    def sequential_id(self) -> str:
        """Hero ids: the timestamp plus a per-generator counter."""
        value = self.clock() + self._counter
        self._counter += 1
        return str(value)

    def collection_id(self, name: str) -> str:
        return f"{slugify_trimmed(name)}-{to_base36(self.clock())}"


# ============================================================================
# Change sets
# ============================================================================


@dataclass
class ChangeSet:
    create: list[dict[str, Any]] = field(default_factory=list)
    update: list[dict[str, Any]] = field(default_factory=list)
    delete: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any, resource: Resource) -> ChangeSet:
        if not isinstance(data, dict):
            raise ValidationError(f"'{resource.value}' must be an object with create/update/delete lists")
        unknown = set(data) - {"create", "update", "delete"}
        if unknown:
            raise ValidationError(f"Unknown operation(s) for {resource.value}: {', '.join(sorted(unknown))}")

        def as_list(key: str) -> list[Any]:
            value = data.get(key) or []
            if not isinstance(value, list):
                raise ValidationError(f"'{resource.value}.{key}' must be a list")
            return value

        changes = cls(create=as_list("create"), update=as_list("update"), delete=as_list("delete"))
        if any(not isinstance(item, dict) for item in changes.create + changes.update):
            raise ValidationError(f"'{resource.value}' create/update entries must be objects")
        if any(not isinstance(i, str) for i in changes.delete):
            raise ValidationError(f"'{resource.value}.delete' must list record ids")
        return changes

    def is_empty(self) -> bool:
        return not (self.create or self.update or self.delete)

    def count(self) -> int:
        return len(self.create) + len(self.update) + len(self.delete)

    def to_dict(self) -> dict[str, Any]:
        return {"create": self.create, "update": self.update, "delete": self.delete}


def _find(records: list[dict[str, Any]], record_id: str) -> int:
    for index, record in enumerate(records):
        if record.get("id") == record_id:
            return index
    return -1


def new_record(
    resource: Resource,
    data: dict[str, Any],
    records: list[dict[str, Any]],
    ids: IdGenerator,
    timestamp: str,
) -> dict[str, Any]:
    """Build a new record for ``resource``; ``records`` is the list it will join."""
    patch = parse_patch(resource, data)

    if resource is Resource.CATEGORIES:
        if not patch.name or not patch.name.strip():
            raise ValidationError("Category name is required")
        category_id = slugify(patch.name)
        if _find(records, category_id) != -1:
            raise ValidationError("Category with this name already exists")
        return {
            "id": category_id,
            "name": patch.name,
            "order": patch.order or len(records) + 1,
            "createdAt": timestamp,
        }

    if resource is Resource.COLLECTIONS:
        if not patch.name or not patch.name.strip():
            raise ValidationError("Collection name is required")
        given_id = data.get("id")
        collection_id = given_id if isinstance(given_id, str) and given_id and not is_temp_id(given_id) else None
        return {
            "id": collection_id or ids.collection_id(patch.name),
            "name": patch.name,
            "order": patch.order or len(records) + 1,
            "subcategories": normalize_subcategories(patch.subcategories or []),
            "createdAt": timestamp,
        }

    if resource is Resource.PRODUCTS:
        if not patch.name:
            raise ValidationError("Product name is required")
        record_id = ids.product_id()
    elif resource is Resource.HERO:
        if not patch.image:
            raise ValidationError("Hero image URL is required")
        record_id = ids.sequential_id()
    else:
        raise ValueError(f"{resource.value} does not hold records")

    return {"id": record_id, **copy.deepcopy(patch.to_dict()), "createdAt": timestamp}


def apply_changes(
    resource: Resource,
    records: list[dict[str, Any]],
    changes: ChangeSet,
    ids: IdGenerator | None = None,
    timestamp: str | None = None,
) -> tuple[list[dict[str, Any]], bool]:
    """Apply update, create and delete (in that order) to a copy of ``records``.

    Returns the new record list and whether it differs from the input. A
    resource whose list did not change must not be written.
    """
    if not resource.is_collection:
        raise ValueError("apply_changes works on list resources only")
    if not isinstance(records, list):
        raise ValidationError(f"{resource.path} does not hold a list")

    ids = ids or IdGenerator()
    timestamp = timestamp or iso_timestamp(ids.clock())
    result = [dict(r) for r in records]

    for update in changes.update:
        record_id = update.get("id")
        index = _find(result, record_id)
        if index == -1:
            logger.info("Skipping update for unknown %s id=%s", resource.value, record_id)
            continue
        result[index] = parse_patch(resource, update).merge(result[index], timestamp)

    for item in changes.create:
        result.append(new_record(resource, item, result, ids, timestamp))

    delete_ids = {i for i in changes.delete if not is_temp_id(i)}
    if delete_ids:
        result = [r for r in result if r.get("id") not in delete_ids]

    return result, result != records


def sort_by_order(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    def key(record: dict[str, Any]) -> int | float:
        order = record.get("order")
        return order if isinstance(order, (int, float)) and not isinstance(order, bool) else 0

    return sorted(records, key=key)


def replace_content(current: Any, data: Any) -> tuple[dict[str, Any], bool]:
    """Batch content save: the submitted object replaces the stored one."""
    content = ContentPatch.from_dict(data, Resource.CONTENT).to_dict()
    return content, content != current


def merge_content(current: Any, data: Any, timestamp: str) -> dict[str, Any]:
    """Single-resource content save: shallow-merge onto the stored object."""
    if not isinstance(current, dict):
        current = {}
    return ContentPatch.from_dict(data, Resource.CONTENT).merge(current, timestamp)
