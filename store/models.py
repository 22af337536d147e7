"""Data models shared across the store backend."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
TEMP_ID_PREFIX = "temp_"
FILE_MODE = "100644"


class Resource(str, Enum):
    PRODUCTS = "products"
    CATEGORIES = "categories"
    HERO = "hero"
    COLLECTIONS = "collections"
    CONTENT = "content"

    @property
    def path(self) -> str:
        return f"data/{self.value}.json"

    @property
    def is_collection(self) -> bool:
        """True for files holding a list of records keyed by ``id``."""
        return self is not Resource.CONTENT

    @property
    def label(self) -> str:
        return RESOURCE_LABELS[self]

    def empty(self) -> Any:
        return [] if self.is_collection else {}


RESOURCE_LABELS: dict[Resource, str] = {
    Resource.PRODUCTS: "Product",
    Resource.CATEGORIES: "Category",
    Resource.HERO: "Hero image",
    Resource.COLLECTIONS: "Collection",
    Resource.CONTENT: "Content",
}

# Resources the batch endpoint accepts, in the order they are processed.
BATCH_RESOURCES: tuple[Resource, ...] = (
    Resource.PRODUCTS,
    Resource.HERO,
    Resource.CONTENT,
    Resource.CATEGORIES,
    Resource.COLLECTIONS,
)


class SaveState(str, Enum):
    IDLE = "idle"
    RESOLVING_HEAD = "resolving_head"
    UPLOADING_BLOBS = "uploading_blobs"
    BUILDING_TREE = "building_tree"
    CREATING_COMMIT = "creating_commit"
    UPDATING_REF = "updating_ref"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Head:
    commit_sha: str
    tree_sha: str


@dataclass
class TreeEntry:
    path: str
    sha: str
    mode: str = FILE_MODE
    type: str = "blob"

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "mode": self.mode, "type": self.type, "sha": self.sha}


@dataclass
class CommitResult:
    commit_sha: str | None
    parent_sha: str | None = None
    tree_sha: str | None = None
    paths: list[str] = field(default_factory=list)

    @property
    def committed(self) -> bool:
        return self.commit_sha is not None


@dataclass
class ResourceResult:
    success: bool = True
    count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.count is not None:
            data["count"] = self.count
        return data


@dataclass
class BatchResult:
    results: dict[str, ResourceResult] = field(default_factory=dict)
    commit_sha: str | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": True}
        if self.commit_sha:
            body["message"] = "All changes saved successfully in a single commit"
            body["commitSha"] = self.commit_sha
        else:
            body["message"] = "No changes to save"
        body["results"] = {name: r.to_dict() for name, r in self.results.items()}
        return body


@dataclass
class UploadedFile:
    filename: str
    path: str
    url: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        return {"filename": self.filename, "path": self.path, "url": self.url, "size": self.size}


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_timestamp(ms: int | None = None) -> str:
    """Millisecond-precision UTC timestamp, e.g. ``2024-05-01T10:00:00.123Z``."""
    ms = now_ms() if ms is None else ms
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms % 1000:03d}Z"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_ALPHABET[rem])
    return "".join(reversed(digits))


def is_temp_id(record_id: Any) -> bool:
    return isinstance(record_id, str) and record_id.startswith(TEMP_ID_PREFIX)
