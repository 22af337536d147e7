"""Image uploads committed into ``assets/<folder>/``.

Images arrive as ``data:image/<type>;base64,...`` URLs or as
``{"data": ..., "filename": ...}`` objects. Raster images are checked to
decode with Pillow; they are stored byte-for-byte as received.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from typing import Any

from PIL import Image, UnidentifiedImageError

from messages.templates import UPLOAD_COMMIT
from store.config import Settings
from store.crud import DataStore
from store.errors import ValidationError
from store.models import BASE36_ALPHABET, UploadedFile

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r"^data:image/([a-zA-Z0-9+.-]+);base64,(.+)$", re.S)
FOLDER_RE = re.compile(r"^[A-Za-z0-9_-]+(?:/[A-Za-z0-9_-]+)*$")
FILENAME_RE = re.compile(r"^[A-Za-z0-9._-]+$")
VALID_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "svg", "bmp"}
MIN_BASE64_LENGTH = 10


def _extension(subtype: str) -> str:
    ext = subtype.lower()
    if ext == "jpeg":
        return "jpg"
    if ext == "svg+xml":
        return "svg"
    return ext if ext in VALID_EXTENSIONS else "png"


def _decode(data: str) -> bytes:
    if len(data) < MIN_BASE64_LENGTH:
        raise ValidationError("Invalid base64 data URL: Base64 data is empty or too short")
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 data: {e}") from e


def verify_image(content: bytes, extension: str) -> None:
    """Reject payloads that are not the image they claim to be."""
    if extension == "svg":
        if b"<svg" not in content[:2048].lower():
            raise ValidationError("SVG upload does not contain an <svg> element")
        return
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValidationError(f"Uploaded data is not a readable image: {e}") from e


class ImageUploader:
    def __init__(self, store: DataStore, settings: Settings) -> None:
        self.store = store
        self.settings = settings

    def _generated_name(self, extension: str) -> str:
        suffix = "".join(self.store.ids.rng.choices(BASE36_ALPHABET, k=9))
        return f"image-{self.store.ids.clock()}-{suffix}.{extension}"

    def parse_image(self, item: Any) -> tuple[str, bytes]:
        """Return ``(filename, bytes)`` for one entry of the ``images`` list."""
        if isinstance(item, str) and item.startswith("data:"):
            match = DATA_URL_RE.match(item)
            if not match:
                raise ValidationError(
                    "Invalid base64 data URL format. Expected: data:image/<type>;base64,<data>"
                )
            extension = _extension(match.group(1))
            content = _decode(match.group(2))
            filename = self._generated_name(extension)
        elif isinstance(item, dict) and isinstance(item.get("data"), str):
            data = item["data"]
            extension = "webp"
            if data.startswith("data:"):
                match = DATA_URL_RE.match(data)
                if not match:
                    raise ValidationError("Invalid base64 data URL format in object")
                extension = _extension(match.group(1))
                data = match.group(2)
            content = _decode(data)
            filename = item.get("filename") or ""
            if filename:
                if not FILENAME_RE.match(filename):
                    raise ValidationError(f"Invalid filename: {filename}")
                if "." in filename:
                    extension = filename.rsplit(".", 1)[1].lower()
            else:
                filename = self._generated_name(extension)
        else:
            raise ValidationError(
                "Invalid image data format. Expected base64 data URL string or object with data property."
            )

        verify_image(content, extension)
        return filename, content

    def upload(self, body: Any) -> list[UploadedFile]:
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object")
        images = body.get("images")
        if not images or not isinstance(images, list):
            raise ValidationError(
                "No images provided. Expected array of base64 data URLs or file data."
            )
        folder = body.get("folder") or "images"
        if not isinstance(folder, str) or not FOLDER_RE.match(folder):
            raise ValidationError(f"Invalid upload folder: {folder!r}")

        files: dict[str, bytes] = {}
        uploaded: list[UploadedFile] = []
        for item in images:
            filename, content = self.parse_image(item)
            path = f"assets/{folder}/{filename}"
            if path in files:
                raise ValidationError(f"Duplicate upload filename: {filename}")
            files[path] = content
            uploaded.append(UploadedFile(
                filename=filename,
                path=path,
                url=self.settings.raw_url(path),
                size=len(content),
            ))

        message = UPLOAD_COMMIT.substitute(
            filenames=", ".join(f.filename for f in uploaded),
            timestamp=self.store.timestamp(),
        )
        self.store.commit(files, message)
        logger.info("Uploaded %d image(s) to assets/%s", len(uploaded), folder)
        return uploaded
