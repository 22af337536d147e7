"""Commit message and admin notification templates."""

from __future__ import annotations

from string import Template

# --- Commit messages ---

BATCH_COMMIT = Template("Batch update via admin panel - $timestamp")

FILE_COMMIT = Template("Update $path via admin panel - $timestamp")

UPLOAD_COMMIT = Template("Upload $filenames via admin panel - $timestamp")

# --- Admin panel notifications ---

STAGED_CREATE = Template('$label added locally. Click "Save All Changes" to commit.')

STAGED_UPDATE = Template('$label changes saved locally. Click "Save All Changes" to commit.')

STAGED_DELETE = Template('$label marked for deletion. Click "Save All Changes" to commit.')

SAVE_SUCCESS = Template("All changes saved successfully in a single commit! ($short_sha)")

SAVE_FAILED = Template("Error saving changes: $error")

UPLOAD_SUCCESS = Template("Successfully uploaded $count file(s)")

NOTIFICATIONS: dict[str, Template] = {
    "create": STAGED_CREATE,
    "update": STAGED_UPDATE,
    "delete": STAGED_DELETE,
}
