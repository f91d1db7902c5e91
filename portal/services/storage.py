# portal/services/storage.py
from __future__ import annotations

import os
import re
import uuid
from dataclasses import dataclass

from flask import current_app, url_for
from werkzeug.datastructures import FileStorage


# =========================================================
# Types
# =========================================================
@dataclass(frozen=True)
class StoredFile:
    path: str
    public_url: str


class StorageError(Exception):
    pass


# =========================================================
# Name helpers
# =========================================================
def sanitize_filename(name: str | None) -> str:
    """Every character outside [A-Za-z0-9._-] becomes an underscore."""
    cleaned = re.sub(r"[^A-Za-z0-9._-]", "_", (name or "").strip())
    return cleaned[:150] or "file"


def sanitize_folder(folder: str | None, default: str = "uploads") -> str:
    parts = [p for p in (folder or "").strip().replace("\\", "/").split("/") if p]
    if not parts:
        return default
    if any(p in (".", "..") for p in parts):
        raise StorageError("Invalid folder")
    return "/".join(sanitize_filename(p) for p in parts)


def object_path(folder: str, owner_id, filename: str | None) -> str:
    return f"{folder}/{owner_id}/{uuid.uuid4()}-{sanitize_filename(filename)}"


# =========================================================
# Storage helpers ("files" bucket on local disk)
# =========================================================
def _files_storage_dir() -> str:
    """
    Priority:
      1) Flask config FILES_STORAGE_DIR
      2) instance_path/files
    """
    base = current_app.config.get("FILES_STORAGE_DIR")
    if not base:
        base = os.path.join(current_app.instance_path, "files")

    os.makedirs(base, exist_ok=True)
    return base


def _absolute(path: str) -> str:
    base = os.path.realpath(_files_storage_dir())
    abs_path = os.path.realpath(os.path.join(base, path))
    if os.path.commonpath([base, abs_path]) != base:
        raise StorageError("Path escapes storage root")
    return abs_path


def public_url(path: str) -> str:
    base = (current_app.config.get("PUBLIC_FILES_BASE_URL") or "").strip()
    if base:
        return f"{base.rstrip('/')}/{path}"
    return url_for("functions.serve_file", path=path, _external=True)


# =========================================================
# Store / load
# =========================================================
def store_upload(file: FileStorage | None, *, folder: str | None, owner_id) -> StoredFile:
    if file is None or not file.filename:
        raise StorageError("No file provided")

    path = object_path(sanitize_folder(folder), owner_id, file.filename)

    try:
        abs_path = _absolute(path)
        os.makedirs(os.path.dirname(abs_path), exist_ok=True)
        file.save(abs_path)
    except OSError as exc:
        raise StorageError(str(exc)) from exc

    return StoredFile(path=path, public_url=public_url(path))


def resolve_stored_path(path: str) -> str:
    """Absolute path for a stored object; StorageError if missing or outside the root."""
    abs_path = _absolute(path)
    if not os.path.isfile(abs_path):
        raise StorageError("File not found")
    return abs_path


def delete_stored(path: str) -> None:
    """Remove a stored object; already-missing files are fine."""
    try:
        os.remove(_absolute(path))
    except FileNotFoundError:
        return
    except (OSError, StorageError):
        current_app.logger.exception("Could not remove stored file %s", path)
