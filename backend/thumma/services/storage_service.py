# Overview: Object storage for attachments and images (local filesystem backend).

"""
Object storage

upload_file() stores an uploaded file under UPLOAD_FOLDER/<folder>/ and
returns its public URL under PUBLIC_UPLOAD_BASE_URL. Stored names are
<epoch-ms>-<original name with spaces replaced by '-'>, so two uploads of the
same file never collide.
"""

from __future__ import annotations

import logging
import os
import re

from flask import current_app
from werkzeug.utils import secure_filename

from ..errors import ThummaError, ValidationError
from thumma.time_utils import epoch_ms

logger = logging.getLogger(__name__)


# Folders the application writes to
FOLDERS = ("bills", "invoices", "products", "suppliers", "users", "store")

_FOLDER_RE = re.compile(r"^[a-z0-9_-]+$")


class StorageError(ThummaError):
    """Raised when a file cannot be stored."""
    http_status = 503


def storage_name(filename: str, now_ms: int | None = None) -> str:
    """'Bill March 2024.pdf' -> '1718000000000-Bill-March-2024.pdf'."""
    now_ms = now_ms if now_ms is not None else epoch_ms()
    base = secure_filename((filename or "").replace(" ", "-")) or "file"
    return f"{now_ms}-{base}"


def _folder_path(folder: str) -> str:
    if not folder or not _FOLDER_RE.match(folder):
        raise ValidationError(f"Invalid upload folder: {folder}")
    return os.path.join(current_app.config["UPLOAD_FOLDER"], folder)


def public_url(folder: str, name: str) -> str:
    base = current_app.config["PUBLIC_UPLOAD_BASE_URL"].rstrip("/")
    return f"{base}/{folder}/{name}"


def upload_file(file, folder: str) -> str:
    """
    Store a werkzeug FileStorage and return its public URL.

    Raises:
        ValidationError: no file or bad folder name
        StorageError: the filesystem rejected the write
    """
    if file is None or not getattr(file, "filename", None):
        raise ValidationError("file is required")

    directory = _folder_path(folder)
    name = storage_name(file.filename)
    try:
        os.makedirs(directory, exist_ok=True)
        file.save(os.path.join(directory, name))
    except OSError as exc:
        logger.warning("Upload to %s failed: %s", directory, exc)
        raise StorageError(f"Could not store file: {exc}") from exc

    url = public_url(folder, name)
    logger.info("Stored upload %s", url)
    return url
