"""
Object key helpers for uploaded originals and their previews.
"""

import os
import re
import time
from typing import Optional

from .image_format import ImageFormat

_UNSAFE_CHARS = re.compile(r'[^a-z0-9._-]+')


def sanitize_filename(filename: str) -> str:
    """
    Make a filename safe for use in an object key.

    Lowercases, replaces runs of unsafe characters with '-', and strips
    directory components and leading/trailing separators.
    """
    name = os.path.basename(filename.replace('\\', '/')).lower()
    stem, ext = os.path.splitext(name)
    stem = _UNSAFE_CHARS.sub('-', stem).strip('-.') or 'image'
    ext = _UNSAFE_CHARS.sub('', ext)
    return f"{stem}{ext}"


def preview_filename(filename: str, preview_format: ImageFormat) -> str:
    """Name of the preview for ``filename`` (e.g. 'beach-preview.jpg')."""
    stem = os.path.splitext(sanitize_filename(filename))[0]
    return f"{stem}-preview{preview_format.extension}"


def build_upload_key(
    folder: str,
    filename: str,
    timestamp_ms: Optional[int] = None,
    unique_id: Optional[str] = None
) -> str:
    """
    Key for an uploaded file: '{folder}/{timestamp}-{filename}', or
    '{folder}/{timestamp}-{unique_id}-{filename}' when ``unique_id`` is given.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    stamp = f"{timestamp_ms}-{unique_id}" if unique_id else str(timestamp_ms)
    return f"{folder.strip('/')}/{stamp}-{filename}"
