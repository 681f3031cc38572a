"""
LocalClient - Filesystem stand-in for S3Client.
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

from .config import LocalConfig


class LocalClient:
    """
    Stores objects as files under ``root_path/prefix``.

    Exposes the same methods as S3Client so the uploader can use either.
    """

    IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.webp', '.tif', '.tiff', '.bmp'}

    def __init__(self, config: LocalConfig, logger: Optional[logging.Logger] = None):
        """
        Initialize local client.

        Args:
            config: Local storage configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    def _path(self, key: str) -> Path:
        base = Path(self.config.base_path).resolve()
        path = (base / key.lstrip('/')).resolve()
        if base != path and base not in path.parents:
            raise ValueError(f"Key escapes storage root: {key}")
        return path

    def list_images(self, folder: str = '') -> Iterator[dict]:
        """
        List image files under a folder.

        Yields:
            Dict with 'key' (relative to the prefix), 'size', 'last_modified'
        """
        base = Path(self.config.base_path)
        start = base / folder if folder else base
        if not start.is_dir():
            return

        for dirpath, _, filenames in os.walk(start):
            for filename in sorted(filenames):
                if os.path.splitext(filename)[1].lower() not in self.IMAGE_EXTENSIONS:
                    continue
                path = Path(dirpath) / filename
                stat = path.stat()
                yield {
                    'key': path.relative_to(base).as_posix(),
                    'size': stat.st_size,
                    'last_modified': datetime.fromtimestamp(stat.st_mtime).isoformat(),
                }

    def object_exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def download_object(self, key: str) -> bytes:
        return self._path(key).read_bytes()

    def upload_object(
        self,
        key: str,
        data: bytes,
        content_type: str = 'application/octet-stream'
    ) -> str:
        """Write an object to disk. Content type is not stored."""
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return key

    def delete_object(self, key: str) -> bool:
        """Delete a file, logging rather than raising on failure."""
        try:
            self._path(key).unlink()
            self.logger.info(f"Deleted {key}")
            return True
        except (OSError, ValueError) as e:
            self.logger.error(f"Error deleting {key}: {e}")
            return False

    def delete_objects(self, keys: List[str]) -> int:
        deleted = sum(1 for key in keys if self.delete_object(key))
        if keys:
            self.logger.info(f"Deleted {deleted} of {len(keys)} objects")
        return deleted

    def get_presigned_url(self, key: str, expires_in: Optional[int] = None) -> str:
        """Local files have no signed URLs; return a file:// URL."""
        return self._path(key).as_uri()
