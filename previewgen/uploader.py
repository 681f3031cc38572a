"""
Uploader - Stores a batch of uploaded images together with their previews.
"""

import logging
import mimetypes
import os
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional

from .errors import CacheBuildError
from .keys import build_upload_key, preview_filename, sanitize_filename
from .preview_generator import PreviewGenerator
from .upload_progress import UploadProgress
from .upload_stats import UploadStats

MAX_FILE_SIZE = 50 * 1024 * 1024


@dataclass
class UploadFile:
    """A file submitted for upload."""
    filename: str
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: str) -> 'UploadFile':
        """Read a file from disk, guessing its content type from the name."""
        content_type = mimetypes.guess_type(path)[0] or 'application/octet-stream'
        with open(path, 'rb') as f:
            data = f.read()
        return cls(filename=os.path.basename(path), data=data, content_type=content_type)


@dataclass
class UploadResult:
    """
    Outcome for a single file.

    Attributes:
        filename: Name of the uploaded file
        success: True if the original and preview were stored
        skipped: True if the file was rejected before processing
        original_key: Storage key of the original
        original_size: Size of the original in bytes
        preview_key: Storage key of the preview
        preview_width: Width of the stored preview
        preview_height: Height of the stored preview
        preview_size: Size of the stored preview in bytes
        error: Reason for failure or rejection
    """
    filename: str
    success: bool
    skipped: bool = False
    original_key: Optional[str] = None
    original_size: Optional[int] = None
    preview_key: Optional[str] = None
    preview_width: Optional[int] = None
    preview_height: Optional[int] = None
    preview_size: Optional[int] = None
    error: Optional[str] = None


class Uploader:
    """
    Uploads originals and their previews to storage.

    A file whose preview cannot be generated fails on its own; the rest of
    the batch carries on.
    """

    def __init__(
        self,
        storage,
        preview_generator: PreviewGenerator,
        folder: str,
        apply_watermark: bool = True,
        max_file_size: int = MAX_FILE_SIZE,
        workers: int = 1,
        dry_run: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize uploader.

        Args:
            storage: S3Client or LocalClient
            preview_generator: Preview generator instance
            folder: Storage folder for this batch (e.g. per contributor)
            apply_watermark: Watermark previews (False for clean gallery previews)
            max_file_size: Largest accepted original in bytes
            workers: Files processed concurrently
            dry_run: If True, validate only and store nothing
            logger: Optional logger instance
        """
        self.storage = storage
        self.preview_gen = preview_generator
        self.folder = folder
        self.apply_watermark = apply_watermark
        self.max_file_size = max_file_size
        self.workers = max(1, workers)
        self.dry_run = dry_run
        self.logger = logger or logging.getLogger(__name__)
        self.stats = UploadStats()
        self.results: List[UploadResult] = []

    def process_batch(
        self,
        files: List[UploadFile],
        progress: Optional[UploadProgress] = None
    ) -> UploadStats:
        """
        Upload every file in the batch.

        Args:
            files: Files to upload
            progress: Optional progress tracker

        Returns:
            UploadStats with results
        """
        self.stats = UploadStats(total_to_process=len(files))
        self.results = []

        mode_str = " [DRY RUN]" if self.dry_run else ""
        self.logger.info(
            f"Starting upload: {len(files)} files to {self.folder} "
            f"({self.workers} workers){mode_str}"
        )

        if self.workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                futures = [executor.submit(self.process_file, upload) for upload in files]
                for future in as_completed(futures):
                    self._record(future.result(), progress)
        else:
            for upload in files:
                self._record(self.process_file(upload), progress)

        self.logger.info(
            f"Upload complete: {self.stats.processed} uploaded, "
            f"{self.stats.skipped} skipped, {self.stats.errors} errors "
            f"({self.stats.elapsed_seconds:.1f}s)"
        )
        return self.stats

    def validate(self, upload: UploadFile) -> Optional[str]:
        """Return the reason a file is rejected, or None if it is acceptable."""
        if upload.size == 0:
            return f'File "{upload.filename}" is empty.'
        if upload.size > self.max_file_size:
            limit_mb = self.max_file_size // (1024 * 1024)
            return f'File "{upload.filename}" exceeds the {limit_mb}MB size limit.'
        if not upload.content_type.startswith('image/'):
            return f'File "{upload.filename}" is not a valid image type.'
        return None

    def process_file(self, upload: UploadFile) -> UploadResult:
        """Validate, generate the preview and store both objects."""
        reason = self.validate(upload)
        if reason:
            return UploadResult(filename=upload.filename, success=False, skipped=True, error=reason)

        if self.dry_run:
            return UploadResult(filename=upload.filename, success=True)

        try:
            preview = self.preview_gen.generate(upload.data, self.apply_watermark)
            if preview is None:
                return UploadResult(
                    filename=upload.filename,
                    success=False,
                    error=f'Failed to generate preview for "{upload.filename}".',
                )

            # Same-named files in one millisecond must not share keys
            timestamp = int(time.time() * 1000)
            unique_id = uuid.uuid4().hex[:8]
            original_key = build_upload_key(
                self.folder, sanitize_filename(upload.filename), timestamp, unique_id
            )
            preview_key = build_upload_key(
                self.folder, preview_filename(upload.filename, preview.format),
                timestamp, unique_id
            )

            self.logger.debug(f"Uploading: {original_key}")
            self.storage.upload_object(original_key, upload.data, upload.content_type)
            try:
                self.logger.debug(f"Uploading: {preview_key}")
                self.storage.upload_object(preview_key, preview.data, preview.content_type)
            except Exception:
                # Don't leave an original behind without its preview
                self.storage.delete_object(original_key)
                raise

            return UploadResult(
                filename=upload.filename,
                success=True,
                original_key=original_key,
                original_size=upload.size,
                preview_key=preview_key,
                preview_width=preview.width,
                preview_height=preview.height,
                preview_size=preview.size,
            )

        except CacheBuildError:
            raise
        except Exception as e:
            return UploadResult(filename=upload.filename, success=False, error=str(e))

    def delete_uploads(self, results: List[UploadResult]) -> int:
        """
        Delete stored originals and previews for the given results.

        Returns:
            Number of objects deleted
        """
        keys = []
        for result in results:
            keys.extend(k for k in (result.original_key, result.preview_key) if k)
        if not keys:
            return 0
        return self.storage.delete_objects(keys)

    def _record(self, result: UploadResult, progress: Optional[UploadProgress]) -> None:
        """Fold a file result into the stats. Runs on the calling thread only."""
        self.results.append(result)

        if result.skipped:
            self.stats.skipped += 1
            self.logger.warning(f"Skipped: {result.error}")
            if progress:
                progress.on_file_skipped(result.filename, result.error)
        elif not result.success:
            error_msg = f"Error processing {result.filename}: {result.error}"
            self.logger.error(error_msg)
            self.stats.errors += 1
            self.stats.error_details.append(error_msg)
            if progress:
                progress.on_file_processed(result.filename, success=False, error=result.error)
        elif self.dry_run:
            self.stats.processed += 1
            if progress:
                progress.on_dry_run(result.filename)
            else:
                self.logger.info(f"[DRY RUN] Would upload: {result.filename}")
        else:
            self.stats.processed += 1
            self.stats.bytes_original += result.original_size or 0
            self.stats.bytes_preview += result.preview_size or 0
            if progress:
                progress.on_file_processed(
                    result.filename, success=True, preview_size=result.preview_size
                )
            else:
                self.logger.info(
                    f"Uploaded: {result.filename} (preview {result.preview_width}x"
                    f"{result.preview_height}, {result.preview_size} bytes) "
                    f"[{self.stats.processed}/{self.stats.total_to_process}]"
                )

        if progress:
            progress.on_progress_update(self.stats)
