"""
UploadProgress - Tracks and displays batch upload progress.
"""

import logging
from typing import Optional

from .upload_stats import UploadStats


class UploadProgress:
    """
    Tracks and displays upload progress with optional per-file output.
    """

    def __init__(
        self,
        show_files: bool = False,
        log_interval: int = 25,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.

        Args:
            show_files: If True, print each file as it's processed
            log_interval: Log summary progress every N files (when not show_files)
            logger: Optional logger instance
        """
        self.show_files = show_files
        self.log_interval = log_interval
        self.logger = logger or logging.getLogger(__name__)
        self.last_logged = 0

    def on_file_processed(
        self,
        filename: str,
        success: bool,
        preview_size: Optional[int] = None,
        error: Optional[str] = None
    ) -> None:
        """
        Called when a file is processed.

        Args:
            filename: Name of the uploaded file
            success: Whether the upload succeeded
            preview_size: Size of the generated preview (if success)
            error: Error message (if failed)
        """
        if self.show_files:
            if success:
                print(f"  [OK] {filename} -> preview {self._format_bytes(preview_size)}")
            else:
                print(f"  [ERROR] {filename} -> {error or 'failed'}")

    def on_file_skipped(self, filename: str, reason: str) -> None:
        """Called when a file is rejected before processing."""
        if self.show_files:
            print(f"  [SKIP] {filename} -> {reason}")

    def on_dry_run(self, filename: str) -> None:
        """Called in dry-run mode."""
        if self.show_files:
            print(f"  [DRY RUN] {filename} -> would upload with preview")

    def on_progress_update(self, stats: UploadStats) -> None:
        """
        Called after each file to report overall progress.

        Args:
            stats: Current upload statistics
        """
        total_done = stats.completed_count

        if not self.show_files and total_done - self.last_logged >= self.log_interval:
            self.last_logged = total_done
            self.logger.info(
                f"Progress: {stats.processed} uploaded, {stats.errors} errors, "
                f"{stats.skipped} skipped ({stats.rate_per_minute:.1f}/min, "
                f"{stats.remaining_count} left)"
            )

    @staticmethod
    def _format_bytes(bytes_val: Optional[int]) -> str:
        """Format bytes as human-readable string."""
        if bytes_val is None:
            return "unknown"
        for unit in ['B', 'KB', 'MB', 'GB']:
            if bytes_val < 1024:
                return f"{bytes_val:.1f} {unit}"
            bytes_val /= 1024
        return f"{bytes_val:.1f} TB"

    def __call__(self, stats: UploadStats) -> None:
        """Allow use as callback for stats updates."""
        self.on_progress_update(stats)
