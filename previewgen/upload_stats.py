"""
UploadStats - Statistics for a batch upload run.
"""

import time
from dataclasses import dataclass, field
from typing import List


@dataclass
class UploadStats:
    """
    Statistics for a batch upload run.

    Attributes:
        total_to_process: Files in the batch
        processed: Uploaded with a preview
        skipped: Rejected before processing (size/type checks)
        errors: Failed preview generation or upload
        bytes_original: Total bytes of originals uploaded
        bytes_preview: Total bytes of previews uploaded
        start_time: Start timestamp
        error_details: List of error messages
    """
    total_to_process: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    bytes_original: int = 0
    bytes_preview: int = 0
    start_time: float = field(default_factory=time.time)
    error_details: List[str] = field(default_factory=list)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time in seconds."""
        return time.time() - self.start_time

    @property
    def rate_per_second(self) -> float:
        """Processing rate in files per second."""
        if self.elapsed_seconds > 0:
            return self.processed / self.elapsed_seconds
        return 0.0

    @property
    def rate_per_minute(self) -> float:
        """Processing rate in files per minute."""
        return self.rate_per_second * 60

    @property
    def completed_count(self) -> int:
        """Total completed (processed + skipped + errors)."""
        return self.processed + self.skipped + self.errors

    @property
    def remaining_count(self) -> int:
        """Remaining to process."""
        return self.total_to_process - self.completed_count

    @property
    def compression_ratio(self) -> float:
        """Preview bytes as a fraction of original bytes."""
        if self.bytes_original > 0:
            return self.bytes_preview / self.bytes_original
        return 0.0
