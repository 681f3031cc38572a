"""Tests for UploadStats class."""

import time
from previewgen.upload_stats import UploadStats


class TestUploadStats:
    """Tests for UploadStats class."""

    def test_elapsed_seconds(self):
        """Test elapsed time calculation."""
        stats = UploadStats()
        stats.start_time = time.time() - 10

        assert stats.elapsed_seconds >= 10
        assert stats.elapsed_seconds < 12

    def test_rate_per_minute(self):
        """Test rate per minute."""
        stats = UploadStats()
        stats.start_time = time.time() - 60
        stats.processed = 100

        rate = stats.rate_per_minute

        assert rate >= 90
        assert rate <= 110

    def test_completed_and_remaining(self):
        """Test completed and remaining counts."""
        stats = UploadStats(total_to_process=100)
        stats.processed = 50
        stats.skipped = 10
        stats.errors = 5

        assert stats.completed_count == 65
        assert stats.remaining_count == 35

    def test_compression_ratio(self):
        stats = UploadStats(bytes_original=1000, bytes_preview=50)
        assert stats.compression_ratio == 0.05

    def test_compression_ratio_no_originals(self):
        assert UploadStats().compression_ratio == 0.0

    def test_error_details_not_shared(self):
        first, second = UploadStats(), UploadStats()
        first.error_details.append('boom')
        assert second.error_details == []
