"""Prometheus metrics shared by photo routes."""

from prometheus_client import Counter


UPLOAD_ATTEMPTS = Counter(
    "photo_upload_attempts_total",
    "Total number of files submitted for upload",
)
UPLOAD_SUCCESSES = Counter(
    "photo_upload_success_total",
    "Total number of files stored successfully",
)
UPLOAD_FAILURES = Counter(
    "photo_upload_failure_total",
    "Total number of files that failed to upload",
    ["reason"],
)
PHOTO_DELETIONS = Counter(
    "photo_deletions_total",
    "Total number of photos deleted",
)
