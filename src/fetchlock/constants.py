"""Constants for fetchlock."""

# Lock acquisition (seconds)
LOCK_TIMEOUT = 60.0
POLL_INTERVAL = 1.0
STALE_TIMEOUT = 300.0  # 5 minutes

# HTTP (seconds)
HTTP_TIMEOUT = 120.0
HTTP_RETRIES = 0
HTTP_RETRY_DELAY = 1.0
CHUNK_SIZE = 64 * 1024

LOCKS_DIR_NAME = ".locks"
LOCK_SUFFIX = ".lock"
PART_SUFFIX = ".part"
