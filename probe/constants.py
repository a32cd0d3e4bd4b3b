"""
Shared constants used across all probe modules.

Centralises magic numbers, default headers, and tunables so they live in
exactly one place.
"""

# ---------------------------------------------------------------------------
# HTTP headers
# ---------------------------------------------------------------------------

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
)

COMMON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "identity",
}

# ---------------------------------------------------------------------------
# Timing
# ---------------------------------------------------------------------------

DEFAULT_DURATION = 25            # hard cap in whole seconds
MIN_DURATION = 1
MAX_DURATION = 300

WARMUP_MS = 10_000               # no plateau checks before this (TCP slow-start)
BUCKET_MS = 1000                 # one rate bucket per second
PLATEAU_WINDOW = 3               # recent buckets compared against all earlier ones

CONNECT_TIMEOUT = 10.0
READ_TIMEOUT = 30.0

# ---------------------------------------------------------------------------
# Data transfer
# ---------------------------------------------------------------------------

CHUNK_SIZE = 2048
MIN_CHUNK_SIZE = 512
MAX_CHUNK_SIZE = 4 * 1024 * 1024

BYTES_PER_MB = 1024 * 1024
