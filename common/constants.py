"""Project-wide constants (chunk sizing, retry policy, fingerprinting, resume storage)."""

from pathlib import Path

MIN_CHUNK_SIZE_BYTES: int = 50 * 1024
MAX_CHUNK_SIZE_BYTES: int = 512 * 1024
PERCENT_PRECISION: float = 1.0  # progress granularity in percent per chunk

MAX_CHUNK_RETRIES: int = 10
RETRY_TIMEOUT_BASE_SECONDS: float = 5.0

FINGERPRINT_POINTS: int = 50
FINGERPRINT_MAX_WINDOW_BYTES: int = 100 * 1024
FINGERPRINT_MIN_FILE_SIZE_BYTES: int = 1 * 1024 * 1024

RESUME_STORE_MAX_BYTES: int = 500 * 1024
RESUME_RETENTION_SECONDS: int = 6 * 3600

FERRY_HOME: Path = Path.home() / ".ferry"
DEFAULT_CONFIG_PATH: Path = FERRY_HOME / "config.json"
DEFAULT_RESUME_STORE_PATH: Path = FERRY_HOME / "resume_store.json"

SESSION_ID_BASE: int = 1100000000
SESSION_ID_RANDOM_MIN: int = 10000000
SESSION_ID_RANDOM_MAX: int = 99999999

SUCCESS_STATUS_CODES: frozenset = frozenset({200, 201})

# Error codes reported in failure notifications
HTTP_ERROR: int = 1
IO_ERROR: int = 2
OTHER_ERROR: int = 4
