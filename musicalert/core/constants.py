"""
Core constants used across the application. Keep these simple and documented.
"""

# A token is treated as expired this many seconds before its real expiry
TOKEN_SAFETY_MARGIN_SECONDS: int = 60

# Used when a 429 response has no usable Retry-After header
DEFAULT_RETRY_AFTER_SECONDS: int = 30

# Extra wait added after a rate-limit window before draining the queue
QUEUE_SAFETY_BUFFER_SECONDS: float = 1.0

MIN_LOOKBACK_DAYS: int = 1
MAX_LOOKBACK_DAYS: int = 14
MILLIS_PER_DAY: int = 24 * 60 * 60 * 1000

RELATED_ARTISTS_LIMIT: int = 5
MAX_SEED_ARTISTS: int = 5
MAX_RECOMMENDED_ARTISTS: int = 6

# Raw listing sizes for the releases view and for the new-release check
ARTIST_RELEASES_LISTING_LIMIT: int = 20
NEW_RELEASES_LISTING_LIMIT: int = 10

RELEASE_GROUPS: str = "single,album"
