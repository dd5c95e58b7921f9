"""Constants used throughout the tweetloom library.

This module defines the API base URL, default client settings and the
inflation schemas for payload shapes that differ from the defaults.
"""

from methodfabric.inflate import InflationSchema

# Base URLs
TWITTER_API_BASE_URL = "https://api.twitter.com/1.1"
TWITTER_UPLOAD_BASE_URL = "https://upload.twitter.com/1.1"

# Default settings
DEFAULT_TIMEOUT: int = 30  # Default request timeout in seconds
DEFAULT_COUNT: int = 20  # Default number of statuses per timeline page
MAX_CURSOR_CALLS: int = 16  # Default bound for auto-cursoring loops

TWEETLOOM_VERSION: str = "0.1.0"
DEFAULT_USER_AGENT: str = f"tweetloom/{TWEETLOOM_VERSION}"

# rate_limit_status answers with "reset_time" rather than "created_at".
RATE_LIMIT_SCHEMA = InflationSchema(
    date_fields=frozenset(["reset_time"]), url_fields=frozenset()
)
DIRECT_MESSAGE_SCHEMA = InflationSchema(
    date_fields=frozenset(["created_at"]),
    url_fields=frozenset(["profile_image_url", "profile_image_url_https", "url"]),
)
METHOD_INFLATION_SCHEMAS: dict[str, InflationSchema] = {
    "rate_limit_status": RATE_LIMIT_SCHEMA,
    "direct_messages": DIRECT_MESSAGE_SCHEMA,
    "new_direct_message": DIRECT_MESSAGE_SCHEMA,
}
