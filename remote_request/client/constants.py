"""HTTP constants for the request client.

Centralizes all HTTP-related constants to avoid duplication across modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_MIN = 100
HTTP_STATUS_MAX = 599
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300

# Redirect statuses
HTTP_STATUS_MOVED_PERMANENTLY = 301
HTTP_STATUS_FOUND = 302
HTTP_STATUS_SEE_OTHER = 303
HTTP_STATUS_TEMPORARY_REDIRECT = 307
REDIRECT_STATUSES = frozenset(
    {
        HTTP_STATUS_MOVED_PERMANENTLY,
        HTTP_STATUS_FOUND,
        HTTP_STATUS_SEE_OTHER,
        HTTP_STATUS_TEMPORARY_REDIRECT,
    }
)

# Redirect budget
DEFAULT_REDIRECT_LIMIT = 5
MAX_REDIRECT_LIMIT = 100

# Timeouts (seconds)
DEFAULT_TIMEOUT_SECONDS = 5.0
MAX_TIMEOUT_SECONDS = 3600.0

# Chunk size for streaming reads
DEFAULT_CHUNK_SIZE = 8192

# Request headers stripped when a redirect leaves the original origin
CROSS_ORIGIN_STRIPPED_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "proxy-authorization",
    }
)

DEFAULT_USER_AGENT = "remote-request/1.0"
DEFAULT_ACCEPT = "*/*"
DOWNLOAD_PREFIX = "remote-request-"
