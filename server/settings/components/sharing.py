"""Encrypted sharing settings: expiry, upload size, rate limits, sweep."""

from server.settings.components import config

# Hours until an uploaded blob expires when the client sends no TTL
DEFAULT_EXPIRY_HOURS = config('DEFAULT_EXPIRY_HOURS', cast=int, default=24)

# Longest TTL a client may request (30 days)
MAX_EXPIRY_HOURS = config('MAX_EXPIRY_HOURS', cast=int, default=720)

# Largest accepted ciphertext
MAX_FILE_SIZE_MB = config('MAX_FILE_SIZE_MB', cast=int, default=50)

# One window shared by the auth, upload and download policies
RATE_LIMIT_WINDOW_SECONDS = config(
    'RATE_LIMIT_WINDOW_SECONDS',
    cast=int,
    default=900,
)
# Download ceiling; uploads get half of it
RATE_LIMIT_MAX_REQUESTS = config(
    'RATE_LIMIT_MAX_REQUESTS',
    cast=int,
    default=100,
)
AUTH_RATE_LIMIT_MAX = config('AUTH_RATE_LIMIT_MAX', cast=int, default=5)

# Key limits on X-Forwarded-For only behind a proxy that overwrites it
RATE_LIMIT_TRUST_FORWARDED_FOR = config(
    'RATE_LIMIT_TRUST_FORWARDED_FOR',
    cast=bool,
    default=False,
)

# Pause between passes of `sweep_expired_files --interval`
SWEEP_INTERVAL_SECONDS = config(
    'SWEEP_INTERVAL_SECONDS',
    cast=int,
    default=3600,
)
