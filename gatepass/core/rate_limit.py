"""Rate limiting configuration."""
import os
from slowapi import Limiter
from slowapi.util import get_remote_address


def get_client_ip(request):
    """Get client IP for rate limiting, considering proxies."""
    # Check X-Forwarded-For header (from reverse proxies)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return forwarded.split(",")[0].strip()

    # Fall back to direct connection IP
    return get_remote_address(request)


# Create rate limiter instance
# Uses Redis if REDIS_URL is set (Docker/production), falls back to memory for local dev
limiter = Limiter(
    key_func=get_client_ip,
    default_limits=["120/minute"],  # Global default
    storage_uri=os.getenv("REDIS_URL", "memory://"),
    strategy="fixed-window"
)

# Rate limit definitions for different endpoint categories
# A 6-digit code has 900,000 values, so every endpoint that accepts one is
# throttled well below brute-force speed.
RATE_LIMITS = {
    # Login OTP delivery and verification
    "otp_send": "5/minute",
    "otp_verify": "10/minute",

    # Gate check-in by OTP or QR payload
    "otp_checkin": "30/minute",

    # Emergency alerts
    "alert": "10/minute",
}
