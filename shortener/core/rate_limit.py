"""
Rate Limiting Configuration

Uses slowapi with IP-based keys. Limits are per endpoint group; the limiter
can be switched off through settings (rate_limit_enabled) for tests and
trusted deployments.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)

# Format: "count/period" (e.g., "10/minute" means 10 requests per minute)
RATE_LIMITS = {
    "shorten": "60/minute",
    "batch": "10/minute",
    "redirect": "300/minute",
    "user": "60/minute",
    "stats": "30/minute",
}
