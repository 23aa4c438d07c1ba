"""
Per-client rate limiting for expensive endpoints.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from correlab.core.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def upload_rate_limit() -> str:
    """Uploads allowed per client IP, read from settings on every request."""
    return f"{get_settings().rate_limit_per_minute}/minute"
