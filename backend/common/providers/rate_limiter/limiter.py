"""Global rate limiter instance for SlowAPI."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from common.core.config import settings

# Multiple limits: both must be satisfied (whichever is hit first applies).
# Point rate_limit_storage_uri at Redis when running more than one pod.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=settings.rate_limit_default,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)
