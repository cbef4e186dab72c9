from slowapi import Limiter
from slowapi.util import get_remote_address

from app.core.config import get_settings

settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.REDIS_URL,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    in_memory_fallback_enabled=True,
)

# Enqueue endpoints fan out to the scoring service, keep them tighter.
screening_limit = limiter.limit(settings.RATE_LIMIT_SCREENING)
