"""Per-client request rate limiting for the whole API.

Every route shares one default limit keyed by the client address
(`RATE_LIMIT`, e.g. "100 per 15 minutes"). `SlowAPIMiddleware` applies it, so
routes need no decorators. Test mode never limits.
"""

import structlog
from slowapi import Limiter
from slowapi.util import get_remote_address

from genstudio.core.config import Settings

logger = structlog.get_logger(__name__)


def create_limiter(settings: Settings) -> Limiter:
    """Build the application limiter from settings.

    Returns:
        Limiter stored in `app.state.limiter` (where the middleware looks for it)
    """
    enabled = settings.rate_limit_enabled and not settings.is_test

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        storage_uri=settings.rate_limit_storage_uri,
        headers_enabled=True,
        enabled=enabled,
    )

    logger.debug("rate_limit.configured", enabled=enabled, limit=settings.rate_limit)
    return limiter
