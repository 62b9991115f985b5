"""
rate_limit.py — Global rate limiter instance.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address. Only the publish endpoint opts
in: it writes to both the media store and the row store.

Usage in routes:
    from fastapi import Request
    from festmap.core.rate_limit import limiter

    @router.post("")
    @limiter.limit(settings.publish_rate_limit)
    async def my_endpoint(request: Request, payload: MyRequest):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
