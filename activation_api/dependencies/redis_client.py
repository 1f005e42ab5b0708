from typing import Optional

from fastapi import Request
from redis.asyncio import Redis


def get_redis_client(request: Request) -> Optional[Redis]:
    """The shared Redis client, or None when REDIS_URL is not configured."""
    return getattr(request.app.state, "redis_client", None)
