"""
Rate limiting middleware for API endpoints
"""
import time
from collections import defaultdict
from fastapi import Request, HTTPException
from typing import Dict, Optional
import logging

import jwt
import redis

from app.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Per-client rate limiter with minute and hour windows

    With Redis configured, counters are fixed windows kept in Redis
    (INCR + EXPIRE) so they expire on their own and are shared between
    workers. Without Redis, a sliding window is kept in memory and expired
    entries are evicted on every check.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        requests_per_hour: int = 1000,
        redis_client: Optional[redis.Redis] = None,
        prefix: str = "rate_limit:"
    ):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self.redis_client = redis_client
        self.prefix = prefix

        # Storage: {client_id: [(timestamp, count)]}
        self.minute_tracker: Dict[str, list] = defaultdict(list)
        self.hour_tracker: Dict[str, list] = defaultdict(list)

    def _get_client_id(self, request: Request) -> str:
        """Extract client identifier from request"""
        auth_header = request.headers.get("authorization", "")
        if auth_header.lower().startswith("bearer "):
            try:
                payload = jwt.decode(
                    auth_header[7:],
                    settings.JWT_SECRET_KEY,
                    algorithms=[settings.JWT_ALGORITHM]
                )
                return f"user:{payload['sub']}"
            except (jwt.InvalidTokenError, KeyError):
                pass  # rejected later by the auth dependency

        # Fallback to IP address
        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _cleanup_old_entries(self, tracker: Dict[str, list], window_seconds: int):
        """Remove entries older than window"""
        current_time = time.time()
        cutoff_time = current_time - window_seconds

        for client_id in list(tracker.keys()):
            tracker[client_id] = [
                (ts, count) for ts, count in tracker[client_id]
                if ts > cutoff_time
            ]

            # Remove empty entries
            if not tracker[client_id]:
                del tracker[client_id]

    def _count_redis(self, client_id: str, window_seconds: int) -> int:
        """Increment and return the client's counter for the current window"""
        key = f"{self.prefix}{client_id}:{window_seconds}"
        current = self.redis_client.incr(key)
        if current == 1:
            self.redis_client.expire(key, window_seconds)
        return current

    def _count_local(self, client_id: str, current_time: float) -> tuple:
        """Record the request in memory and return (minute_count, hour_count)"""
        self._cleanup_old_entries(self.minute_tracker, 60)
        self._cleanup_old_entries(self.hour_tracker, 3600)

        self.minute_tracker[client_id].append((current_time, 1))
        self.hour_tracker[client_id].append((current_time, 1))

        minute_requests = sum(count for _, count in self.minute_tracker[client_id])
        hour_requests = sum(count for _, count in self.hour_tracker[client_id])
        return minute_requests, hour_requests

    def _raise_limited(self, client_id: str, limit: int, window: str, retry_after: int):
        logger.warning(f"Rate limit exceeded ({window}): {client_id}")
        raise HTTPException(
            status_code=429,
            detail={
                "error": "rate_limit_exceeded",
                "message": f"Too many requests. Limit: {limit} requests per {window}",
                "retry_after": retry_after
            }
        )

    async def check_rate_limit(self, request: Request) -> None:
        """
        Check if request exceeds rate limits

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        client_id = self._get_client_id(request)
        current_time = time.time()

        minute_requests = hour_requests = None
        if self.redis_client is not None:
            try:
                minute_requests = self._count_redis(client_id, 60)
                hour_requests = self._count_redis(client_id, 3600)
            except redis.RedisError as e:
                logger.error(f"Redis rate limit error: {str(e)}")
                minute_requests = hour_requests = None

        if minute_requests is None:
            minute_requests, hour_requests = self._count_local(client_id, current_time)

        if minute_requests > self.requests_per_minute:
            self._raise_limited(client_id, self.requests_per_minute, "minute", 60)

        if hour_requests > self.requests_per_hour:
            self._raise_limited(client_id, self.requests_per_hour, "hour", 3600)

        logger.debug(f"Rate limit check passed: {client_id} (minute: {minute_requests}, hour: {hour_requests})")

    def reset(self) -> None:
        """Forget all in-memory counters"""
        self.minute_tracker.clear()
        self.hour_tracker.clear()


def _build_redis_client() -> Optional[redis.Redis]:
    if not settings.REDIS_URL:
        return None
    try:
        client = redis.from_url(settings.REDIS_URL, socket_connect_timeout=5)
        client.ping()
        return client
    except redis.RedisError as e:
        logger.warning(f"Redis unavailable for rate limiting: {str(e)}. Using in-memory counters.")
        return None


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR,
    redis_client=_build_redis_client()
)
