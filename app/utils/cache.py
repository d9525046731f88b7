"""
Redis cache for per-user progress summaries
"""
import redis
import json
import logging
from typing import Optional, Any, Dict
from app.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis-backed JSON cache

    Without REDIS_URL, or when the server cannot be reached at startup,
    reads miss and writes are dropped. Datetimes are stored as ISO strings
    and parsed back by the response schemas.
    """

    def __init__(self, redis_url: str = None, redis_client: Optional[redis.Redis] = None):
        self.redis_client = redis_client
        if redis_client is not None:
            return

        redis_url = settings.REDIS_URL if redis_url is None else redis_url
        if not redis_url:
            logger.info("REDIS_URL not set. Progress caching disabled.")
            return

        try:
            client = redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=5)
            client.ping()
            self.redis_client = client
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {str(e)}. Progress caching disabled.")

    @property
    def enabled(self) -> bool:
        return self.redis_client is not None

    @staticmethod
    def progress_key(user_id: int) -> str:
        return f"progress:{user_id}"

    def get(self, key: str) -> Optional[Any]:
        """Decoded value for key, or None on a miss or Redis error"""
        if not self.enabled:
            return None

        try:
            raw = self.redis_client.get(key)
        except redis.RedisError as e:
            logger.error(f"Cache get error for {key}: {str(e)}")
            return None

        if raw is None:
            logger.debug(f"Cache miss: {key}")
            return None
        logger.debug(f"Cache hit: {key}")
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: int = None) -> bool:
        """
        Store value as JSON with an expiry

        Args:
            key: Cache key
            value: JSON-serializable value; datetimes become strings
            ttl: Seconds to keep the entry (PROGRESS_CACHE_TTL by default)

        Returns:
            True when the value was written
        """
        if not self.enabled:
            return False

        ttl = ttl or settings.PROGRESS_CACHE_TTL
        try:
            self.redis_client.setex(key, ttl, json.dumps(value, default=str))
        except redis.RedisError as e:
            logger.error(f"Cache set error for {key}: {str(e)}")
            return False
        return True

    def delete(self, key: str) -> bool:
        if not self.enabled:
            return False

        try:
            self.redis_client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Cache delete error for {key}: {str(e)}")
            return False
        return True

    def get_progress(self, user_id: int) -> Optional[Dict[str, Any]]:
        return self.get(self.progress_key(user_id))

    def set_progress(self, user_id: int, progress: Dict[str, Any]) -> bool:
        return self.set(self.progress_key(user_id), progress)

    def invalidate_progress(self, user_id: int) -> bool:
        """Drop a user's cached summary after they submit an attempt"""
        return self.delete(self.progress_key(user_id))


# Global instance
cache_service = CacheService()
