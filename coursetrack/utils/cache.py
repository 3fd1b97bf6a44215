"""
Redis cache utility for reporting views
"""
import redis
import json
import logging
from typing import Optional, Any
from coursetrack.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """
    Redis-based cache for leaderboard results
    
    Every operation is a no-op when Redis is not configured or unreachable;
    callers fall back to computing the view.
    """
    
    LEADERBOARD_PREFIX = "leaderboard"
    
    def __init__(self, redis_url: Optional[str] = None, default_ttl: int = 60):
        self.default_ttl = default_ttl
        self.redis_client = None
        
        if not redis_url:
            logger.info("REDIS_URL not set. Caching disabled.")
            return
        
        try:
            self.redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None
    
    def leaderboard_key(self, limit: int, category: Optional[str] = None) -> str:
        """Deterministic key for a leaderboard query"""
        return f"{self.LEADERBOARD_PREFIX}:{category or 'all'}:{limit}"
    
    def get(self, key: str) -> Optional[Any]:
        """Return the cached JSON value or None"""
        if not self.redis_client:
            return None
        
        try:
            value = self.redis_client.get(key)
            if value:
                logger.debug(f"Cache hit: {key}")
                return json.loads(value)
            logger.debug(f"Cache miss: {key}")
            return None
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Cache get error: {str(e)}")
            return None
    
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a JSON-serializable value with a TTL"""
        if not self.redis_client:
            return False
        
        try:
            ttl = ttl or self.default_ttl
            self.redis_client.setex(key, ttl, json.dumps(value, default=str))
            logger.debug(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except (redis.RedisError, TypeError) as e:
            logger.warning(f"Cache set error: {str(e)}")
            return False
    
    def clear_leaderboards(self) -> bool:
        """Drop every cached leaderboard after progress changes"""
        if not self.redis_client:
            return False
        
        try:
            keys = list(self.redis_client.scan_iter(match=f"{self.LEADERBOARD_PREFIX}:*"))
            if keys:
                self.redis_client.delete(*keys)
                logger.debug(f"Cleared {len(keys)} leaderboard cache entries")
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache clear error: {str(e)}")
            return False


# Global instance
cache_service = CacheService(settings.REDIS_URL, default_ttl=settings.LEADERBOARD_CACHE_TTL)
