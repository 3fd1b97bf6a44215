"""
Rate limiting for API endpoints
"""
import time
import threading
from collections import defaultdict, deque
from typing import Deque, Dict
from fastapi import Request, HTTPException
import logging

from coursetrack.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory sliding-window rate limiter keyed by client IP
    
    Limits are per process; a multi-worker deployment multiplies them.
    """
    
    MINUTE = 60
    HOUR = 3600
    
    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()
    
    def _get_client_id(self, request: Request) -> str:
        return request.client.host if request.client else "unknown"
    
    def check_rate_limit(self, request: Request) -> None:
        """
        Record a request and enforce both windows
        
        Raises:
            HTTPException: 429 if a limit is exceeded
        """
        client_id = self._get_client_id(request)
        now = time.monotonic()
        
        with self._lock:
            timestamps = self._requests[client_id]
            
            # Hour window is the longest; older entries are never needed
            while timestamps and timestamps[0] <= now - self.HOUR:
                timestamps.popleft()
            
            minute_count = sum(1 for ts in timestamps if ts > now - self.MINUTE)
            
            if minute_count >= self.requests_per_minute:
                self._reject(client_id, "minute", self.requests_per_minute, self.MINUTE)
            if len(timestamps) >= self.requests_per_hour:
                self._reject(client_id, "hour", self.requests_per_hour, self.HOUR)
            
            timestamps.append(now)
    
    def reset(self) -> None:
        with self._lock:
            self._requests.clear()
    
    def _reject(self, client_id: str, window: str, limit: int, retry_after: int) -> None:
        logger.warning(f"Rate limit exceeded ({window}): {client_id}")
        raise HTTPException(
            status_code=429,
            detail={
                "error": "rate_limit_exceeded",
                "message": f"Too many requests. Limit: {limit} requests per {window}",
                "retry_after": retry_after
            }
        )


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
