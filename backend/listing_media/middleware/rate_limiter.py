# backend/listing_media/middleware/rate_limiter.py

"""
Rate Limiter - sliding window limits for upload endpoints.

Tracks the timestamps of recent requests per client and rejects the
request that would exceed max_requests within window_seconds.
"""

import asyncio
import time
from collections import defaultdict, deque
from typing import Any, Deque, Dict, Tuple

from fastapi import Request

from ..enums import LogEmoji, LoggerName, LogSource
from ..services.logger import get_service_logger

logger = get_service_logger(LoggerName.MIDDLEWARE, LogSource.MIDDLEWARE)


class SlidingWindowRateLimiter:
    """
    Sliding window rate limiter implementation.

    Tracks requests per client within a time window and enforces limits.
    """

    def __init__(self) -> None:
        self._requests: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()

    async def is_allowed(
        self, client_id: str, max_requests: int, window_seconds: int
    ) -> Tuple[bool, Dict[str, Any]]:
        """
        Check if request is allowed within rate limits.

        Args:
            client_id: Unique identifier for client (IP, user ID, etc.)
            max_requests: Maximum requests allowed in window
            window_seconds: Time window in seconds

        Returns:
            Tuple of (is_allowed, rate_limit_info)
        """
        current_time = time.time()
        window_start = current_time - window_seconds

        async with self._lock:
            request_times = self._requests[client_id]

            while request_times and request_times[0] <= window_start:
                request_times.popleft()

            current_requests = len(request_times)
            allowed = current_requests < max_requests
            if allowed:
                request_times.append(current_time)

            # Oldest request leaving the window frees the next slot
            reset_at = (
                request_times[0] + window_seconds if request_times else current_time
            )

        info = {
            "limit": max_requests,
            "remaining": max(0, max_requests - current_requests - (1 if allowed else 0)),
            "reset": int(reset_at),
            "retry_after": max(1, int(reset_at - current_time)),
            "window_seconds": window_seconds,
        }

        if not allowed:
            logger.warning(
                f"Rate limit exceeded for {client_id}: "
                f"{current_requests}/{max_requests} requests in {window_seconds}s window",
                emoji=LogEmoji.SECURITY,
            )

        return allowed, info

    async def cleanup_old_entries(self, max_age_seconds: int = 3600) -> int:
        """
        Drop clients with no requests in the last max_age_seconds.

        Returns:
            Number of client entries cleaned up
        """
        cutoff_time = time.time() - max_age_seconds

        async with self._lock:
            stale = []
            for client_id, request_times in self._requests.items():
                while request_times and request_times[0] < cutoff_time:
                    request_times.popleft()
                if not request_times:
                    stale.append(client_id)

            for client_id in stale:
                del self._requests[client_id]

        return len(stale)

    async def reset(self) -> None:
        async with self._lock:
            self._requests.clear()


def get_client_identifier(request: Request) -> str:
    """
    Extract client identifier for rate limiting.

    Uses the first X-Forwarded-For address when behind a proxy.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()
    else:
        client_ip = request.client.host if request.client else "unknown"

    return f"ip:{client_ip}"
