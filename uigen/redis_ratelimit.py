import os
import time
from typing import Optional, Tuple

import redis

from uigen import ratelimit

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
KEY_PREFIX = "uigen:rl"


class RedisRateLimiter:
    """
    Fixed-window limiter shared by every worker pointing at the same Redis.
    check_and_increment has the same return shape as uigen.ratelimit.
    """

    def __init__(
        self,
        redis_url: Optional[str] = None,
        window_seconds: Optional[int] = None,
        max_requests: Optional[int] = None,
        client: Optional["redis.Redis"] = None,
    ) -> None:
        self.window_seconds = int(window_seconds or ratelimit.WINDOW_SECONDS)
        self.max_requests = int(max_requests or ratelimit.MAX_REQUESTS)
        if client is None:
            # from_url does not connect until the first command
            client = redis.from_url((redis_url or REDIS_URL).strip() or REDIS_URL, decode_responses=True)
        self._client = client

    def window(self, now: int) -> Tuple[int, int]:
        """(start, reset_ts) of the window containing ``now``."""
        start = now - (now % self.window_seconds)
        return start, start + self.window_seconds

    def check_and_increment(self, bucket: str, key: str, now: Optional[int] = None) -> Tuple[bool, int, int]:
        now = now or int(time.time())
        start, reset_ts = self.window(now)
        counter = f"{KEY_PREFIX}:{(bucket or '').strip() or 'default'}:{(key or '').strip() or 'anon'}:{start}"

        pipe = self._client.pipeline()
        pipe.incr(counter, 1)
        pipe.expire(counter, self.window_seconds)
        used, _ = pipe.execute()

        used = int(used)
        return used <= self.max_requests, max(0, self.max_requests - used), reset_ts
