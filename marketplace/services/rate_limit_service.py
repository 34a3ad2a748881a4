# marketplace/services/rate_limit_service.py
from dataclasses import dataclass
from typing import Protocol

import redis
from redis.exceptions import RedisError

from marketplace.utils.retry import redis_retry
from marketplace.utils.settings import REDIS_URL
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

#INCR + EXPIRE przy pierwszym trafieniu, atomowo w jednym skrypcie lua
#nikt nie wcisnie sie miedzy INCR a EXPIRE, wiec klucz nie zostanie bez TTL
_INCR_LUA = """
local current = redis.call('INCR', KEYS[1])
if current == 1 then
    redis.call('EXPIRE', KEYS[1], ARGV[1])
end
return current
"""


class Cache(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str, ttl: int) -> None: ...

    def ttl(self, key: str) -> int: ...

    def incr(self, key: str, ttl: int) -> int: ...


class RedisCache:
    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def get(self, key: str) -> str | None:
        return self.redis.get(key)

    @redis_retry()
    def set(self, key: str, value: str, ttl: int) -> None:
        self.redis.set(name=key, value=value, ex=ttl)

    @redis_retry()
    def ttl(self, key: str) -> int:
        return self.redis.ttl(key)

    @redis_retry()
    def incr(self, key: str, ttl: int) -> int:
        return int(self.redis.eval(_INCR_LUA, 1, key, ttl))


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_in: int


class RateLimitService:
    """
    Okno stale: limit trafien na identyfikator w `window` sekund.
    Cache wstrzykiwany, brak globalnego stanu w procesie.
    """

    def __init__(self, cache: Cache, limit: int, window: int, namespace: str = "rate_limit"):
        self.cache = cache
        self.limit = limit
        self.window = window
        self.namespace = namespace

    def hit(self, identifier: str) -> RateLimitResult:
        key = f"{self.namespace}:{identifier}"
        try:
            count = self.cache.incr(key, self.window)
            reset_in = self.cache.ttl(key)
        except RedisError as e:
            # fail open, limiter nie moze zablokowac weryfikacji platnosci
            logger.warning(f"Rate limiter unavailable for {key}: {e}")
            return RateLimitResult(allowed=True, remaining=self.limit, reset_in=0)

        if reset_in < 0:
            reset_in = self.window

        return RateLimitResult(
            allowed=count <= self.limit,
            remaining=max(self.limit - count, 0),
            reset_in=reset_in,
        )
