from unittest.mock import MagicMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from marketplace.services.rate_limit_service import RateLimitService, RedisCache


def test_allows_until_limit_then_blocks(cache):
    limiter = RateLimitService(cache, limit=2, window=60, namespace="verify")

    first = limiter.hit("10.0.0.1")
    second = limiter.hit("10.0.0.1")
    third = limiter.hit("10.0.0.1")

    assert first.allowed and first.remaining == 1
    assert second.allowed and second.remaining == 0
    assert not third.allowed
    assert third.reset_in == 60
    assert cache.get("verify:10.0.0.1") == 3


def test_identifiers_are_counted_separately(cache):
    limiter = RateLimitService(cache, limit=1, window=60)

    assert limiter.hit("a").allowed
    assert limiter.hit("b").allowed
    assert not limiter.hit("a").allowed


def test_fails_open_when_cache_is_down():
    cache = MagicMock()
    cache.incr.side_effect = RedisConnectionError("connection refused")

    result = RateLimitService(cache, limit=1, window=60).hit("a")

    assert result.allowed is True


@patch("marketplace.services.rate_limit_service.redis.Redis.from_url")
def test_redis_cache_increments_with_lua(mock_from_url):
    client = MagicMock()
    client.eval.return_value = 1
    mock_from_url.return_value = client

    cache = RedisCache("redis://localhost:6379/0")

    assert cache.incr("verify:a", 60) == 1
    script, numkeys, key, ttl = client.eval.call_args.args
    assert "INCR" in script and "EXPIRE" in script
    assert (numkeys, key, ttl) == (1, "verify:a", 60)
    mock_from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)


@patch("marketplace.services.rate_limit_service.redis.Redis.from_url")
def test_redis_cache_retries_transient_errors(mock_from_url):
    client = MagicMock()
    client.ttl.side_effect = [RedisConnectionError("reset"), 42]
    mock_from_url.return_value = client

    assert RedisCache().ttl("verify:a") == 42
    assert client.ttl.call_count == 2
