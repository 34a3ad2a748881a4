# marketplace/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import redis

from marketplace.domain.errors import GatewayUnavailableError
from marketplace.utils.settings import GATEWAY_RETRY_ATTEMPTS


def gateway_retry():
    #tylko bledy przejsciowe (timeout, 5xx), not found i odrzucenia nie sa ponawiane
    return retry(
        reraise=True,
        stop=stop_after_attempt(GATEWAY_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=0.3, min=0.3, max=3),
        retry=retry_if_exception_type(GatewayUnavailableError),
    )


def redis_retry():
    return retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(redis.RedisError),
    )
