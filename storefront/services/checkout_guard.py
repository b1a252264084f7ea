# storefront/services/checkout_guard.py
import json

import redis

from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, CHECKOUT_GUARD_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PENDING = "pending"


class CheckoutGuard:
    """
    One payment session per checkout attempt.

    -acquire: SET NX, only the first request of an attempt gets through
    -complete: the key keeps the provider's answer, repeats get it back
    -release: a failed attempt frees the key so the user can retry
    """

    def __init__(self, client: redis.Redis | None = None, ttl: int = CHECKOUT_GUARD_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def key(session_id: str, attempt_id: str) -> str:
        return f"checkout:{session_id}:{attempt_id}"

    @redis_retry()
    def acquire(self, session_id: str, attempt_id: str) -> bool:
        key = self.key(session_id, attempt_id)
        logger.info(f"Acquire checkout guard {key}")
        #SET checkout:<session>:<attempt> "pending" NX EX 900
        return bool(self.redis.set(name=key, value=PENDING, nx=True, ex=self.ttl))

    @redis_retry()
    def result(self, session_id: str, attempt_id: str) -> dict | None:
        """Stored provider answer, or None while the attempt is still in flight."""
        raw = self.redis.get(self.key(session_id, attempt_id))
        if not raw or raw == PENDING:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None

    @redis_retry()
    def complete(self, session_id: str, attempt_id: str, result: dict) -> None:
        self.redis.set(self.key(session_id, attempt_id), json.dumps(result), ex=self.ttl)

    @redis_retry()
    def release(self, session_id: str, attempt_id: str) -> None:
        key = self.key(session_id, attempt_id)
        logger.info(f"Release checkout guard {key}")
        self.redis.delete(key)
