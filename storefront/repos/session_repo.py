# storefront/repos/session_repo.py
import json

import redis

from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, SESSION_TTL_SECONDS


class SessionRepo:
    """Per-browser-session values: the user currency and the signed-in user."""

    def __init__(self, client: redis.Redis | None = None, ttl: int = SESSION_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @redis_retry()
    def get_currency(self, session_id: str) -> dict | None:
        raw = self.redis.get(f"session:{session_id}:currency")
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict) or not data.get("currency"):
            return None
        return data

    @redis_retry()
    def set_currency(self, session_id: str, currency: str, country: str | None) -> None:
        value = json.dumps({"currency": currency, "country": country})
        self.redis.set(f"session:{session_id}:currency", value, ex=self.ttl)

    @redis_retry()
    def get_user_id(self, session_id: str) -> str | None:
        return self.redis.get(f"session:{session_id}:user") or None

    @redis_retry()
    def set_user_id(self, session_id: str, user_id: str | None) -> None:
        key = f"session:{session_id}:user"
        if user_id is None:
            self.redis.delete(key)
        else:
            self.redis.set(key, user_id, ex=self.ttl)
