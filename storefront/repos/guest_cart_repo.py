# storefront/repos/guest_cart_repo.py
import json
from typing import List

import redis
from pydantic import ValidationError

from storefront.domain.schemas import CartItem
from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL, GUEST_CART_KEY, GUEST_CART_TTL_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

CART_VERSION = "1.0.0"


class GuestCartRepo:
    """
    Guest cart kept per storefront session in Redis.

    Payload: {"version": "1.0.0", "items": [...]}; the key expires after
    GUEST_CART_TTL_SECONDS without writes.
    """

    def __init__(self, client: redis.Redis | None = None, ttl: int = GUEST_CART_TTL_SECONDS):
        self.redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def key(session_id: str) -> str:
        return f"{GUEST_CART_KEY}:{session_id}"

    @redis_retry()
    def get(self, session_id: str) -> List[CartItem]:
        raw = self.redis.get(self.key(session_id))
        if not raw:
            return []

        try:
            payload = json.loads(raw)
        except ValueError as e:
            logger.error(f"Error parsing stored cart for session {session_id}: {e}")
            self.redis.delete(self.key(session_id))
            return []

        #legacy format: a bare list of items
        if isinstance(payload, list):
            stored = payload
        elif isinstance(payload, dict) and payload.get("version") == CART_VERSION and isinstance(payload.get("items"), list):
            stored = payload["items"]
        else:
            logger.warning(f"Discarding guest cart with unknown format for session {session_id}")
            self.redis.delete(self.key(session_id))
            return []

        items = []
        for entry in stored:
            try:
                item = CartItem.model_validate(entry)
            except ValidationError:
                logger.warning(f"Dropping invalid guest cart entry for session {session_id}")
                continue
            items.append(item.model_copy(update={"owner_id": None}))
        return items

    @redis_retry()
    def set(self, session_id: str, items: List[CartItem]) -> None:
        payload = {
            "version": CART_VERSION,
            "items": [i.model_dump(mode="json", exclude={"owner_id"}) for i in items],
        }
        self.redis.set(self.key(session_id), json.dumps(payload), ex=self.ttl)

    @redis_retry()
    def remove(self, session_id: str) -> None:
        self.redis.delete(self.key(session_id))
