# storefront/services/payment_client.py
from dataclasses import asdict, dataclass

import requests
from requests import RequestException

from storefront.domain.errors import CheckoutError
from storefront.utils.settings import PAYMENT_SESSION_URL, HTTP_TIMEOUT_SECONDS
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    url: str | None = None
    session_id: str | None = None
    client_secret: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


class PaymentClient:
    """
    Client of the payment-session API.

    No retries: a repeated POST could open a second payment session.
    """

    def __init__(self, url: str | None = None, timeout: float = HTTP_TIMEOUT_SECONDS):
        self.url = url or PAYMENT_SESSION_URL
        self.timeout = timeout

    def create_session(self, payload: dict) -> CheckoutResult:
        logger.info(f"PaymentClient POST {self.url} ({len(payload.get('lineItems', []))} line items)")

        try:
            resp = requests.post(self.url, json=payload, timeout=self.timeout)
        except RequestException as e:
            logger.error(f"Checkout error: {e}")
            raise CheckoutError("Checkout failed. Try again.") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not resp.ok:
            message = data.get("error") or f"Payment provider returned HTTP {resp.status_code}"
            logger.error(f"Payment session rejected: {message}")
            raise CheckoutError(message)

        url = data.get("url")
        client_secret = data.get("client_secret")
        if not url and not client_secret:
            logger.error("Payment session response has neither url nor client_secret")
            raise CheckoutError("Checkout failed. Try again.")

        return CheckoutResult(
            url=url,
            session_id=data.get("sessionId"),
            client_secret=client_secret,
        )
