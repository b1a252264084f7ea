# storefront/services/checkout_service.py
from decimal import Decimal
from typing import List, Mapping, Sequence

from redis.exceptions import RedisError

from storefront.domain.errors import (
    CheckoutError,
    CheckoutInProgressError,
    CurrencyConversionError,
    EmptyCartError,
)
from storefront.domain.schemas import CartItem
from storefront.services.checkout_guard import CheckoutGuard
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import CheckoutResult, PaymentClient
from storefront.services.price_converter import convert_strict, to_minor_units
from storefront.services.rate_provider import RateProvider
from storefront.utils.settings import CHECKOUT_SUCCESS_URL, CHECKOUT_CANCEL_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def build_line_items(
    items: Sequence[CartItem], currency: str, rates: Mapping[str, Decimal]
) -> List[dict]:
    """
    Cart items priced in the user's currency, unit amounts in minor units.

    Raises CurrencyConversionError when an item has no rate to `currency`.
    """
    return [
        {
            "price_data": {
                "currency": currency.lower(),
                "product_data": {"name": item.title, **({"images": [item.image]} if item.image else {})},
                "unit_amount": to_minor_units(convert_strict(item.price, item.currency, currency, rates), currency),
            },
            "quantity": item.quantity,
        }
        for item in items
    ]


class CheckoutService:
    """
    Use Case: hosted checkout for the session's cart.

    1. rejects an empty cart before any network call
    2. prices the cart in the user's currency, refusing what cannot be converted
    3. lets only one request per checkout attempt reach the provider
    4. hands back the hosted page URL (or the client secret)

    The cart itself is never modified here.
    """

    def __init__(
        self,
        payment_client: PaymentClient,
        guard: CheckoutGuard,
        rate_provider: RateProvider,
        notifier: NotificationService | None = None,
    ):
        self.payment_client = payment_client
        self.guard = guard
        self.rate_provider = rate_provider
        self.notifier = notifier

    @staticmethod
    def require_items(items: Sequence[CartItem]) -> None:
        if not items:
            raise EmptyCartError("Your cart is empty!")

    def start_checkout(
        self,
        session_id: str,
        attempt_id: str,
        items: Sequence[CartItem],
        currency: str,
        customer_email: str | None = None,
        user_id: str | None = None,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> CheckoutResult:
        self.require_items(items)

        rates = self.rate_provider.get_exchange_rates()
        try:
            line_items = build_line_items(items, currency, rates)
        except CurrencyConversionError as e:
            logger.error(f"Checkout of session {session_id} refused: {e}")
            raise CheckoutError(f"Prices cannot be converted to {currency} right now. Try again.") from e

        try:
            acquired = self.guard.acquire(session_id, attempt_id)
            previous = None if acquired else self.guard.result(session_id, attempt_id)
        except RedisError as e:
            logger.error(f"Checkout guard unavailable: {e}")
            raise CheckoutError("Checkout is temporarily unavailable. Try again.") from e

        if not acquired:
            if previous:
                logger.info(f"Checkout attempt {attempt_id} already has a session, reusing it")
                return CheckoutResult(**previous)
            raise CheckoutInProgressError("Checkout is already in progress")

        payload = {
            "lineItems": line_items,
            "successUrl": success_url or CHECKOUT_SUCCESS_URL,
            "cancelUrl": cancel_url or CHECKOUT_CANCEL_URL,
        }
        if customer_email:
            payload["customerEmail"] = customer_email
        if user_id:
            payload["userId"] = user_id

        try:
            result = self.payment_client.create_session(payload)
        except CheckoutError:
            self._release(session_id, attempt_id)
            raise

        try:
            self.guard.complete(session_id, attempt_id, result.to_dict())
        except RedisError as e:
            #payment session is open already, keep going
            logger.error(f"Could not store checkout result for attempt {attempt_id}: {e}")

        logger.info(f"Checkout session {result.session_id} created for session {session_id}")
        if self.notifier:
            self.notifier.checkout_started(session_id, result.session_id, user_id)
        return result

    def _release(self, session_id: str, attempt_id: str) -> None:
        try:
            self.guard.release(session_id, attempt_id)
        except RedisError as e:
            logger.error(f"Could not release checkout guard for attempt {attempt_id}: {e}")
