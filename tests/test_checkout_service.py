"""
Tests for storefront/services/checkout_service.py, checkout_guard.py and payment_client.py.

Covers:
- an empty cart never reaches the payment provider
- one payment session per checkout attempt, failed attempts can be retried
- line items are priced in the user's currency, in minor units
- a cart that cannot be converted is refused, never sent unconverted
- provider errors surface as CheckoutError
"""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

from storefront.domain.errors import (
    CheckoutError,
    CheckoutInProgressError,
    CurrencyConversionError,
    EmptyCartError,
)
from storefront.domain.schemas import CartItem
from storefront.services.checkout_guard import CheckoutGuard
from storefront.services.checkout_service import CheckoutService, build_line_items
from storefront.services.payment_client import CheckoutResult, PaymentClient
from storefront.services.rate_provider import STATIC_RATES, RateCache, RateProvider
from tests.conftest import RATES, BrokenRedis


def _items():
    return [
        CartItem(id="a", title="Sword", price=Decimal("8.00"), currency="USD", image="https://cdn.test/a.png", quantity=1),
        CartItem(id="b", title="Shield", price=Decimal("4.50"), currency="EUR", quantity=2),
    ]


class FakePaymentClient:
    def __init__(self, result=None, error=None):
        self.result = result or CheckoutResult(url="https://pay.test/cs_1", session_id="cs_1")
        self.error = error
        self.payloads = []

    def create_session(self, payload):
        self.payloads.append(payload)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def guard(fake_redis):
    return CheckoutGuard(fake_redis)


def _provider(rates=RATES):
    cache = RateCache(ttl_seconds=300)
    if rates is not None:
        cache.store(rates)
    return RateProvider(cache=cache, primary_url="http://primary.test", backup_url="http://backup.test")


def _service(guard, client, notifier=None, rate_provider=None):
    return CheckoutService(
        payment_client=client,
        guard=guard,
        rate_provider=rate_provider or _provider(),
        notifier=notifier,
    )


def _start(service, attempt_id="att-1", items=None, **kwargs):
    return service.start_checkout(
        session_id="s1",
        attempt_id=attempt_id,
        items=_items() if items is None else items,
        currency=kwargs.pop("currency", "USD"),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# build_line_items
# ---------------------------------------------------------------------------


class TestLineItems:

    def test_prices_in_user_currency_minor_units(self):
        lines = build_line_items(_items(), "USD", RATES)

        assert lines[0] == {
            "price_data": {
                "currency": "usd",
                "product_data": {"name": "Sword", "images": ["https://cdn.test/a.png"]},
                "unit_amount": 800,
            },
            "quantity": 1,
        }
        assert lines[1]["price_data"]["unit_amount"] == 500
        assert lines[1]["price_data"]["product_data"] == {"name": "Shield"}
        assert lines[1]["quantity"] == 2

    def test_zero_decimal_currency(self):
        lines = build_line_items(_items(), "JPY", RATES)
        assert [line["price_data"]["unit_amount"] for line in lines] == [1200, 750]
        assert lines[0]["price_data"]["currency"] == "jpy"

    def test_static_table_prices_twd(self):
        lines = build_line_items(_items(), "TWD", STATIC_RATES)

        assert lines[0]["price_data"]["currency"] == "twd"
        assert lines[0]["price_data"]["unit_amount"] == 25760

    def test_missing_rate_is_not_labelled_as_user_currency(self):
        with pytest.raises(CurrencyConversionError):
            build_line_items(_items(), "TWD", RATES)


# ---------------------------------------------------------------------------
# CheckoutService
# ---------------------------------------------------------------------------


class TestCheckoutService:

    def test_empty_cart_is_rejected_before_any_call(self, guard, fake_redis):
        client = FakePaymentClient()

        with pytest.raises(EmptyCartError, match="Your cart is empty!"):
            _start(_service(guard, client), items=[])

        assert client.payloads == []
        assert fake_redis.store == {}

    def test_empty_cart_does_not_fetch_rates(self, guard):
        provider = _provider(rates=None)

        with patch("storefront.services.rate_provider.requests.get") as get:
            with pytest.raises(EmptyCartError):
                _start(_service(guard, FakePaymentClient(), rate_provider=provider), items=[])

        get.assert_not_called()

    def test_unconvertible_cart_is_refused(self, guard, fake_redis):
        client = FakePaymentClient()

        with pytest.raises(CheckoutError, match="cannot be converted to TWD"):
            _start(_service(guard, client), currency="TWD")

        assert client.payloads == []
        assert guard.key("s1", "att-1") not in fake_redis.store

    def test_creates_session(self, guard, notifier):
        client = FakePaymentClient()

        result = _start(
            _service(guard, client, notifier),
            customer_email="a@example.com",
            user_id="alice",
            success_url="https://shop.test/ok",
        )

        assert result.url == "https://pay.test/cs_1"
        payload = client.payloads[0]
        assert len(payload["lineItems"]) == 2
        assert payload["customerEmail"] == "a@example.com"
        assert payload["userId"] == "alice"
        assert payload["successUrl"] == "https://shop.test/ok"
        assert payload["cancelUrl"]
        assert notifier.checkouts == [("s1", "cs_1", "alice")]

    def test_guest_payload_has_no_user(self, guard):
        client = FakePaymentClient()
        _start(_service(guard, client))

        assert "userId" not in client.payloads[0]
        assert "customerEmail" not in client.payloads[0]

    def test_repeated_attempt_reuses_session(self, guard):
        client = FakePaymentClient()
        service = _service(guard, client)

        first = _start(service)
        second = _start(service)

        assert first == second
        assert len(client.payloads) == 1

    def test_attempt_in_flight_is_rejected(self, guard):
        guard.acquire("s1", "att-1")
        client = FakePaymentClient()

        with pytest.raises(CheckoutInProgressError):
            _start(_service(guard, client))
        assert client.payloads == []

    def test_new_attempt_gets_new_session(self, guard):
        client = FakePaymentClient()
        service = _service(guard, client)

        _start(service, attempt_id="att-1")
        _start(service, attempt_id="att-2")

        assert len(client.payloads) == 2

    def test_failed_attempt_can_be_retried(self, guard, fake_redis):
        client = FakePaymentClient(error=CheckoutError("Checkout failed. Try again."))
        service = _service(guard, client)

        with pytest.raises(CheckoutError):
            _start(service)
        assert guard.key("s1", "att-1") not in fake_redis.store

        client.error = None
        assert _start(service).session_id == "cs_1"

    def test_guard_outage_blocks_checkout(self):
        client = FakePaymentClient()

        with pytest.raises(CheckoutError, match="temporarily unavailable"):
            _start(_service(CheckoutGuard(BrokenRedis()), client))
        assert client.payloads == []

    def test_cart_is_not_modified(self, guard):
        items = _items()
        _start(_service(guard, FakePaymentClient()), items=items)
        assert [(i.id, i.quantity) for i in items] == [("a", 1), ("b", 2)]


# ---------------------------------------------------------------------------
# PaymentClient
# ---------------------------------------------------------------------------


def _http(status, payload):
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.json.return_value = payload
    return resp


class TestPaymentClient:

    def test_parses_session(self):
        client = PaymentClient(url="http://pay.test/session", timeout=2)

        with patch("storefront.services.payment_client.requests.post") as post:
            post.return_value = _http(200, {"url": "https://pay.test/cs_9", "sessionId": "cs_9"})
            result = client.create_session({"lineItems": []})

        assert result == CheckoutResult(url="https://pay.test/cs_9", session_id="cs_9")
        post.assert_called_once_with("http://pay.test/session", json={"lineItems": []}, timeout=2)

    def test_client_secret_only(self):
        with patch("storefront.services.payment_client.requests.post") as post:
            post.return_value = _http(200, {"client_secret": "sec_1"})
            result = PaymentClient(url="http://pay.test").create_session({})

        assert result.client_secret == "sec_1"
        assert result.url is None

    def test_provider_error_message(self):
        with patch("storefront.services.payment_client.requests.post") as post:
            post.return_value = _http(400, {"error": "Invalid currency"})
            with pytest.raises(CheckoutError, match="Invalid currency"):
                PaymentClient(url="http://pay.test").create_session({})

    def test_error_status_without_body(self):
        resp = _http(503, None)
        resp.json.side_effect = ValueError("no json")

        with patch("storefront.services.payment_client.requests.post", return_value=resp):
            with pytest.raises(CheckoutError, match="HTTP 503"):
                PaymentClient(url="http://pay.test").create_session({})

    def test_response_without_url_or_secret(self):
        with patch("storefront.services.payment_client.requests.post") as post:
            post.return_value = _http(200, {"sessionId": "cs_1"})
            with pytest.raises(CheckoutError):
                PaymentClient(url="http://pay.test").create_session({})

    def test_network_error(self):
        with patch("storefront.services.payment_client.requests.post", side_effect=requests.ConnectionError()):
            with pytest.raises(CheckoutError, match="Checkout failed"):
                PaymentClient(url="http://pay.test").create_session({})
