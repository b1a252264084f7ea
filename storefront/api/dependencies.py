# storefront/api/dependencies.py
import redis
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from storefront.data.database import get_db
from storefront.repos.guest_cart_repo import GuestCartRepo
from storefront.repos.session_repo import SessionRepo
from storefront.services.cart_service import CartService
from storefront.services.checkout_guard import CheckoutGuard
from storefront.services.checkout_service import CheckoutService
from storefront.services.currency_service import CurrencyService
from storefront.services.notification_service import NotificationService
from storefront.services.payment_client import PaymentClient
from storefront.services.rate_provider import RateProvider
from storefront.utils.settings import REDIS_URL

#one rate table per process
_rate_provider = RateProvider()
_redis_client: redis.Redis | None = None


def get_redis() -> redis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.Redis.from_url(REDIS_URL, decode_responses=True)
    return _redis_client


def get_rate_provider() -> RateProvider:
    return _rate_provider


def get_notifier() -> NotificationService:
    return NotificationService()


def get_payment_client() -> PaymentClient:
    return PaymentClient()


def get_currency_service(client: redis.Redis = Depends(get_redis)) -> CurrencyService:
    return CurrencyService(session_repo=SessionRepo(client))


def get_cart_service(
    db: Session = Depends(get_db),
    client: redis.Redis = Depends(get_redis),
    rate_provider: RateProvider = Depends(get_rate_provider),
    notifier: NotificationService = Depends(get_notifier),
) -> CartService:
    return CartService(
        db=db,
        guest_repo=GuestCartRepo(client),
        session_repo=SessionRepo(client),
        rate_provider=rate_provider,
        notifier=notifier,
    )


def get_checkout_service(
    client: redis.Redis = Depends(get_redis),
    payment_client: PaymentClient = Depends(get_payment_client),
    rate_provider: RateProvider = Depends(get_rate_provider),
    notifier: NotificationService = Depends(get_notifier),
) -> CheckoutService:
    return CheckoutService(
        payment_client=payment_client,
        guard=CheckoutGuard(client),
        rate_provider=rate_provider,
        notifier=notifier,
    )


def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def user_currency(
    session_id: str,
    request: Request,
    currency_service: CurrencyService = Depends(get_currency_service),
) -> str:
    return currency_service.get_currency(session_id, client_ip(request))["currency"]
