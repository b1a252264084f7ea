# storefront/utils/settings.py
import os
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://redis:6379/2")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

#outbound http
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", 5))

EXCHANGE_RATE_PRIMARY_URL = os.getenv(
    "EXCHANGE_RATE_PRIMARY_URL", "https://api.exchangerate-api.com/v4/latest/USD"
)
EXCHANGE_RATE_BACKUP_URL = os.getenv(
    "EXCHANGE_RATE_BACKUP_URL", "https://open.er-api.com/v6/latest/USD"
)
EXCHANGE_RATE_TTL_SECONDS = int(os.getenv("EXCHANGE_RATE_TTL_SECONDS", 5 * 60))

GEOLOCATION_URLS = [
    u.strip()
    for u in os.getenv(
        "GEOLOCATION_URLS",
        "https://ipapi.co/{ip}/json/,"
        "https://ipwhois.app/json/{ip},"
        "https://api.country.is/{ip},"
        "https://freeipapi.com/api/json/{ip}",
    ).split(",")
    if u.strip()
]

PAYMENT_SESSION_URL = os.getenv("PAYMENT_SESSION_URL", "http://payments:3000/create-session")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:5173")
CHECKOUT_SUCCESS_URL = os.getenv(
    "CHECKOUT_SUCCESS_URL",
    f"{PUBLIC_BASE_URL}/checkout-success?session_id={{CHECKOUT_SESSION_ID}}",
)
CHECKOUT_CANCEL_URL = os.getenv("CHECKOUT_CANCEL_URL", PUBLIC_BASE_URL)
CHECKOUT_GUARD_TTL_SECONDS = int(os.getenv("CHECKOUT_GUARD_TTL_SECONDS", 15 * 60))

#guest cart / browser session
GUEST_CART_KEY = os.getenv("GUEST_CART_KEY", "cart")
GUEST_CART_TTL_SECONDS = int(os.getenv("GUEST_CART_TTL_SECONDS", 30 * 24 * 60 * 60))
SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", 24 * 60 * 60))

#bulk-class item (sold in blocks, not single units)
BULK_ITEM_ID = os.getenv("BULK_ITEM_ID", "gid://shopify/ProductVariant/blade-ball-tokens")
BULK_STEP = int(os.getenv("BULK_STEP", 2000))
BULK_MIN_QUANTITY = int(os.getenv("BULK_MIN_QUANTITY", 2000))
BULK_MAX_QUANTITY = int(os.getenv("BULK_MAX_QUANTITY", 300000))

DISCOUNT_THRESHOLD = Decimal(os.getenv("DISCOUNT_THRESHOLD", "10"))
DISCOUNT_RATE = Decimal(os.getenv("DISCOUNT_RATE", "0.10"))

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")
DEFAULT_COUNTRY = os.getenv("DEFAULT_COUNTRY", "US")
