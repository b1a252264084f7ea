# storefront/services/rate_provider.py
import threading
import time
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Sequence

import requests
from requests import RequestException

from storefront.utils.settings import (
    EXCHANGE_RATE_PRIMARY_URL,
    EXCHANGE_RATE_BACKUP_URL,
    EXCHANGE_RATE_TTL_SECONDS,
    HTTP_TIMEOUT_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

RateTable = Dict[str, Decimal]

#last resort, used when both remote sources fail
STATIC_RATES: RateTable = {
    code: Decimal(value)
    for code, value in {
        "USD": "1", "INR": "83.50", "GBP": "0.78", "EUR": "0.91", "JPY": "148.20",
        "CAD": "1.35", "AUD": "1.51", "CNY": "7.20", "BRL": "5.10", "MXN": "17.50",
        "KRW": "1330.00", "SGD": "1.33", "AED": "3.67", "SAR": "3.75", "HKD": "7.82",
        "CHF": "0.86", "SEK": "10.45", "NOK": "10.55", "DKK": "6.82", "PLN": "3.95",
        "NZD": "1.64", "THB": "34.80", "MYR": "4.65", "IDR": "15450.00", "PHP": "55.80",
        "ZAR": "18.20", "TRY": "34.25", "ARS": "950.00", "CLP": "940.00", "CZK": "22.80",
        "VND": "24500.00", "PKR": "278.00", "BDT": "110.00", "QAR": "3.64", "KWD": "0.31",
        "ILS": "3.72", "EGP": "48.50", "HUF": "355.00", "RON": "4.55", "COP": "4100.00",
        "PEN": "3.75", "NGN": "1580.00", "KES": "129.00", "GHS": "15.20", "TWD": "32.20",
    }.items()
}


class RateSourceError(Exception):
    pass


class RateCache:
    """
    Process-wide cache of the USD-based rate table.

    Table and timestamp are always written together under one lock, and the
    table is replaced wholesale, never merged.
    """

    def __init__(
        self,
        ttl_seconds: int = EXCHANGE_RATE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._rates: RateTable | None = None
        self._fetched_at: float | None = None

    def is_fresh(self) -> bool:
        with self._lock:
            return self._is_fresh_locked()

    def _is_fresh_locked(self) -> bool:
        if self._rates is None or self._fetched_at is None:
            return False
        return (self._clock() - self._fetched_at) < self.ttl_seconds

    def get(self) -> RateTable | None:
        with self._lock:
            if not self._is_fresh_locked():
                return None
            return dict(self._rates)

    def store(self, rates: RateTable) -> None:
        with self._lock:
            self._rates = dict(rates)
            self._fetched_at = self._clock()

    def clear(self) -> None:
        with self._lock:
            self._rates = None
            self._fetched_at = None


def parse_rates(payload) -> RateTable:
    """Validate a `/latest/USD` payload into a rate table."""
    if not isinstance(payload, dict):
        raise RateSourceError("Payload is not an object")

    base = payload.get("base") or payload.get("base_code")
    if base is not None and str(base).upper() != "USD":
        raise RateSourceError(f"Unexpected base currency {base}")

    raw = payload.get("rates")
    if not isinstance(raw, dict) or not raw:
        raise RateSourceError("Payload has no rates")

    rates: RateTable = {}
    for code, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float, str)):
            continue
        try:
            rate = Decimal(str(value))
        except InvalidOperation:
            continue
        if rate.is_finite() and rate > 0:
            rates[str(code).upper()] = rate

    if not rates:
        raise RateSourceError("Payload has no usable rates")

    rates["USD"] = Decimal("1")
    return rates


class RateProvider:
    """
    Source of the USD-based exchange-rate table.

    Order: fresh cache -> primary source -> backup source -> static table.
    Never raises and never returns an empty table.
    """

    def __init__(
        self,
        cache: RateCache | None = None,
        primary_url: str = EXCHANGE_RATE_PRIMARY_URL,
        backup_url: str = EXCHANGE_RATE_BACKUP_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.cache = cache or RateCache()
        self.sources: Sequence[tuple[str, str]] = (
            ("primary", primary_url),
            ("backup", backup_url),
        )
        self.timeout = timeout
        #fetch in flight - concurrent callers wait for it instead of racing
        self._fetch_lock = threading.Lock()

    def get_exchange_rates(self, force_refresh: bool = False) -> RateTable:
        if not force_refresh:
            cached = self.cache.get()
            if cached is not None:
                return cached

        with self._fetch_lock:
            if not force_refresh:
                cached = self.cache.get()
                if cached is not None:
                    return cached

            for label, url in self.sources:
                try:
                    rates = self._fetch(url)
                except (RequestException, ValueError, RateSourceError) as e:
                    logger.warning(f"{label.capitalize()} exchange rate source failed: {e}")
                    continue

                self.cache.store(rates)
                logger.info(f"Exchange rates fetched from {label} source ({len(rates)} currencies)")
                return dict(rates)

        logger.warning("Using fallback exchange rates")
        return dict(STATIC_RATES)

    def _fetch(self, url: str) -> RateTable:
        logger.info(f"RateProvider GET {url}")
        resp = requests.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return parse_rates(resp.json())
