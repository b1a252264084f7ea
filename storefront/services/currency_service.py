# storefront/services/currency_service.py
from typing import Callable, Sequence

import requests
from redis.exceptions import RedisError
from requests import RequestException

from storefront.domain.errors import UnknownCurrencyError
from storefront.repos.session_repo import SessionRepo
from storefront.services.rate_provider import STATIC_RATES
from storefront.utils.settings import (
    GEOLOCATION_URLS,
    HTTP_TIMEOUT_SECONDS,
    DEFAULT_CURRENCY,
    DEFAULT_COUNTRY,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

COUNTRY_CURRENCY = {
    "US": "USD", "CA": "CAD", "MX": "MXN",
    "GB": "GBP", "DE": "EUR", "FR": "EUR", "IT": "EUR", "ES": "EUR",
    "NL": "EUR", "BE": "EUR", "AT": "EUR", "PT": "EUR", "IE": "EUR",
    "GR": "EUR", "FI": "EUR", "EU": "EUR", "SE": "SEK", "DK": "DKK",
    "NO": "NOK", "CH": "CHF", "PL": "PLN", "CZ": "CZK", "HU": "HUF", "RO": "RON",
    "IN": "INR", "JP": "JPY", "CN": "CNY", "KR": "KRW", "SG": "SGD",
    "HK": "HKD", "TW": "TWD", "TH": "THB", "MY": "MYR", "ID": "IDR",
    "PH": "PHP", "VN": "VND", "PK": "PKR", "BD": "BDT",
    "AE": "AED", "SA": "SAR", "QA": "QAR", "KW": "KWD", "IL": "ILS",
    "TR": "TRY", "EG": "EGP",
    "AU": "AUD", "NZ": "NZD",
    "BR": "BRL", "AR": "ARS", "CL": "CLP", "CO": "COP", "PE": "PEN",
    "ZA": "ZAR", "NG": "NGN", "KE": "KES", "GH": "GHS",
}

#every selectable currency has a static fallback rate
SUPPORTED_CURRENCIES = frozenset(STATIC_RATES)


def _country_field(data: dict) -> str:
    #each source names the field differently
    for field in ("country_code", "country", "countryCode"):
        value = data.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip().upper()
    return ""


class CurrencyService:
    """
    Resolves the single display/checkout currency of a storefront session.

    Order: value stored for the session -> IP geolocation sources (in order)
    -> DEFAULT_CURRENCY. A source that answers with a country missing from
    COUNTRY_CURRENCY counts as a miss and the next source is asked. The
    result is stored per session, not per account.
    """

    def __init__(
        self,
        session_repo: SessionRepo,
        geo_urls: Sequence[str] = GEOLOCATION_URLS,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        parser: Callable[[dict], str] = _country_field,
    ):
        self.session_repo = session_repo
        self.geo_urls = list(geo_urls)
        self.timeout = timeout
        self.parser = parser

    def get_currency(self, session_id: str, client_ip: str | None = None) -> dict:
        try:
            stored = self.session_repo.get_currency(session_id)
        except RedisError as e:
            logger.error(f"Could not read currency for session {session_id}: {e}")
            stored = None

        if stored:
            return stored
        return self.detect_currency(session_id, client_ip)

    def detect_currency(self, session_id: str, client_ip: str | None = None) -> dict:
        for url in self.geo_urls:
            country = self._lookup_country(url, client_ip)
            if country and country in COUNTRY_CURRENCY:
                currency = COUNTRY_CURRENCY[country]
                logger.info(f"Detected country {country}, currency {currency} for session {session_id}")
                return self._remember(session_id, currency, country)

        logger.warning(f"No geolocation source gave a known country, defaulting to {DEFAULT_CURRENCY}")
        return self._remember(session_id, DEFAULT_CURRENCY, DEFAULT_COUNTRY)

    def set_currency(self, session_id: str, currency: str, country: str | None = None) -> dict:
        currency = currency.upper()
        if currency not in SUPPORTED_CURRENCIES:
            raise UnknownCurrencyError(f"Unsupported currency {currency}")

        logger.info(f"Currency changed to {currency} for session {session_id}")
        return self._remember(session_id, currency, country.upper() if country else None)

    def _lookup_country(self, url_template: str, client_ip: str | None) -> str:
        if client_ip:
            url = url_template.replace("{ip}", client_ip)
        else:
            #without an ip the sources locate the caller itself
            url = url_template.replace("{ip}/", "").replace("/{ip}", "").replace("{ip}", "")
        try:
            resp = requests.get(url, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (RequestException, ValueError) as e:
            logger.warning(f"Geolocation source {url} failed: {e}")
            return ""

        if not isinstance(data, dict):
            return ""
        return self.parser(data)

    def _remember(self, session_id: str, currency: str, country: str | None) -> dict:
        try:
            self.session_repo.set_currency(session_id, currency, country)
        except RedisError as e:
            logger.error(f"Could not store currency for session {session_id}: {e}")
        return {"currency": currency, "country": country}
