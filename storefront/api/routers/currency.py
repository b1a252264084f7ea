# storefront/api/routers/currency.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from storefront.api.dependencies import client_ip, get_currency_service, get_rate_provider
from storefront.domain.errors import UnknownCurrencyError
from storefront.domain.schemas import ConvertIn, ConvertOut, CurrencyIn, CurrencyOut, RatesOut
from storefront.services.currency_service import CurrencyService
from storefront.services.price_converter import (
    can_convert,
    convert,
    currency_symbol,
    format_price,
    round_amount,
)
from storefront.services.rate_provider import RateProvider

router = APIRouter(prefix="/currency", tags=["currency"])


#declared before /{session_id} so "rates" is not read as a session id
@router.get("/rates", response_model=RatesOut)
def get_rates(
    force_refresh: bool = Query(False),
    provider: RateProvider = Depends(get_rate_provider),
):
    return {"base": "USD", "rates": provider.get_exchange_rates(force_refresh=force_refresh)}


@router.post("/convert", response_model=ConvertOut)
def convert_amount(
    payload: ConvertIn,
    provider: RateProvider = Depends(get_rate_provider),
):
    source, target = payload.from_currency.upper(), payload.to_currency.upper()
    rates = provider.get_exchange_rates()
    amount = convert(payload.amount, source, target, rates)

    #no rate: the amount stays in the source currency
    shown_in = target if can_convert(source, target, rates) else source
    return {
        "amount": round_amount(amount, shown_in),
        "currency": shown_in,
        "display": format_price(amount, shown_in),
    }


@router.get("/{session_id}", response_model=CurrencyOut)
def get_user_currency(
    session_id: str,
    request: Request,
    svc: CurrencyService = Depends(get_currency_service),
):
    data = svc.get_currency(session_id, client_ip(request))
    return {**data, "symbol": currency_symbol(data["currency"])}


@router.put("/{session_id}", response_model=CurrencyOut)
def set_user_currency(
    session_id: str,
    payload: CurrencyIn,
    svc: CurrencyService = Depends(get_currency_service),
):
    try:
        data = svc.set_currency(session_id, payload.currency, payload.country)
    except UnknownCurrencyError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {**data, "symbol": currency_symbol(data["currency"])}
