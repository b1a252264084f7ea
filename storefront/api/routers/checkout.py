from fastapi import APIRouter, Depends, HTTPException, Request

from storefront.api.dependencies import (
    client_ip,
    get_cart_service,
    get_checkout_service,
    get_currency_service,
)
from storefront.domain.errors import CheckoutError, CheckoutInProgressError, EmptyCartError
from storefront.domain.schemas import CheckoutIn, CheckoutOut
from storefront.services.cart_service import CartService
from storefront.services.checkout_service import CheckoutService
from storefront.services.currency_service import CurrencyService

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("/{session_id}", response_model=CheckoutOut)
def create_checkout(
    session_id: str,
    payload: CheckoutIn,
    request: Request,
    carts: CartService = Depends(get_cart_service),
    currencies: CurrencyService = Depends(get_currency_service),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Opens a hosted payment session for the session's cart.
    The browser navigates to the returned `url`; the cart stays as it is.
    """
    cart = carts.load(session_id)
    try:
        #empty cart is refused before the currency lookup and the rate fetch
        svc.require_items(cart.items)
        currency = currencies.get_currency(session_id, client_ip(request))["currency"]
        result = svc.start_checkout(
            session_id=session_id,
            attempt_id=payload.attempt_id,
            items=cart.items,
            currency=currency,
            customer_email=payload.customer_email,
            user_id=cart.owner_id,
            success_url=payload.success_url,
            cancel_url=payload.cancel_url,
        )
    except EmptyCartError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CheckoutInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except CheckoutError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return result.to_dict()
