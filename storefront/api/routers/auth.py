# storefront/api/routers/auth.py
from fastapi import APIRouter, Depends

from storefront.api.dependencies import get_cart_service, user_currency
from storefront.domain.schemas import AuthChangeIn, CartOut
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.put("/{session_id}", response_model=CartOut)
def auth_changed(
    session_id: str,
    payload: AuthChangeIn,
    currency: str = Depends(user_currency),
    svc: CartService = Depends(get_cart_service),
):
    """
    Auth-state-changed event from the authentication provider.
    `user: null` means signed out. Repeating the same state changes nothing.
    """
    return svc.handle_auth_change(session_id, payload.user, currency)
