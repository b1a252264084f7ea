# storefront/api/routers/carts.py
from fastapi import APIRouter, Depends, HTTPException

from storefront.api.dependencies import get_cart_service, user_currency
from storefront.domain.errors import ItemNotFoundError, UnknownCurrencyError
from storefront.domain.schemas import CartOut, ItemIn, QuantityIn
from storefront.services.cart_service import CartService

router = APIRouter(prefix="/carts", tags=["carts"])


@router.get("/{session_id}", response_model=CartOut)
def get_cart(
    session_id: str,
    currency: str = Depends(user_currency),
    svc: CartService = Depends(get_cart_service),
):
    return svc.get_cart(session_id, currency)


@router.post("/{session_id}/items", response_model=CartOut)
def add_item(
    session_id: str,
    payload: ItemIn,
    currency: str = Depends(user_currency),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.add_item(session_id, payload, currency)
    except UnknownCurrencyError as e:
        raise HTTPException(status_code=400, detail=str(e))


#item ids are catalog gids and contain slashes, hence :path
@router.patch("/{session_id}/items/{item_id:path}", response_model=CartOut)
def update_quantity(
    session_id: str,
    item_id: str,
    payload: QuantityIn,
    currency: str = Depends(user_currency),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.update_quantity(session_id, item_id, payload.quantity, currency)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{session_id}/items/{item_id:path}/increment", response_model=CartOut)
def increment_item(
    session_id: str,
    item_id: str,
    currency: str = Depends(user_currency),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.step_quantity(session_id, item_id, 1, currency)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{session_id}/items/{item_id:path}/decrement", response_model=CartOut)
def decrement_item(
    session_id: str,
    item_id: str,
    currency: str = Depends(user_currency),
    svc: CartService = Depends(get_cart_service),
):
    try:
        return svc.step_quantity(session_id, item_id, -1, currency)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/{session_id}/items/{item_id:path}", response_model=CartOut)
def remove_item(
    session_id: str,
    item_id: str,
    currency: str = Depends(user_currency),
    svc: CartService = Depends(get_cart_service),
):
    return svc.remove_item(session_id, item_id, currency)
