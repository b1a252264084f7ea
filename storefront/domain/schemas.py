# storefront/domain/schemas.py
from decimal import Decimal
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CartItem(BaseModel):
    """Line item held in a guest or account cart.

    `price` is always the catalog price in `currency`; conversion to the
    user's currency happens only when the cart is displayed or checked out.
    """

    id: str = Field(..., min_length=1, description="Catalog variant id")
    title: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    image: str | None = None
    quantity: int = Field(1, gt=0)
    owner_id: str | None = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class ItemIn(BaseModel):
    """Schema for adding a catalog product to the cart."""

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    #account rows store Numeric(12, 2)
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency: str = Field(..., min_length=3, max_length=3)
    image: str | None = None
    quantity: int | None = Field(None, gt=0, description="Default: 1, or the bulk minimum")

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class QuantityIn(BaseModel):
    quantity: int


class CartLineOut(BaseModel):
    id: str
    title: str
    image: str | None = None
    quantity: int
    price: Decimal
    currency: str
    unit_price: Decimal
    line_total: Decimal
    display_price: str


class TotalsOut(BaseModel):
    currency: str
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    display_subtotal: str
    display_discount: str
    display_total: str


class CartOut(BaseModel):
    session_id: str
    owner_id: str | None = None
    currency: str
    items: List[CartLineOut]
    totals: TotalsOut
    notice: str | None = None


class AuthUserIn(BaseModel):
    """Normalized user emitted by the authentication provider."""

    id: str = Field(..., min_length=1)
    email: str | None = None


class AuthChangeIn(BaseModel):
    user: AuthUserIn | None = None


class CurrencyIn(BaseModel):
    currency: str = Field(..., min_length=3, max_length=3)
    country: str | None = Field(None, min_length=2, max_length=2)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class CurrencyOut(BaseModel):
    currency: str
    country: str | None = None
    symbol: str


class RatesOut(BaseModel):
    base: str = "USD"
    rates: Dict[str, Decimal]


class ConvertIn(BaseModel):
    amount: Decimal
    from_currency: str = Field(..., min_length=3, max_length=3)
    to_currency: str = Field(..., min_length=3, max_length=3)


class ConvertOut(BaseModel):
    amount: Decimal
    currency: str
    display: str


class CheckoutIn(BaseModel):
    """Schema for starting a checkout.

    `attempt_id` identifies one checkout attempt; re-submitting the same id
    never creates a second payment session.
    """

    attempt_id: str = Field(..., min_length=1, max_length=128)
    customer_email: str | None = None
    success_url: str | None = None
    cancel_url: str | None = None


class CheckoutOut(BaseModel):
    url: str | None = None
    session_id: str | None = None
    client_secret: str | None = None
