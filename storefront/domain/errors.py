# storefront/domain/errors.py


class StorefrontError(Exception):
    """Base class for errors the storefront API reports to the caller."""


class ItemNotFoundError(StorefrontError):
    pass


class UnknownCurrencyError(StorefrontError):
    pass


class CheckoutError(StorefrontError):
    """Checkout session could not be created; the cart is left untouched."""


class EmptyCartError(CheckoutError):
    pass


class CheckoutInProgressError(CheckoutError):
    pass


class CurrencyConversionError(StorefrontError):
    """No exchange rate between the item's currency and the requested one."""
