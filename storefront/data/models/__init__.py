#import every model so SQLAlchemy registers it in Base.metadata

from storefront.data.models.cart_item import AccountCartItemModel

__all__ = ["AccountCartItemModel"]
