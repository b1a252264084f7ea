# storefront/data/models/cart_item.py
from sqlalchemy import Column, Integer, String, Numeric, UniqueConstraint

from storefront.data.database import Base


class AccountCartItemModel(Base):
    __tablename__ = "account_cart_items"

    id = Column(Integer, primary_key=True)
    owner_id = Column(String, nullable=False, index=True)
    item_id = Column(String, nullable=False)

    title = Column(String, nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    image = Column(String, nullable=True)
    quantity = Column(Integer, nullable=False)

    __table_args__ = (UniqueConstraint("owner_id", "item_id", name="u_owner_item"),)
