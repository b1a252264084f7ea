# storefront/repos/account_cart_repo.py
from typing import List

from sqlalchemy import select, delete
from sqlalchemy.orm import Session

from storefront.data.models.cart_item import AccountCartItemModel
from storefront.domain.schemas import CartItem
from storefront.utils.retry import db_retry

_UPDATABLE = {"title", "price", "currency", "image", "quantity"}


def _to_item(row: AccountCartItemModel) -> CartItem:
    return CartItem(
        id=row.item_id,
        title=row.title,
        price=row.price,
        currency=row.currency,
        image=row.image,
        quantity=row.quantity,
        owner_id=row.owner_id,
    )


class AccountCartRepo:
    """Remote per-account cart rows: select / upsert / update / delete."""

    def __init__(self, db: Session):
        self.db = db

    @db_retry()
    def select(self, owner_id: str) -> List[CartItem]:
        rows = self.db.execute(
            select(AccountCartItemModel)
            .where(AccountCartItemModel.owner_id == owner_id)
            .order_by(AccountCartItemModel.id)
        ).scalars().all()
        return [_to_item(r) for r in rows]

    def _get_row(self, owner_id: str, item_id: str) -> AccountCartItemModel | None:
        return self.db.execute(
            select(AccountCartItemModel).where(
                AccountCartItemModel.owner_id == owner_id,
                AccountCartItemModel.item_id == item_id,
            )
        ).scalar_one_or_none()

    def upsert(self, item: CartItem) -> CartItem:
        if not item.owner_id:
            raise ValueError("Account cart rows need an owner_id")

        try:
            row = self._get_row(item.owner_id, item.id)
            if row is None:
                row = AccountCartItemModel(owner_id=item.owner_id, item_id=item.id)
                self.db.add(row)

            row.title = item.title
            row.price = item.price
            row.currency = item.currency
            row.image = item.image
            row.quantity = item.quantity

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(row)
        return _to_item(row)

    def update(self, owner_id: str, item_id: str, fields: dict) -> CartItem | None:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Unknown cart fields: {sorted(unknown)}")

        try:
            row = self._get_row(owner_id, item_id)
            if row is None:
                return None
            for name, value in fields.items():
                setattr(row, name, value)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(row)
        return _to_item(row)

    def delete(self, owner_id: str, item_id: str) -> int:
        try:
            rowcount = self.db.execute(
                delete(AccountCartItemModel).where(
                    AccountCartItemModel.owner_id == owner_id,
                    AccountCartItemModel.item_id == item_id,
                )
            ).rowcount
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return rowcount
