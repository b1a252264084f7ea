# storefront/services/cart_service.py
from typing import Any, Dict, List

from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.domain.errors import CurrencyConversionError, ItemNotFoundError, UnknownCurrencyError
from storefront.domain.schemas import AuthUserIn, CartItem, ItemIn
from storefront.repos.account_cart_repo import AccountCartRepo
from storefront.repos.guest_cart_repo import GuestCartRepo
from storefront.repos.session_repo import SessionRepo
from storefront.services.auth_transition import (
    PersistenceAction,
    merge_guest_into_account,
    on_auth_change,
)
from storefront.services.notification_service import NotificationService
from storefront.services.price_converter import can_convert, format_price
from storefront.services.rate_provider import RateProvider
from storefront.services.totals import calculate_totals
from storefront.utils.settings import (
    BULK_ITEM_ID,
    BULK_STEP,
    BULK_MIN_QUANTITY,
    BULK_MAX_QUANTITY,
    DEFAULT_CURRENCY,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

#failures of the persistence layer; local state wins over them
PERSISTENCE_ERRORS = (SQLAlchemyError, RedisError)

BULK_NOTICE = (
    f"Quantity must stay between {BULK_MIN_QUANTITY} and {BULK_MAX_QUANTITY} "
    f"in steps of {BULK_STEP}"
)

CONVERSION_NOTICE = f"Prices are shown in {DEFAULT_CURRENCY}, no exchange rate for your currency right now"


class CartStore:
    """
    The cart of one storefront session: in-memory items plus where they persist.

    Guest carts are written back as a whole to the guest store, account carts
    row by row to the account store. Every mutation updates the in-memory
    items first; a failed write is logged and NOT rolled back, so what the
    caller sees is always the local state (best-effort durability).
    """

    def __init__(
        self,
        session_id: str,
        items: List[CartItem],
        guest_repo: GuestCartRepo,
        account_repo: AccountCartRepo,
        owner_id: str | None = None,
        notifier: NotificationService | None = None,
        bulk_item_id: str = BULK_ITEM_ID,
    ):
        self.session_id = session_id
        self.items = list(items)
        self.guest_repo = guest_repo
        self.account_repo = account_repo
        self.owner_id = owner_id
        self.notifier = notifier
        self.bulk_item_id = bulk_item_id

    @property
    def is_authenticated(self) -> bool:
        return self.owner_id is not None

    def find(self, item_id: str) -> CartItem | None:
        return next((i for i in self.items if i.id == item_id), None)

    def is_bulk(self, item_id: str) -> bool:
        return item_id == self.bulk_item_id

    @staticmethod
    def bulk_quantity_allowed(current: int, requested: int) -> bool:
        if requested < BULK_MIN_QUANTITY or requested > BULK_MAX_QUANTITY:
            return False
        return (requested - current) % BULK_STEP == 0

    # =====================================================
    # COMMANDS
    # =====================================================
    def add_item(self, item: ItemIn | CartItem) -> bool:
        default = BULK_MIN_QUANTITY if self.is_bulk(item.id) else 1
        incoming = item.quantity or default
        existing = self.find(item.id)
        current = existing.quantity if existing else 0
        new_quantity = incoming + current

        #bulk item: same bounds and step grid as an update
        if self.is_bulk(item.id) and not self.bulk_quantity_allowed(current, new_quantity):
            logger.info(f"Rejected bulk quantity {new_quantity} for {item.id}")
            return False

        if existing:
            logger.info(
                f"Item {item.id} already in cart, quantity "
                f"{existing.quantity} -> {new_quantity}"
            )
            stored = existing.model_copy(update={"quantity": new_quantity})
            self._replace(stored)
        else:
            stored = CartItem(
                id=item.id,
                title=item.title,
                price=item.price,
                currency=item.currency,
                image=item.image,
                quantity=incoming,
                owner_id=self.owner_id,
            )
            self.items.append(stored)

        self._persist_upsert(stored)

        logger.info(f"Added to cart: {item.title} (quantity: {incoming})")
        if self.notifier:
            self.notifier.item_added(self.session_id, item.title, incoming)
        return True

    def update_quantity(self, item_id: str, new_quantity: int) -> bool:
        existing = self.find(item_id)
        if existing is None:
            raise ItemNotFoundError(f"Item {item_id} is not in the cart")

        if self.is_bulk(item_id):
            if not self.bulk_quantity_allowed(existing.quantity, new_quantity):
                logger.info(f"Rejected bulk quantity {existing.quantity} -> {new_quantity} for {item_id}")
                return False
        elif new_quantity <= 0:
            self.remove_item(item_id)
            return True

        self._replace(existing.model_copy(update={"quantity": new_quantity}))
        self._persist_update(item_id, {"quantity": new_quantity})
        return True

    def increment(self, item_id: str) -> bool:
        existing = self._require(item_id)
        step = BULK_STEP if self.is_bulk(item_id) else 1
        return self.update_quantity(item_id, existing.quantity + step)

    def decrement(self, item_id: str) -> bool:
        existing = self._require(item_id)
        step = BULK_STEP if self.is_bulk(item_id) else 1
        return self.update_quantity(item_id, existing.quantity - step)

    def remove_item(self, item_id: str) -> bool:
        if self.find(item_id) is None:
            return False

        self.items = [i for i in self.items if i.id != item_id]
        self._persist_delete(item_id)
        return True

    # =====================================================
    # PERSISTENCE
    # =====================================================
    def _require(self, item_id: str) -> CartItem:
        existing = self.find(item_id)
        if existing is None:
            raise ItemNotFoundError(f"Item {item_id} is not in the cart")
        return existing

    def _replace(self, item: CartItem) -> None:
        self.items = [item if i.id == item.id else i for i in self.items]

    def _persist_upsert(self, item: CartItem) -> None:
        try:
            if self.is_authenticated:
                self.account_repo.upsert(item.model_copy(update={"owner_id": self.owner_id}))
            else:
                self.guest_repo.set(self.session_id, self.items)
        except PERSISTENCE_ERRORS as e:
            logger.error(f"Failed to persist cart item {item.id}: {e}")

    def _persist_update(self, item_id: str, fields: Dict[str, Any]) -> None:
        try:
            if self.is_authenticated:
                self.account_repo.update(self.owner_id, item_id, fields)
            else:
                self.guest_repo.set(self.session_id, self.items)
        except PERSISTENCE_ERRORS as e:
            logger.error(f"Failed to update cart item {item_id}: {e}")

    def _persist_delete(self, item_id: str) -> None:
        try:
            if self.is_authenticated:
                self.account_repo.delete(self.owner_id, item_id)
            else:
                self.guest_repo.set(self.session_id, self.items)
        except PERSISTENCE_ERRORS as e:
            logger.error(f"Failed to delete cart item {item_id}: {e}")


class CartService:
    """
    Use cases of the cart domain for one request.
    Commands (add, update, step, remove, auth change) mutate the session's
    cart; queries (get) only read it and price it in the user's currency.
    """

    def __init__(
        self,
        db: Session,
        guest_repo: GuestCartRepo,
        session_repo: SessionRepo,
        rate_provider: RateProvider,
        notifier: NotificationService | None = None,
    ):
        self.account_repo = AccountCartRepo(db)
        self.guest_repo = guest_repo
        self.session_repo = session_repo
        self.rate_provider = rate_provider
        self.notifier = notifier

    #query
    def load(self, session_id: str) -> CartStore:
        owner_id = self._current_user_id(session_id)

        try:
            if owner_id:
                items = self.account_repo.select(owner_id)
            else:
                items = self.guest_repo.get(session_id)
        except PERSISTENCE_ERRORS as e:
            logger.error(f"Could not load cart for session {session_id}: {e}")
            items = []

        return CartStore(
            session_id=session_id,
            items=items,
            guest_repo=self.guest_repo,
            account_repo=self.account_repo,
            owner_id=owner_id,
            notifier=self.notifier,
        )

    def get_cart(self, session_id: str, currency: str) -> Dict[str, Any]:
        return self.render(self.load(session_id), currency)

    #commands
    def add_item(self, session_id: str, payload: ItemIn, currency: str) -> Dict[str, Any]:
        rates = self.rate_provider.get_exchange_rates()
        if not can_convert(payload.currency, "USD", rates):
            raise UnknownCurrencyError(f"Unsupported item currency {payload.currency}")

        store = self.load(session_id)
        accepted = store.add_item(payload)
        return self.render(store, currency, accepted)

    def update_quantity(self, session_id: str, item_id: str, quantity: int, currency: str) -> Dict[str, Any]:
        store = self.load(session_id)
        accepted = store.update_quantity(item_id, quantity)
        return self.render(store, currency, accepted)

    def step_quantity(self, session_id: str, item_id: str, direction: int, currency: str) -> Dict[str, Any]:
        store = self.load(session_id)
        accepted = store.increment(item_id) if direction > 0 else store.decrement(item_id)
        return self.render(store, currency, accepted)

    def remove_item(self, session_id: str, item_id: str, currency: str) -> Dict[str, Any]:
        store = self.load(session_id)
        store.remove_item(item_id)
        return self.render(store, currency)

    def merge_guest_into_account(self, session_id: str, account_id: str) -> List[CartItem]:
        """Insert-only merge of the session's guest cart into `account_id`'s cart."""
        guest_cart = self._safe_read(lambda: self.guest_repo.get(session_id), [])
        account_cart = self._safe_read(lambda: self.account_repo.select(account_id), [])

        merged, actions = merge_guest_into_account(guest_cart, account_cart, account_id)
        self._apply(session_id, actions)
        return merged

    def handle_auth_change(self, session_id: str, user: AuthUserIn | None, currency: str) -> Dict[str, Any]:
        prev_id = self._current_user_id(session_id)
        new_id = user.id if user else None

        if prev_id == new_id:
            #same user again (re-render, token refresh) - nothing to reconcile
            return self.get_cart(session_id, currency)

        prev_user = AuthUserIn(id=prev_id) if prev_id else None
        guest_cart = self._safe_read(lambda: self.guest_repo.get(session_id), [])
        account_cart = (
            self._safe_read(lambda: self.account_repo.select(new_id), []) if new_id else []
        )

        transition = on_auth_change(prev_user, user, guest_cart, account_cart)
        self._apply(session_id, transition.actions)

        try:
            self.session_repo.set_user_id(session_id, new_id)
        except RedisError as e:
            logger.error(f"Could not record user for session {session_id}: {e}")

        if transition.logged_in:
            logger.info(f"User {new_id} signed in on session {session_id}, cart has {len(transition.account_cart)} items")
        if transition.logged_out:
            logger.info(f"User {prev_id} signed out of session {session_id}")

        store = CartStore(
            session_id=session_id,
            items=transition.account_cart if new_id else transition.guest_cart,
            guest_repo=self.guest_repo,
            account_repo=self.account_repo,
            owner_id=new_id,
            notifier=self.notifier,
        )
        return self.render(store, currency)

    # =====================================================
    # HELPERS
    # =====================================================
    def render(self, store: CartStore, currency: str, accepted: bool = True) -> Dict[str, Any]:
        #rates first: no price is shown before they are known
        rates = self.rate_provider.get_exchange_rates()
        notice = None if accepted else BULK_NOTICE

        try:
            totals = calculate_totals(store.items, currency, rates)
        except CurrencyConversionError as e:
            if currency == DEFAULT_CURRENCY:
                raise
            logger.warning(f"Showing cart of session {store.session_id} in {DEFAULT_CURRENCY}: {e}")
            currency = DEFAULT_CURRENCY
            totals = calculate_totals(store.items, currency, rates)
            notice = notice or CONVERSION_NOTICE

        return {
            "session_id": store.session_id,
            "owner_id": store.owner_id,
            "currency": currency,
            "items": [
                {
                    "id": line.item.id,
                    "title": line.item.title,
                    "image": line.item.image,
                    "quantity": line.item.quantity,
                    "price": line.item.price,
                    "currency": line.item.currency,
                    "unit_price": line.unit_price,
                    "line_total": line.line_total,
                    "display_price": format_price(line.unit_price, currency),
                }
                for line in totals.lines
            ],
            "totals": {
                "currency": currency,
                "subtotal": totals.subtotal,
                "discount": totals.discount,
                "total": totals.total,
                "display_subtotal": format_price(totals.subtotal, currency),
                "display_discount": format_price(totals.discount, currency),
                "display_total": format_price(totals.total, currency),
            },
            "notice": notice,
        }

    def _current_user_id(self, session_id: str) -> str | None:
        return self._safe_read(lambda: self.session_repo.get_user_id(session_id), None)

    def _safe_read(self, read, default):
        try:
            return read()
        except PERSISTENCE_ERRORS as e:
            logger.error(f"Cart store read failed: {e}")
            return default

    def _apply(self, session_id: str, actions: List[PersistenceAction]) -> None:
        upserts_ok = True

        for action in actions:
            if action.kind == "upsert_account_item":
                try:
                    self.account_repo.upsert(action.item)
                except PERSISTENCE_ERRORS as e:
                    upserts_ok = False
                    logger.error(f"Failed to merge item {action.item.id} into account {action.owner_id}: {e}")

            elif action.kind == "clear_guest_cart":
                #guest store is cleared only after every row made it to the account
                if not upserts_ok:
                    logger.warning(f"Keeping guest cart of session {session_id}, merge incomplete")
                    continue
                try:
                    self.guest_repo.remove(session_id)
                except RedisError as e:
                    logger.error(f"Failed to clear guest cart of session {session_id}: {e}")
