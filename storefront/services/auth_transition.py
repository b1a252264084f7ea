# storefront/services/auth_transition.py
"""
Guest/account cart transitions on authentication changes.

`on_auth_change` is a pure function: it never touches storage. It returns the
carts the session should hold afterwards plus the persistence actions the
caller has to run, so it is testable without a web framework or a database.

Transitions (edge-triggered, keyed on the user id):

    prev == new             -> nothing (re-render / repeated event)
    None  -> user           -> merge guest cart into the account cart
    user  -> None           -> session falls back to an empty guest cart
    user A -> user B        -> logout of A, then login of B with no guest cart
"""
from dataclasses import dataclass, field
from typing import List, Literal

from storefront.domain.schemas import AuthUserIn, CartItem

ActionKind = Literal["upsert_account_item", "clear_guest_cart"]


@dataclass(frozen=True)
class PersistenceAction:
    kind: ActionKind
    owner_id: str | None = None
    item: CartItem | None = None


@dataclass
class AuthTransition:
    guest_cart: List[CartItem]
    account_cart: List[CartItem]
    actions: List[PersistenceAction] = field(default_factory=list)
    logged_in: bool = False
    logged_out: bool = False


def _user_id(user: AuthUserIn | None) -> str | None:
    return user.id if user is not None else None


def merge_guest_into_account(
    guest_cart: List[CartItem], account_cart: List[CartItem], account_id: str
) -> tuple[List[CartItem], List[PersistenceAction]]:
    """
    Insert-only merge of the guest cart into the account cart.

    Guest items whose id is already in the account cart are skipped (their
    quantities are NOT summed here). When there was anything to merge the
    guest store gets cleared; an empty guest cart produces no actions, which
    makes a second run a no-op.
    """
    merged = list(account_cart)
    actions: List[PersistenceAction] = []

    if not guest_cart:
        return merged, actions

    present = {i.id for i in account_cart}
    for guest_item in guest_cart:
        if guest_item.id in present:
            continue
        owned = guest_item.model_copy(update={"owner_id": account_id})
        merged.append(owned)
        present.add(owned.id)
        actions.append(PersistenceAction("upsert_account_item", owner_id=account_id, item=owned))

    actions.append(PersistenceAction("clear_guest_cart"))
    return merged, actions


def on_auth_change(
    prev_user: AuthUserIn | None,
    new_user: AuthUserIn | None,
    guest_cart: List[CartItem],
    account_cart: List[CartItem],
) -> AuthTransition:
    prev_id, new_id = _user_id(prev_user), _user_id(new_user)

    if prev_id == new_id:
        return AuthTransition(guest_cart=list(guest_cart), account_cart=list(account_cart))

    if new_id is None:
        #logout: the account cart stays in the remote store untouched
        return AuthTransition(guest_cart=[], account_cart=[], logged_out=True)

    #switch A -> B: guest cart of this session belongs to nobody any more
    pending_guest = guest_cart if prev_id is None else []

    merged, actions = merge_guest_into_account(pending_guest, account_cart, new_id)
    return AuthTransition(
        guest_cart=[],
        account_cart=merged,
        actions=actions,
        logged_in=True,
        logged_out=prev_id is not None,
    )
