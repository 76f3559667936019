"""Row-level authorization policies.

Every read and write on the five tables is checked here before it reaches
or leaves the repositories. Each (table, operation) pair maps to one policy
function taking the caller, the target row and a lookup for the row's parent
chain. A pair with no registered policy is denied.

Denied reads produce no rows and denied writes are rejected; callers can not
tell a missing row from one they are not allowed to see.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from restaurant_ordering_service.models.catalog_models import Dish, Profile, Restaurant, UserRole
from restaurant_ordering_service.models.order_models import Order, OrderItem

logger = logging.getLogger(__name__)


class Table(str, Enum):
    """Tables guarded by row policies."""

    PROFILES = "profiles"
    RESTAURANTS = "restaurants"
    DISHES = "dishes"
    ORDERS = "orders"
    ORDER_ITEMS = "order_items"


class Operation(str, Enum):
    """Row operations."""

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Caller:
    """Authenticated caller.

    Attributes:
        user_id: Identity issued by the identity provider
        role: Role from the caller's profile, None before the profile exists
        email: Email claim from the session token, if any
    """

    user_id: str
    role: UserRole | None = None
    email: str | None = None


class ParentLookup(Protocol):
    """Resolves parent rows for ownership checks."""

    def get_restaurant(self, restaurant_id: str) -> Restaurant | None: ...

    def get_order(self, order_id: str) -> Order | None: ...


Policy = Callable[[Caller, Any, ParentLookup], bool]


def _owns_restaurant(caller: Caller, restaurant_id: str, lookup: ParentLookup) -> bool:
    restaurant = lookup.get_restaurant(restaurant_id)
    return restaurant is not None and restaurant.seller_id == caller.user_id


# Profiles


def profile_is_own(caller: Caller, row: Profile, lookup: ParentLookup) -> bool:  # noqa: ARG001
    """A profile is visible and writable only by its own identity."""
    return row.id == caller.user_id


# Restaurants


def restaurant_select(caller: Caller, row: Restaurant, lookup: ParentLookup) -> bool:  # noqa: ARG001
    """Active restaurants are public; inactive ones only to their seller."""
    return row.is_active or row.seller_id == caller.user_id


def restaurant_insert(caller: Caller, row: Restaurant, lookup: ParentLookup) -> bool:  # noqa: ARG001
    """Only sellers may create restaurants, and only for themselves."""
    return row.seller_id == caller.user_id and caller.role == UserRole.SELLER


def restaurant_owner(caller: Caller, row: Restaurant, lookup: ParentLookup) -> bool:  # noqa: ARG001
    """Update and delete are reserved to the owning seller."""
    return row.seller_id == caller.user_id


# Dishes


def dish_select(caller: Caller, row: Dish, lookup: ParentLookup) -> bool:
    """Available dishes of active restaurants are public; owners see all."""
    restaurant = lookup.get_restaurant(row.restaurant_id)
    if restaurant is None:
        return False
    if restaurant.seller_id == caller.user_id:
        return True
    return row.is_available and restaurant.is_active


def dish_owner(caller: Caller, row: Dish, lookup: ParentLookup) -> bool:
    """Dish writes require owning the parent restaurant."""
    return _owns_restaurant(caller, row.restaurant_id, lookup)


# Orders


def order_party(caller: Caller, row: Order, lookup: ParentLookup) -> bool:
    """The ordering customer and the restaurant's seller may read and update."""
    return row.customer_id == caller.user_id or _owns_restaurant(
        caller, row.restaurant_id, lookup
    )


def order_insert(caller: Caller, row: Order, lookup: ParentLookup) -> bool:  # noqa: ARG001
    """Only customers may place orders, and only as themselves."""
    return row.customer_id == caller.user_id and caller.role == UserRole.CUSTOMER


# Order items


def order_item_select(caller: Caller, row: OrderItem, lookup: ParentLookup) -> bool:
    """Line items follow the visibility of their order."""
    order = lookup.get_order(row.order_id)
    return order is not None and order_party(caller, order, lookup)


def order_item_insert(caller: Caller, row: OrderItem, lookup: ParentLookup) -> bool:
    """Line items may only be added by the order's customer."""
    order = lookup.get_order(row.order_id)
    return order is not None and order.customer_id == caller.user_id


POLICIES: dict[tuple[Table, Operation], Policy] = {
    (Table.PROFILES, Operation.SELECT): profile_is_own,
    (Table.PROFILES, Operation.INSERT): profile_is_own,
    (Table.PROFILES, Operation.UPDATE): profile_is_own,
    (Table.RESTAURANTS, Operation.SELECT): restaurant_select,
    (Table.RESTAURANTS, Operation.INSERT): restaurant_insert,
    (Table.RESTAURANTS, Operation.UPDATE): restaurant_owner,
    (Table.RESTAURANTS, Operation.DELETE): restaurant_owner,
    (Table.DISHES, Operation.SELECT): dish_select,
    (Table.DISHES, Operation.INSERT): dish_owner,
    (Table.DISHES, Operation.UPDATE): dish_owner,
    (Table.DISHES, Operation.DELETE): dish_owner,
    (Table.ORDERS, Operation.SELECT): order_party,
    (Table.ORDERS, Operation.INSERT): order_insert,
    (Table.ORDERS, Operation.UPDATE): order_party,
    (Table.ORDER_ITEMS, Operation.SELECT): order_item_select,
    (Table.ORDER_ITEMS, Operation.INSERT): order_item_insert,
}


def is_allowed(
    table: Table, operation: Operation, caller: Caller, row: Any, lookup: ParentLookup
) -> bool:
    """Decide whether the caller may perform an operation on a row.

    Args:
        table: Table the row belongs to
        operation: Requested operation
        caller: Authenticated caller
        row: Target row (the proposed row for inserts)
        lookup: Parent chain resolver

    Returns:
        bool: True if allowed, False otherwise
    """
    policy = POLICIES.get((table, operation))
    if policy is None:
        logger.debug(f"No policy for {operation.value} on {table.value}, denying")
        return False
    return policy(caller, row, lookup)


def is_update_allowed(
    table: Table, caller: Caller, current: Any, proposed: Any, lookup: ParentLookup
) -> bool:
    """Check an update against both the stored row and the proposed row.

    Both must pass, so an owner can not hand a row over to someone else.
    """
    return is_allowed(table, Operation.UPDATE, caller, current, lookup) and is_allowed(
        table, Operation.UPDATE, caller, proposed, lookup
    )


def filter_visible(
    table: Table, caller: Caller, rows: list[Any], lookup: ParentLookup
) -> list[Any]:
    """Keep only the rows the caller may select."""
    return [row for row in rows if is_allowed(table, Operation.SELECT, caller, row, lookup)]
