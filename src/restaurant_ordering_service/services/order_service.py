"""Order service for placing orders and moving them through their lifecycle."""

import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal

from restaurant_ordering_service.auth.row_policies import (
    Caller,
    Operation,
    Table,
    filter_visible,
    is_allowed,
    is_update_allowed,
)
from restaurant_ordering_service.models.catalog_models import Dish, UserRole
from restaurant_ordering_service.models.order_models import (
    TERMINAL_STATUSES,
    Order,
    OrderCreate,
    OrderItem,
    OrderStatus,
    OrderUpdate,
    PlacedOrder,
    allowed_targets,
    can_transition,
    quantize_amount,
)
from restaurant_ordering_service.models.query_models import RowQuery
from restaurant_ordering_service.observability import traced
from restaurant_ordering_service.observability.metrics import (
    record_authorization_denial,
    record_order_placed,
    record_order_placement_failure,
    record_status_transition,
)
from restaurant_ordering_service.repositories.base_repository import ConditionalWriteError
from restaurant_ordering_service.repositories.catalog_repositories import (
    DishRepository,
    RestaurantRepository,
)
from restaurant_ordering_service.repositories.order_repositories import (
    MAX_TRANSACTION_ITEMS,
    OrderItemRepository,
    OrderRepository,
)
from restaurant_ordering_service.services.errors import (
    IntegrityConflictError,
    RowNotFoundError,
    StorageUnavailableError,
    WriteRejectedError,
)
from restaurant_ordering_service.services.policy_lookup import RepositoryParentLookup

logger = logging.getLogger(__name__)


class OrderService:
    """Service for the order ledger.

    Orders are placed atomically together with their line items. Line item
    prices are copied from the dishes at placement time and never change.
    After placement only the ordering customer and the restaurant's seller
    may touch an order, and status moves follow the transition table in
    order_models.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        order_item_repository: OrderItemRepository,
        restaurant_repository: RestaurantRepository,
        dish_repository: DishRepository,
    ) -> None:
        """Initialize the OrderService.

        Args:
            order_repository: Repository for orders
            order_item_repository: Repository for order line items
            restaurant_repository: Repository for restaurants (ownership checks)
            dish_repository: Repository for dishes (price snapshots)
        """
        self.order_repository = order_repository
        self.order_item_repository = order_item_repository
        self.restaurant_repository = restaurant_repository
        self.dish_repository = dish_repository

    @traced("place_order", service_name="ordering-svc")
    async def place_order(self, caller: Caller, request: OrderCreate) -> PlacedOrder:
        """Place an order with its line items in one transaction.

        The total is computed from current dish prices; client-side prices
        are never trusted.

        Args:
            caller: Authenticated customer
            request: Restaurant, delivery details and cart lines

        Returns:
            PlacedOrder with the stored order and items

        Raises:
            RowNotFoundError: If the restaurant or a dish is not visible
            IntegrityConflictError: If a dish is from another restaurant or unavailable,
                or the order has too many lines
            WriteRejectedError: If the caller may not place orders
            StorageUnavailableError: If the transaction fails (nothing is written)
        """
        lookup = self._lookup()

        restaurant = lookup.get_restaurant(request.restaurant_id)
        if restaurant is None or not is_allowed(
            Table.RESTAURANTS, Operation.SELECT, caller, restaurant, lookup
        ):
            raise RowNotFoundError(Table.RESTAURANTS.value)

        quantities: dict[str, int] = {}
        for line in request.items:
            quantities[line.dish_id] = quantities.get(line.dish_id, 0) + line.quantity

        if len(quantities) + 1 > MAX_TRANSACTION_ITEMS:
            raise IntegrityConflictError(
                f"An order may contain at most {MAX_TRANSACTION_ITEMS - 1} different dishes"
            )

        dishes = [self._orderable_dish(caller, dish_id, restaurant.id, lookup) for dish_id in quantities]

        now = datetime.now(UTC)
        order_id = str(uuid.uuid4())
        items = [
            OrderItem(
                id=str(uuid.uuid4()),
                order_id=order_id,
                dish_id=dish.id,
                quantity=quantities[dish.id],
                price=dish.price,
                created_at=now,
            )
            for dish in dishes
        ]
        total = quantize_amount(sum((item.line_total for item in items), Decimal("0")))

        order = Order(
            id=order_id,
            customer_id=caller.user_id,
            restaurant_id=restaurant.id,
            total_amount=total,
            status=OrderStatus.PENDING,
            delivery_address=request.delivery_address,
            notes=request.notes,
            created_at=now,
            updated_at=now,
        )

        if not is_allowed(Table.ORDERS, Operation.INSERT, caller, order, lookup):
            record_authorization_denial(Table.ORDERS.value, Operation.INSERT.value)
            raise WriteRejectedError()

        lookup.stage_order(order)
        if not all(
            is_allowed(Table.ORDER_ITEMS, Operation.INSERT, caller, item, lookup) for item in items
        ):
            record_authorization_denial(Table.ORDER_ITEMS.value, Operation.INSERT.value)
            raise WriteRejectedError()

        if not self.order_repository.place_order(order, items):
            record_order_placement_failure("storage")
            raise StorageUnavailableError("Failed to place order")

        record_order_placed(len(items), float(total))
        logger.info(
            f"Customer {caller.user_id} placed order {order.id} with restaurant {restaurant.id} "
            f"({len(items)} items, total {total})"
        )
        return PlacedOrder(order=order, items=items)

    @traced("list_orders", service_name="ordering-svc")
    async def list_orders(self, caller: Caller, query: RowQuery | None = None) -> list[Order]:
        """List orders visible to the caller.

        Customers see the orders they placed; sellers see the orders placed
        with any restaurant they own.
        """
        candidates: dict[str, Order] = {
            o.id: o for o in self.order_repository.list_for_customer(caller.user_id)
        }
        for restaurant in self.restaurant_repository.list_for_seller(caller.user_id):
            for order in self.order_repository.list_for_restaurant(restaurant.id):
                candidates[order.id] = order

        visible = filter_visible(Table.ORDERS, caller, list(candidates.values()), self._lookup())
        return (query or RowQuery()).apply(visible)

    @traced("get_order", service_name="ordering-svc")
    async def get_order(self, caller: Caller, order_id: str) -> Order:
        """Get one order.

        Raises:
            RowNotFoundError: If it does not exist or is not visible
        """
        order = self.order_repository.get_order(order_id)
        if order is None or not is_allowed(
            Table.ORDERS, Operation.SELECT, caller, order, self._lookup()
        ):
            raise RowNotFoundError(Table.ORDERS.value)
        return order

    @traced("list_order_items", service_name="ordering-svc")
    async def list_order_items(self, caller: Caller, order_id: str) -> list[OrderItem]:
        """List the line items of an order visible to the caller.

        Raises:
            RowNotFoundError: If the order is not visible
        """
        await self.get_order(caller, order_id)
        items = self.order_item_repository.list_for_order(order_id)
        return filter_visible(Table.ORDER_ITEMS, caller, items, self._lookup())

    @traced("update_order", service_name="ordering-svc")
    async def update_order(self, caller: Caller, order_id: str, changes: OrderUpdate) -> Order:
        """Edit delivery address or notes of a pending order.

        Only the ordering customer may edit details.

        Raises:
            RowNotFoundError: If the order is not visible
            WriteRejectedError: If the caller is not the ordering customer
            IntegrityConflictError: If the order is no longer pending
            StorageUnavailableError: If the store rejects the write
        """
        current = await self.get_order(caller, order_id)
        if current.customer_id != caller.user_id:
            record_authorization_denial(Table.ORDERS.value, Operation.UPDATE.value)
            raise WriteRejectedError()

        updates = changes.model_dump(exclude_unset=True, exclude_none=True)
        proposed = Order.model_validate(
            {**current.model_dump(), **updates, "updated_at": datetime.now(UTC)}
        )

        if not is_update_allowed(Table.ORDERS, caller, current, proposed, self._lookup()):
            record_authorization_denial(Table.ORDERS.value, Operation.UPDATE.value)
            raise WriteRejectedError()

        if current.status != OrderStatus.PENDING:
            raise IntegrityConflictError(
                f"Order details can only be changed while pending (order is {current.status.value})"
            )

        self._save(proposed, current)
        return proposed

    @traced("change_order_status", service_name="ordering-svc")
    async def change_status(self, caller: Caller, order_id: str, target: OrderStatus) -> Order:
        """Move an order to a new status.

        Args:
            caller: The ordering customer or the restaurant's seller
            order_id: Order to update
            target: Requested status

        Returns:
            The updated order

        Raises:
            RowNotFoundError: If the order is not visible
            WriteRejectedError: If the update policy denies the caller
            IntegrityConflictError: If the transition is not allowed for the caller's side
            StorageUnavailableError: If the store rejects the write
        """
        lookup = self._lookup()
        current = await self.get_order(caller, order_id)
        proposed = Order.model_validate(
            {**current.model_dump(), "status": target, "updated_at": datetime.now(UTC)}
        )

        if not is_update_allowed(Table.ORDERS, caller, current, proposed, lookup):
            record_authorization_denial(Table.ORDERS.value, Operation.UPDATE.value)
            raise WriteRejectedError()

        if current.status in TERMINAL_STATUSES:
            raise IntegrityConflictError(f"Order is already {current.status.value}")

        party = UserRole.CUSTOMER if current.customer_id == caller.user_id else UserRole.SELLER
        if not can_transition(current.status, target, party):
            allowed = ", ".join(s.value for s in allowed_targets(current.status, party)) or "none"
            raise IntegrityConflictError(
                f"Cannot move order from {current.status.value} to {target.value} "
                f"as {party.value} (allowed: {allowed})"
            )

        self._save(proposed, current)

        record_status_transition(current.status.value, target.value, party.value)
        logger.info(
            f"Order {order_id} moved from {current.status.value} to {target.value} by {party.value}"
        )
        return proposed

    def _save(self, proposed: Order, current: Order) -> None:
        try:
            saved = self.order_repository.save_order(proposed, current)
        except ConditionalWriteError as e:
            raise IntegrityConflictError("Order was changed by another request") from e
        if not saved:
            raise StorageUnavailableError("Failed to save order")

    def _orderable_dish(
        self, caller: Caller, dish_id: str, restaurant_id: str, lookup: RepositoryParentLookup
    ) -> Dish:
        dish = self.dish_repository.get_dish(dish_id)
        if dish is None or not is_allowed(Table.DISHES, Operation.SELECT, caller, dish, lookup):
            record_order_placement_failure("dish_not_found")
            raise RowNotFoundError(Table.DISHES.value)
        if dish.restaurant_id != restaurant_id:
            record_order_placement_failure("dish_restaurant_mismatch")
            raise IntegrityConflictError(f"Dish {dish_id} is not on this restaurant's menu")
        if not dish.is_available:
            record_order_placement_failure("dish_unavailable")
            raise IntegrityConflictError(f"Dish {dish_id} is not available")
        return dish

    def _lookup(self) -> RepositoryParentLookup:
        return RepositoryParentLookup(self.restaurant_repository, self.order_repository)
