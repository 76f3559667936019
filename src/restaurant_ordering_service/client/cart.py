"""Session-scoped shopping cart.

A cart belongs to one client session. It opens on the first add, holds
dishes from a single restaurant, and is emptied either explicitly or by a
successful checkout. Nothing in it is persisted until checkout.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from restaurant_ordering_service.models.catalog_models import Dish, Restaurant
from restaurant_ordering_service.models.order_models import (
    OrderCreate,
    OrderLineRequest,
    quantize_amount,
)

logger = logging.getLogger(__name__)


class CartError(Exception):
    """Invalid cart operation."""


class CartRestaurantMismatchError(CartError):
    """The dish belongs to a different restaurant than the cart."""


@dataclass
class CartLine:
    """A dish in the cart.

    Attributes:
        dish: Dish as shown when it was added (price is indicative only)
        restaurant: Restaurant the dish belongs to
        quantity: Units, always positive
    """

    dish: Dish
    restaurant: Restaurant
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.dish.price * self.quantity


class Cart:
    """Client-side cart for one session."""

    def __init__(self) -> None:
        self._lines: dict[str, CartLine] = {}
        self.opened_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        """True between the first add and the next clear."""
        return self.opened_at is not None

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def restaurant(self) -> Restaurant | None:
        """Restaurant every line belongs to, None when empty."""
        first = next(iter(self._lines.values()), None)
        return first.restaurant if first else None

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def item_count(self) -> int:
        """Total units across all lines."""
        return sum(line.quantity for line in self._lines.values())

    @property
    def total(self) -> Decimal:
        """Indicative total; the service recomputes it from current prices."""
        return quantize_amount(sum((line.line_total for line in self._lines.values()), Decimal("0")))

    def add_dish(self, dish: Dish, restaurant: Restaurant, quantity: int = 1) -> CartLine:
        """Add units of a dish, merging with an existing line.

        Args:
            dish: Dish to add
            restaurant: Restaurant the dish is on
            quantity: Units to add

        Returns:
            The updated or new cart line

        Raises:
            CartError: If quantity is not positive or dish and restaurant disagree
            CartRestaurantMismatchError: If the cart already holds another restaurant's dishes
        """
        if quantity <= 0:
            raise CartError("Quantity must be positive")
        if dish.restaurant_id != restaurant.id:
            raise CartError(f"Dish {dish.id} is not on the menu of restaurant {restaurant.id}")

        current = self.restaurant
        if current is not None and current.id != restaurant.id:
            raise CartRestaurantMismatchError(
                f"Cart already holds dishes from {current.name}; clear it to order from {restaurant.name}"
            )

        if self.opened_at is None:
            self.opened_at = datetime.now(UTC)
            logger.debug("Cart opened")

        line = self._lines.get(dish.id)
        if line is None:
            line = CartLine(dish=dish, restaurant=restaurant, quantity=quantity)
            self._lines[dish.id] = line
        else:
            line.quantity += quantity
        return line

    def update_quantity(self, dish_id: str, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line.

        Raises:
            CartError: If the dish is not in the cart
        """
        if dish_id not in self._lines:
            raise CartError(f"Dish {dish_id} is not in the cart")

        if quantity <= 0:
            del self._lines[dish_id]
            if not self._lines:
                self.clear()
            return

        self._lines[dish_id].quantity = quantity

    def remove(self, dish_id: str) -> None:
        """Remove a line."""
        self.update_quantity(dish_id, 0)

    def clear(self) -> None:
        """Empty the cart and close it."""
        self._lines.clear()
        self.opened_at = None
        logger.debug("Cart cleared")

    def to_order_request(self, delivery_address: str, notes: str = "") -> OrderCreate:
        """Flatten the cart into an order placement request.

        Raises:
            CartError: If the cart is empty
        """
        restaurant = self.restaurant
        if restaurant is None:
            raise CartError("Cart is empty")

        return OrderCreate(
            restaurant_id=restaurant.id,
            delivery_address=delivery_address,
            notes=notes,
            items=[
                OrderLineRequest(dish_id=line.dish.id, quantity=line.quantity)
                for line in self._lines.values()
            ],
        )
