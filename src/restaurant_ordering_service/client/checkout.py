"""Checkout flow: validate the cart, place the order, clear the cart."""

import logging
from dataclasses import dataclass, field

from restaurant_ordering_service.client.cart import Cart
from restaurant_ordering_service.client.ordering_client import OrderingClient, OrderingClientError
from restaurant_ordering_service.models.order_models import Order, OrderItem

logger = logging.getLogger(__name__)


class CheckoutValidationError(ValueError):
    """A required checkout field is missing."""


@dataclass
class CheckoutResult:
    """Outcome of a checkout attempt.

    Attributes:
        success: Whether the order was placed
        order: Placed order on success
        items: Line items written with the order
        error_message: Message to show the user on failure
    """

    success: bool
    order: Order | None = None
    items: list[OrderItem] = field(default_factory=list)
    error_message: str | None = None


def validate_checkout(cart: Cart, delivery_address: str) -> None:
    """Required-field checks run before any request is sent.

    Raises:
        CheckoutValidationError: If the cart is empty or the address is blank
    """
    if cart.is_empty:
        raise CheckoutValidationError("Your cart is empty")
    if not delivery_address.strip():
        raise CheckoutValidationError("Please enter a delivery address")


async def checkout(
    client: OrderingClient, cart: Cart, delivery_address: str, notes: str = ""
) -> CheckoutResult:
    """Place the cart as one order.

    The service writes the order and its items atomically, so a failure
    leaves nothing behind and the cart untouched for another attempt. The
    cart is cleared only after the order is placed.

    Args:
        client: Ordering API client for the signed-in customer
        cart: The session's cart
        delivery_address: Required delivery address
        notes: Optional instructions

    Returns:
        CheckoutResult; failures are reported, never raised
    """
    try:
        validate_checkout(cart, delivery_address)
    except CheckoutValidationError as e:
        return CheckoutResult(success=False, error_message=str(e))

    request = cart.to_order_request(delivery_address.strip(), notes)

    try:
        placed = await client.place_order(request)
    except OrderingClientError as e:
        logger.warning(f"Checkout failed: {e}")
        return CheckoutResult(success=False, error_message=e.user_message)

    cart.clear()
    logger.info(f"Placed order {placed.order.id} for {placed.order.total_amount}")
    return CheckoutResult(success=True, order=placed.order, items=placed.items)
