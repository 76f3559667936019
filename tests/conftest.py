"""Shared pytest fixtures and configuration for all tests."""

import os
from datetime import UTC, datetime
from decimal import Decimal

import pytest

# main.py and lambda_handler.py only build the real app outside test mode
os.environ.setdefault("ENVIRONMENT", "test")

from restaurant_ordering_service.auth.row_policies import Caller  # noqa: E402
from restaurant_ordering_service.models.catalog_models import (  # noqa: E402
    Dish,
    Profile,
    Restaurant,
    UserRole,
)
from restaurant_ordering_service.models.order_models import Order, OrderItem, OrderStatus  # noqa: E402

NOW = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


class StaticLookup:
    """Parent lookup over fixed rows."""

    def __init__(
        self, restaurants: list[Restaurant] | None = None, orders: list[Order] | None = None
    ) -> None:
        self.restaurants = {r.id: r for r in restaurants or []}
        self.orders = {o.id: o for o in orders or []}

    def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        return self.restaurants.get(restaurant_id)

    def get_order(self, order_id: str) -> Order | None:
        return self.orders.get(order_id)


@pytest.fixture
def customer() -> Caller:
    """Fixture providing a customer caller."""
    return Caller(user_id="cust_1", role=UserRole.CUSTOMER, email="ann@example.com")


@pytest.fixture
def seller() -> Caller:
    """Fixture providing the seller owning the sample restaurant."""
    return Caller(user_id="seller_1", role=UserRole.SELLER, email="sam@example.com")


@pytest.fixture
def other_seller() -> Caller:
    """Fixture providing a seller who owns nothing in the fixtures."""
    return Caller(user_id="seller_2", role=UserRole.SELLER, email="zoe@example.com")


@pytest.fixture
def customer_profile() -> Profile:
    """Fixture providing the customer's profile."""
    return Profile(
        id="cust_1",
        email="ann@example.com",
        full_name="Ann Customer",
        role=UserRole.CUSTOMER,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def restaurant() -> Restaurant:
    """Fixture providing an active restaurant owned by seller_1."""
    return Restaurant(
        id="rest_1",
        seller_id="seller_1",
        name="Burger Barn",
        description="Smash burgers",
        address="1 Main St",
        is_active=True,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def inactive_restaurant() -> Restaurant:
    """Fixture providing an inactive restaurant owned by seller_1."""
    return Restaurant(
        id="rest_2",
        seller_id="seller_1",
        name="Closed Kitchen",
        is_active=False,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def dish() -> Dish:
    """Fixture providing an available dish priced 12.49."""
    return Dish(
        id="dish_1",
        restaurant_id="rest_1",
        name="Cheeseburger",
        price=Decimal("12.49"),
        category="Burgers",
        is_available=True,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def unavailable_dish() -> Dish:
    """Fixture providing a dish that is switched off."""
    return Dish(
        id="dish_2",
        restaurant_id="rest_1",
        name="Seasonal Shake",
        price=Decimal("6.00"),
        category="Drinks",
        is_available=False,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def order() -> Order:
    """Fixture providing a pending order by cust_1 at rest_1."""
    return Order(
        id="order_1",
        customer_id="cust_1",
        restaurant_id="rest_1",
        total_amount=Decimal("24.98"),
        status=OrderStatus.PENDING,
        delivery_address="22 Elm Road",
        notes="Ring twice",
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def order_item() -> OrderItem:
    """Fixture providing the line item of the sample order."""
    return OrderItem(
        id="item_1",
        order_id="order_1",
        dish_id="dish_1",
        quantity=2,
        price=Decimal("12.49"),
        created_at=NOW,
    )


@pytest.fixture
def make_lookup() -> type[StaticLookup]:
    """Fixture providing the fixed-row parent lookup class."""
    return StaticLookup
