"""Order ledger models.

These models represent orders placed by customers against a restaurant and
the immutable line items recorded at placement time, plus the order status
state machine that governs who may move an order between statuses.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from restaurant_ordering_service.models.catalog_models import UserRole

CENTS = Decimal("0.01")


class OrderStatus(str, Enum):
    """Enumeration of order status values."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

MAX_LINE_QUANTITY = 999

# (from, to) -> roles allowed to make the move
STATUS_TRANSITIONS: dict[tuple[OrderStatus, OrderStatus], frozenset[UserRole]] = {
    (OrderStatus.PENDING, OrderStatus.CONFIRMED): frozenset({UserRole.SELLER}),
    (OrderStatus.CONFIRMED, OrderStatus.PREPARING): frozenset({UserRole.SELLER}),
    (OrderStatus.PREPARING, OrderStatus.READY): frozenset({UserRole.SELLER}),
    (OrderStatus.READY, OrderStatus.DELIVERED): frozenset({UserRole.SELLER}),
    (OrderStatus.PENDING, OrderStatus.CANCELLED): frozenset({UserRole.CUSTOMER, UserRole.SELLER}),
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED): frozenset({UserRole.SELLER}),
    (OrderStatus.PREPARING, OrderStatus.CANCELLED): frozenset({UserRole.SELLER}),
    (OrderStatus.READY, OrderStatus.CANCELLED): frozenset({UserRole.SELLER}),
}


def can_transition(current: OrderStatus, target: OrderStatus, party: UserRole) -> bool:
    """Check whether a party may move an order from one status to another.

    Args:
        current: Status the order is in now
        target: Requested status
        party: Side of the order making the request (customer or seller)

    Returns:
        bool: True if the transition is legal for that party
    """
    return party in STATUS_TRANSITIONS.get((current, target), frozenset())


def allowed_targets(current: OrderStatus, party: UserRole) -> list[OrderStatus]:
    """List the statuses a party may move an order to from its current status."""
    return [
        target
        for (source, target), parties in STATUS_TRANSITIONS.items()
        if source == current and party in parties
    ]


def quantize_amount(amount: Decimal) -> Decimal:
    """Round a monetary amount to cents."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class Order(BaseModel):
    """Order placed by a customer against a single restaurant.

    Stored in DynamoDB with id as partition key and indexes on
    customer_id and restaurant_id.
    """

    model_config = ConfigDict(json_encoders={Decimal: str})

    id: str = Field(..., description="Unique order identifier")
    customer_id: str = Field(..., description="Profile id of the ordering customer")
    restaurant_id: str = Field(..., description="Restaurant the order is placed with")
    total_amount: Decimal = Field(..., description="Order total", ge=0)
    status: OrderStatus = Field(default=OrderStatus.PENDING, description="Current order status")
    delivery_address: str = Field(..., description="Where to deliver the order")
    notes: str = Field(default="", description="Special instructions")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @field_validator("delivery_address")
    @classmethod
    def validate_delivery_address(cls, v: str) -> str:
        """Validate that the delivery address is not blank."""
        if not v.strip():
            raise ValueError("delivery_address must not be blank")
        return v

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "restaurant_id": self.restaurant_id,
            "total_amount": self.total_amount,
            "status": self.status.value,
            "delivery_address": self.delivery_address,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "Order":
        """Create Order from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Order: Parsed model instance
        """
        return cls(
            id=item["id"],
            customer_id=item["customer_id"],
            restaurant_id=item["restaurant_id"],
            total_amount=Decimal(str(item["total_amount"])),
            status=OrderStatus(item["status"]),
            delivery_address=item["delivery_address"],
            notes=item.get("notes", ""),
            created_at=datetime.fromisoformat(item["created_at"]),
            updated_at=datetime.fromisoformat(item["updated_at"]),
        )


class OrderItem(BaseModel):
    """Line item recorded when an order is placed.

    The price is a snapshot of the dish price at placement time and is
    never re-read from the dish.
    """

    model_config = ConfigDict(frozen=True, json_encoders={Decimal: str})

    id: str = Field(..., description="Unique line item identifier")
    order_id: str = Field(..., description="Order this item belongs to")
    dish_id: str = Field(..., description="Dish that was ordered")
    quantity: int = Field(..., description="Number of units ordered", gt=0)
    price: Decimal = Field(..., description="Unit price at placement time", ge=0)
    created_at: datetime = Field(..., description="Creation timestamp")

    @property
    def line_total(self) -> Decimal:
        """Unit price multiplied by quantity."""
        return self.price * self.quantity

    def to_dynamodb_item(self) -> dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            dict: DynamoDB-compatible representation
        """
        return {
            "id": self.id,
            "order_id": self.order_id,
            "dish_id": self.dish_id,
            "quantity": self.quantity,
            "price": self.price,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dynamodb_item(cls, item: dict[str, Any]) -> "OrderItem":
        """Create OrderItem from DynamoDB item.

        Args:
            item: DynamoDB item dictionary

        Returns:
            OrderItem: Parsed model instance
        """
        return cls(
            id=item["id"],
            order_id=item["order_id"],
            dish_id=item["dish_id"],
            quantity=int(item["quantity"]),
            price=Decimal(str(item["price"])),
            created_at=datetime.fromisoformat(item["created_at"]),
        )


class OrderLineRequest(BaseModel):
    """One cart line submitted at checkout."""

    dish_id: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0, le=MAX_LINE_QUANTITY)


class OrderCreate(BaseModel):
    """Request body for placing an order with its line items."""

    restaurant_id: str = Field(..., min_length=1)
    delivery_address: str = Field(..., min_length=1)
    notes: str = ""
    items: list[OrderLineRequest] = Field(..., min_length=1)

    @field_validator("delivery_address")
    @classmethod
    def validate_delivery_address(cls, v: str) -> str:
        """Validate that the delivery address is not blank."""
        if not v.strip():
            raise ValueError("delivery_address must not be blank")
        return v.strip()


class OrderUpdate(BaseModel):
    """Request body for editing a pending order's details."""

    model_config = ConfigDict(extra="forbid")

    delivery_address: str | None = Field(None, min_length=1)
    notes: str | None = None


class OrderStatusUpdate(BaseModel):
    """Request body for moving an order to a new status."""

    status: OrderStatus


class PlacedOrder(BaseModel):
    """An order together with the line items written alongside it."""

    order: Order
    items: list[OrderItem]
