"""DynamoDB repositories for the order ledger.

Orders and their line items live in separate tables. Placing an order writes
the order row and every line item in one TransactWriteItems call so either
all rows land or none do.
"""

import logging
from typing import Any

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource

from restaurant_ordering_service.models.order_models import Order, OrderItem
from restaurant_ordering_service.repositories.base_repository import (
    ConditionalWriteError,
    DynamoDBRepository,
    condition_failures,
)

logger = logging.getLogger(__name__)

# DynamoDB caps a single transaction at 100 actions
MAX_TRANSACTION_ITEMS = 100


class OrderItemRepository(DynamoDBRepository):
    """Repository for order line items, with an order_id index.

    Line items are written only through OrderRepository.place_order and
    are never updated or deleted.
    """

    def list_for_order(self, order_id: str) -> list[OrderItem]:
        """List all line items of an order.

        Uses a Global Secondary Index on order_id.

        Args:
            order_id: Order identifier

        Returns:
            list: Line items (empty list if none found)
        """
        try:
            items = self._query_index("order_id-index", "order_id", order_id)
            return [OrderItem.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list order items: {e}")  # pragma: no cover
            return []


class OrderRepository(DynamoDBRepository):
    """Repository for orders, with customer_id and restaurant_id indexes."""

    def __init__(
        self,
        dynamodb_resource: DynamoDBServiceResource,
        table_name: str,
        order_items_table_name: str,
    ) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the orders table
            order_items_table_name: Name of the order items table written in the
                same transaction as the order
        """
        super().__init__(dynamodb_resource, table_name)
        self.order_items_table_name = order_items_table_name

    def get_order(self, order_id: str) -> Order | None:
        """Retrieve an order by id.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise
        """
        try:
            response = self.table.get_item(Key={"id": order_id})

            if "Item" not in response:
                return None

            return Order.from_dynamodb_item(response["Item"])

        except ClientError as e:
            logger.error(f"Failed to get order: {e}")  # pragma: no cover
            return None

    def save_order(self, order: Order, expected: Order) -> bool:
        """Update an existing order if it still matches the state it was read in.

        The write only succeeds while the stored row has the status and
        updated_at of ``expected``, so a decision made on a stale read never
        overwrites a newer one.

        Args:
            order: Order with its new state
            expected: Order as it was read before computing the new state

        Returns:
            bool: True if save succeeded, False on store errors

        Raises:
            ConditionalWriteError: If the row is missing or changed since it was read
        """
        try:
            self.table.put_item(
                Item=order.to_dynamodb_item(),
                ConditionExpression="attribute_exists(id) AND #s = :status AND #u = :updated",
                ExpressionAttributeNames={"#s": "status", "#u": "updated_at"},
                ExpressionAttributeValues={
                    ":status": expected.status.value,
                    ":updated": expected.updated_at.isoformat(),
                },
            )
            return True

        except ClientError as e:
            failed = condition_failures(e)
            if failed is not None:
                raise ConditionalWriteError(failed) from e
            logger.error(f"Failed to save order: {e}")  # pragma: no cover
            return False

    def place_order(self, order: Order, items: list[OrderItem]) -> bool:
        """Write an order and its line items atomically.

        Args:
            order: New order row
            items: Line items referencing the order

        Returns:
            bool: True if every row was written, False if none were
        """
        if len(items) + 1 > MAX_TRANSACTION_ITEMS:
            logger.error(f"Order {order.id} has too many line items for one transaction")
            return False

        transact_items: list[dict[str, Any]] = [
            self._put_new(self.table_name, order.to_dynamodb_item())
        ]
        transact_items.extend(
            self._put_new(self.order_items_table_name, item.to_dynamodb_item()) for item in items
        )

        try:
            return self._transact(transact_items, f"place order {order.id}")

        except ConditionalWriteError as e:
            logger.error(f"Order {order.id} collides with an existing row: {e}")
            return False

    def list_for_customer(self, customer_id: str) -> list[Order]:
        """List all orders placed by a customer.

        Uses a Global Secondary Index on customer_id.

        Args:
            customer_id: Profile id of the customer

        Returns:
            list: Orders (empty list if none found)
        """
        try:
            items = self._query_index("customer_id-index", "customer_id", customer_id)
            return [Order.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list orders for customer: {e}")  # pragma: no cover
            return []

    def list_for_restaurant(self, restaurant_id: str) -> list[Order]:
        """List all orders placed with a restaurant.

        Uses a Global Secondary Index on restaurant_id.

        Args:
            restaurant_id: Restaurant identifier

        Returns:
            list: Orders (empty list if none found)
        """
        try:
            items = self._query_index("restaurant_id-index", "restaurant_id", restaurant_id)
            return [Order.from_dynamodb_item(item) for item in items]

        except ClientError as e:
            logger.error(f"Failed to list orders for restaurant: {e}")  # pragma: no cover
            return []
