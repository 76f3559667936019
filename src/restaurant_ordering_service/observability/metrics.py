"""Custom metrics for the ordering service."""

from opentelemetry import metrics

meter = metrics.get_meter("ordering-svc")

orders_placed_counter = meter.create_counter(
    name="orders_placed_total",
    description="Total number of orders placed",
    unit="1",
)

order_placement_failure_counter = meter.create_counter(
    name="order_placement_failure_total",
    description="Total number of rejected or failed order placements by reason",
    unit="1",
)

order_amount_histogram = meter.create_histogram(
    name="order_total_amount",
    description="Total amount of placed orders",
    unit="1",
)

order_item_count_histogram = meter.create_histogram(
    name="order_item_count",
    description="Number of distinct dishes per placed order",
    unit="1",
)

status_transition_counter = meter.create_counter(
    name="order_status_transition_total",
    description="Order status changes by source, target and acting party",
    unit="1",
)

authorization_denial_counter = meter.create_counter(
    name="authorization_denial_total",
    description="Writes rejected by row policies by table and operation",
    unit="1",
)


def record_order_placed(item_count: int, total_amount: float) -> None:
    """Record a successfully placed order.

    Args:
        item_count: Number of line items written with the order
        total_amount: Order total
    """
    orders_placed_counter.add(1)
    order_item_count_histogram.record(item_count)
    order_amount_histogram.record(total_amount)


def record_order_placement_failure(reason: str) -> None:
    """Record an order that was not placed.

    Args:
        reason: Short reason code (e.g. "dish_unavailable", "storage")
    """
    order_placement_failure_counter.add(1, {"reason": reason})


def record_status_transition(from_status: str, to_status: str, party: str) -> None:
    """Record an order status change.

    Args:
        from_status: Status before the change
        to_status: Status after the change
        party: "customer" or "seller"
    """
    status_transition_counter.add(1, {"from": from_status, "to": to_status, "party": party})


def record_authorization_denial(table: str, operation: str) -> None:
    """Record a write rejected by a row policy.

    Args:
        table: Table the write targeted
        operation: insert, update or delete
    """
    authorization_denial_counter.add(1, {"table": table, "operation": operation})
