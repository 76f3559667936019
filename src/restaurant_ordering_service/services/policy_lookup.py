"""Parent-chain lookup backed by the repositories."""

from restaurant_ordering_service.models.catalog_models import Restaurant
from restaurant_ordering_service.models.order_models import Order
from restaurant_ordering_service.repositories.catalog_repositories import RestaurantRepository
from restaurant_ordering_service.repositories.order_repositories import OrderRepository


class RepositoryParentLookup:
    """Resolves parent rows for row policies straight from the store.

    Lookups bypass row policies, the same way an ownership sub-query runs
    with the privileges of the policy rather than the caller. Results are
    memoized for the lifetime of the instance, which is one request.
    """

    def __init__(
        self,
        restaurant_repository: RestaurantRepository,
        order_repository: OrderRepository | None = None,
    ) -> None:
        self.restaurant_repository = restaurant_repository
        self.order_repository = order_repository
        self._restaurants: dict[str, Restaurant | None] = {}
        self._orders: dict[str, Order | None] = {}

    def get_restaurant(self, restaurant_id: str) -> Restaurant | None:
        if restaurant_id not in self._restaurants:
            self._restaurants[restaurant_id] = self.restaurant_repository.get_restaurant(
                restaurant_id
            )
        return self._restaurants[restaurant_id]

    def get_order(self, order_id: str) -> Order | None:
        if order_id not in self._orders:
            if self.order_repository is None:
                return None
            self._orders[order_id] = self.order_repository.get_order(order_id)
        return self._orders[order_id]

    def stage_order(self, order: Order) -> None:
        """Make an order not yet written visible to line item policies."""
        self._orders[order.id] = order
