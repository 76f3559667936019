"""Catalog service for restaurants and their dishes."""

import logging
import uuid
from datetime import UTC, datetime

from restaurant_ordering_service.auth.row_policies import (
    Caller,
    Operation,
    Table,
    filter_visible,
    is_allowed,
    is_update_allowed,
)
from restaurant_ordering_service.models.catalog_models import (
    Dish,
    DishCreate,
    DishUpdate,
    Restaurant,
    RestaurantCreate,
    RestaurantUpdate,
)
from restaurant_ordering_service.models.query_models import RowQuery
from restaurant_ordering_service.observability import traced
from restaurant_ordering_service.observability.metrics import record_authorization_denial
from restaurant_ordering_service.repositories.catalog_repositories import (
    DishRepository,
    RestaurantRepository,
)
from restaurant_ordering_service.services.errors import (
    RowNotFoundError,
    StorageUnavailableError,
    WriteRejectedError,
)
from restaurant_ordering_service.services.policy_lookup import RepositoryParentLookup

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for browsing and managing restaurants and dishes.

    Customers see active restaurants and their available dishes. Sellers
    additionally see, and alone may change, everything they own.
    """

    def __init__(
        self,
        restaurant_repository: RestaurantRepository,
        dish_repository: DishRepository,
    ) -> None:
        """Initialize the CatalogService.

        Args:
            restaurant_repository: Repository for restaurants
            dish_repository: Repository for dishes
        """
        self.restaurant_repository = restaurant_repository
        self.dish_repository = dish_repository

    # Restaurants

    @traced("list_restaurants", service_name="ordering-svc")
    async def list_restaurants(self, caller: Caller, query: RowQuery | None = None) -> list[Restaurant]:
        """List restaurants visible to the caller.

        Args:
            caller: Authenticated caller
            query: Optional filters and ordering

        Returns:
            Visible restaurants matching the query
        """
        candidates: dict[str, Restaurant] = {
            r.id: r for r in self.restaurant_repository.list_active()
        }
        for restaurant in self.restaurant_repository.list_for_seller(caller.user_id):
            candidates[restaurant.id] = restaurant

        visible = filter_visible(Table.RESTAURANTS, caller, list(candidates.values()), self._lookup())
        return (query or RowQuery()).apply(visible)

    @traced("get_restaurant", service_name="ordering-svc")
    async def get_restaurant(self, caller: Caller, restaurant_id: str) -> Restaurant:
        """Get one restaurant.

        Raises:
            RowNotFoundError: If it does not exist or is not visible
        """
        restaurant = self.restaurant_repository.get_restaurant(restaurant_id)
        if restaurant is None or not is_allowed(
            Table.RESTAURANTS, Operation.SELECT, caller, restaurant, self._lookup()
        ):
            raise RowNotFoundError(Table.RESTAURANTS.value)
        return restaurant

    @traced("create_restaurant", service_name="ordering-svc")
    async def create_restaurant(self, caller: Caller, request: RestaurantCreate) -> Restaurant:
        """Create a restaurant owned by the calling seller.

        Raises:
            WriteRejectedError: If the caller is not a seller
            StorageUnavailableError: If the store rejects the write
        """
        now = datetime.now(UTC)
        restaurant = Restaurant(
            id=str(uuid.uuid4()),
            seller_id=caller.user_id,
            created_at=now,
            updated_at=now,
            **request.model_dump(),
        )

        if not is_allowed(Table.RESTAURANTS, Operation.INSERT, caller, restaurant, self._lookup()):
            record_authorization_denial(Table.RESTAURANTS.value, Operation.INSERT.value)
            raise WriteRejectedError()

        if not self.restaurant_repository.save_restaurant(restaurant):
            raise StorageUnavailableError("Failed to save restaurant")

        logger.info(f"Seller {caller.user_id} created restaurant {restaurant.id}")
        return restaurant

    @traced("update_restaurant", service_name="ordering-svc")
    async def update_restaurant(
        self, caller: Caller, restaurant_id: str, changes: RestaurantUpdate
    ) -> Restaurant:
        """Apply a partial update to a restaurant.

        Raises:
            RowNotFoundError: If it does not exist or is not visible
            WriteRejectedError: If the caller does not own it
            StorageUnavailableError: If the store rejects the write
        """
        current = await self.get_restaurant(caller, restaurant_id)
        updates = changes.model_dump(exclude_unset=True, exclude_none=True)
        proposed = Restaurant.model_validate(
            {**current.model_dump(), **updates, "updated_at": datetime.now(UTC)}
        )

        if not is_update_allowed(Table.RESTAURANTS, caller, current, proposed, self._lookup()):
            record_authorization_denial(Table.RESTAURANTS.value, Operation.UPDATE.value)
            raise WriteRejectedError()

        if not self.restaurant_repository.save_restaurant(proposed):
            raise StorageUnavailableError("Failed to save restaurant")

        return proposed

    @traced("delete_restaurant", service_name="ordering-svc")
    async def delete_restaurant(self, caller: Caller, restaurant_id: str) -> None:
        """Delete a restaurant and its dishes.

        Orders placed with the restaurant stay in the ledger.

        Raises:
            RowNotFoundError: If it does not exist or is not visible
            WriteRejectedError: If the caller does not own it
            StorageUnavailableError: If the store rejects the delete
        """
        restaurant = await self.get_restaurant(caller, restaurant_id)

        if not is_allowed(Table.RESTAURANTS, Operation.DELETE, caller, restaurant, self._lookup()):
            record_authorization_denial(Table.RESTAURANTS.value, Operation.DELETE.value)
            raise WriteRejectedError()

        for dish in self.dish_repository.list_for_restaurant(restaurant_id):
            if not self.dish_repository.delete_dish(dish.id):
                raise StorageUnavailableError(f"Failed to delete dish {dish.id}")

        if not self.restaurant_repository.delete_restaurant(restaurant_id):
            raise StorageUnavailableError("Failed to delete restaurant")

        logger.info(f"Seller {caller.user_id} deleted restaurant {restaurant_id}")

    # Dishes

    @traced("list_dishes", service_name="ordering-svc")
    async def list_dishes(
        self, caller: Caller, restaurant_id: str, query: RowQuery | None = None
    ) -> list[Dish]:
        """List the dishes of a restaurant visible to the caller.

        Args:
            caller: Authenticated caller
            restaurant_id: Restaurant whose menu to list
            query: Optional filters and ordering

        Returns:
            Visible dishes matching the query
        """
        dishes = self.dish_repository.list_for_restaurant(restaurant_id)
        visible = filter_visible(Table.DISHES, caller, dishes, self._lookup())
        return (query or RowQuery()).apply(visible)

    @traced("get_dish", service_name="ordering-svc")
    async def get_dish(self, caller: Caller, dish_id: str) -> Dish:
        """Get one dish.

        Raises:
            RowNotFoundError: If it does not exist or is not visible
        """
        dish = self.dish_repository.get_dish(dish_id)
        if dish is None or not is_allowed(
            Table.DISHES, Operation.SELECT, caller, dish, self._lookup()
        ):
            raise RowNotFoundError(Table.DISHES.value)
        return dish

    @traced("create_dish", service_name="ordering-svc")
    async def create_dish(self, caller: Caller, restaurant_id: str, request: DishCreate) -> Dish:
        """Add a dish to a restaurant the caller owns.

        Raises:
            WriteRejectedError: If the caller does not own the restaurant
            StorageUnavailableError: If the store rejects the write
        """
        now = datetime.now(UTC)
        dish = Dish(
            id=str(uuid.uuid4()),
            restaurant_id=restaurant_id,
            created_at=now,
            updated_at=now,
            **request.model_dump(),
        )

        if not is_allowed(Table.DISHES, Operation.INSERT, caller, dish, self._lookup()):
            record_authorization_denial(Table.DISHES.value, Operation.INSERT.value)
            raise WriteRejectedError()

        if not self.dish_repository.save_dish(dish):
            raise StorageUnavailableError("Failed to save dish")

        return dish

    @traced("update_dish", service_name="ordering-svc")
    async def update_dish(self, caller: Caller, dish_id: str, changes: DishUpdate) -> Dish:
        """Apply a partial update to a dish, e.g. a price change or availability toggle.

        Past order items keep the price they were placed at.

        Raises:
            RowNotFoundError: If it does not exist or is not visible
            WriteRejectedError: If the caller does not own the restaurant
            StorageUnavailableError: If the store rejects the write
        """
        current = await self.get_dish(caller, dish_id)
        updates = changes.model_dump(exclude_unset=True, exclude_none=True)
        proposed = Dish.model_validate(
            {**current.model_dump(), **updates, "updated_at": datetime.now(UTC)}
        )

        if not is_update_allowed(Table.DISHES, caller, current, proposed, self._lookup()):
            record_authorization_denial(Table.DISHES.value, Operation.UPDATE.value)
            raise WriteRejectedError()

        if not self.dish_repository.save_dish(proposed):
            raise StorageUnavailableError("Failed to save dish")

        return proposed

    @traced("delete_dish", service_name="ordering-svc")
    async def delete_dish(self, caller: Caller, dish_id: str) -> None:
        """Delete a dish.

        Raises:
            RowNotFoundError: If it does not exist or is not visible
            WriteRejectedError: If the caller does not own the restaurant
            StorageUnavailableError: If the store rejects the delete
        """
        dish = await self.get_dish(caller, dish_id)

        if not is_allowed(Table.DISHES, Operation.DELETE, caller, dish, self._lookup()):
            record_authorization_denial(Table.DISHES.value, Operation.DELETE.value)
            raise WriteRejectedError()

        if not self.dish_repository.delete_dish(dish_id):
            raise StorageUnavailableError("Failed to delete dish")

    def _lookup(self) -> RepositoryParentLookup:
        return RepositoryParentLookup(self.restaurant_repository)
