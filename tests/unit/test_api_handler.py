"""Unit tests for the ordering API endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from restaurant_ordering_service.auth.row_policies import Caller
from restaurant_ordering_service.auth.session_tokens import SessionTokenVerifier
from restaurant_ordering_service.handlers.api_handler import create_app
from restaurant_ordering_service.models.catalog_models import Dish, Profile, Restaurant
from restaurant_ordering_service.models.order_models import (
    Order,
    OrderItem,
    OrderStatus,
    PlacedOrder,
)
from restaurant_ordering_service.models.query_models import RowQuery
from restaurant_ordering_service.services.catalog_service import CatalogService
from restaurant_ordering_service.services.errors import (
    IntegrityConflictError,
    RowNotFoundError,
    StorageUnavailableError,
    WriteRejectedError,
)
from restaurant_ordering_service.services.order_service import OrderService
from restaurant_ordering_service.services.profile_service import ProfileService

API_KEY = "test-anon-key"
verifier = SessionTokenVerifier(secret="test-secret")


@pytest.fixture
def client(customer: Caller) -> TestClient:
    """Create a test client with mocked services."""
    profile_service = MagicMock(spec=ProfileService)
    profile_service.resolve_caller.return_value = customer

    app = create_app(
        profile_service=profile_service,
        catalog_service=MagicMock(spec=CatalogService),
        order_service=MagicMock(spec=OrderService),
        api_keys=[API_KEY],
        token_verifier=verifier,
    )
    return TestClient(app)


@pytest.fixture
def headers() -> dict[str, str]:
    """Headers of an authenticated customer request."""
    token = verifier.issue("cust_1", email="ann@example.com")
    return {"X-API-Key": API_KEY, "Authorization": f"Bearer {token}"}


@pytest.mark.unit
class TestHealthEndpoint:
    """Test suite for health check endpoint."""

    def test_health_check(self, client: TestClient) -> None:
        """Test health check needs no credentials."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.unit
class TestAuthentication:
    """Test suite for API key and session token checks."""

    def test_missing_api_key(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test that requests without the public key are rejected."""
        del headers["X-API-Key"]

        response = client.get("/restaurants", headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "Missing API key"

    def test_invalid_api_key(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test that an unknown key is rejected."""
        headers["X-API-Key"] = "wrong"

        response = client.get("/restaurants", headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid API key"

    def test_missing_session_token(self, client: TestClient) -> None:
        """Test that anonymous requests are rejected."""
        response = client.get("/restaurants", headers={"X-API-Key": API_KEY})

        assert response.status_code == 401
        assert response.json()["detail"] == "Missing session token"

    def test_forged_session_token(self, client: TestClient) -> None:
        """Test that tokens signed with another secret are rejected."""
        forged = SessionTokenVerifier(secret="attacker").issue("cust_1")

        response = client.get(
            "/restaurants", headers={"X-API-Key": API_KEY, "Authorization": f"Bearer {forged}"}
        )

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid session token"
        client.app.state.catalog_service.list_restaurants.assert_not_called()


@pytest.mark.unit
class TestProfileEndpoints:
    """Test suite for profile endpoints."""

    def test_get_own_profile(
        self, client: TestClient, headers: dict[str, str], customer_profile: Profile, customer: Caller
    ) -> None:
        """Test reading the caller's profile."""
        client.app.state.profile_service.get_profile = AsyncMock(return_value=customer_profile)

        response = client.get("/profiles/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["role"] == "customer"
        client.app.state.profile_service.get_profile.assert_called_once_with(customer)

    def test_create_profile(
        self, client: TestClient, headers: dict[str, str], customer_profile: Profile
    ) -> None:
        """Test first sign-in profile creation."""
        client.app.state.profile_service.create_profile = AsyncMock(return_value=customer_profile)

        response = client.post(
            "/profiles", headers=headers, json={"full_name": "Ann", "role": "customer"}
        )

        assert response.status_code == 201
        request = client.app.state.profile_service.create_profile.call_args[0][1]
        assert request.full_name == "Ann"

    def test_create_profile_with_unknown_role(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test that the role must be customer or seller."""
        response = client.post(
            "/profiles", headers=headers, json={"full_name": "Ann", "role": "admin"}
        )

        assert response.status_code == 422

    def test_update_profile_can_not_change_role(
        self, client: TestClient, headers: dict[str, str]
    ) -> None:
        """Test that role is rejected in profile updates."""
        response = client.patch("/profiles/me", headers=headers, json={"role": "seller"})

        assert response.status_code == 422


@pytest.mark.unit
class TestRestaurantEndpoints:
    """Test suite for restaurant endpoints."""

    def test_list_restaurants_builds_query(
        self, client: TestClient, headers: dict[str, str], restaurant: Restaurant, customer: Caller
    ) -> None:
        """Test that query parameters become a RowQuery."""
        client.app.state.catalog_service.list_restaurants = AsyncMock(return_value=[restaurant])

        response = client.get(
            "/restaurants?is_active=true&order_by=name&ascending=true&limit=5", headers=headers
        )

        assert response.status_code == 200
        assert response.json()[0]["id"] == "rest_1"
        client.app.state.catalog_service.list_restaurants.assert_called_once_with(
            customer,
            RowQuery(filters={"is_active": True}, order_by="name", ascending=True, limit=5),
        )

    def test_list_restaurants_default_order(
        self, client: TestClient, headers: dict[str, str], customer: Caller
    ) -> None:
        """Test that restaurants default to newest first."""
        client.app.state.catalog_service.list_restaurants = AsyncMock(return_value=[])

        client.get("/restaurants", headers=headers)

        query = client.app.state.catalog_service.list_restaurants.call_args[0][1]
        assert query == RowQuery(order_by="created_at", ascending=False)

    def test_invalid_order_column(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test that only whitelisted ordering columns are accepted."""
        response = client.get("/restaurants?order_by=seller_id", headers=headers)
        assert response.status_code == 422

    def test_zero_limit_rejected(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test that a zero limit is a validation error."""
        response = client.get("/restaurants?limit=0", headers=headers)
        assert response.status_code == 422

    def test_hidden_restaurant_is_404(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test RowNotFoundError mapping."""
        client.app.state.catalog_service.get_restaurant = AsyncMock(
            side_effect=RowNotFoundError("restaurants")
        )

        response = client.get("/restaurants/rest_2", headers=headers)

        assert response.status_code == 404
        assert response.json() == {"detail": "No matching restaurants row"}

    def test_foreign_restaurant_update_is_403(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test WriteRejectedError mapping."""
        client.app.state.catalog_service.update_restaurant = AsyncMock(
            side_effect=WriteRejectedError()
        )

        response = client.patch("/restaurants/rest_1", headers=headers, json={"name": "Mine"})

        assert response.status_code == 403
        assert response.json() == {"detail": "Operation not permitted"}

    def test_delete_restaurant(self, client: TestClient, headers: dict[str, str], customer: Caller) -> None:
        """Test deleting returns no content."""
        client.app.state.catalog_service.delete_restaurant = AsyncMock(return_value=None)

        response = client.delete("/restaurants/rest_1", headers=headers)

        assert response.status_code == 204
        client.app.state.catalog_service.delete_restaurant.assert_called_once_with(
            customer, "rest_1"
        )


@pytest.mark.unit
class TestDishEndpoints:
    """Test suite for dish endpoints."""

    def test_list_dishes_default_grouping(
        self, client: TestClient, headers: dict[str, str], dish: Dish
    ) -> None:
        """Test that menus are ordered by category by default."""
        client.app.state.catalog_service.list_dishes = AsyncMock(return_value=[dish])

        response = client.get("/restaurants/rest_1/dishes?is_available=true", headers=headers)

        assert response.status_code == 200
        assert Decimal(str(response.json()[0]["price"])) == Decimal("12.49")
        _, restaurant_id, query = client.app.state.catalog_service.list_dishes.call_args[0]
        assert restaurant_id == "rest_1"
        assert query == RowQuery(filters={"is_available": True}, order_by="category")

    def test_create_dish_negative_price(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test that a negative price never reaches the service."""
        client.app.state.catalog_service.create_dish = AsyncMock()

        response = client.post(
            "/restaurants/rest_1/dishes", headers=headers, json={"name": "Fries", "price": "-1"}
        )

        assert response.status_code == 422
        client.app.state.catalog_service.create_dish.assert_not_called()

    @pytest.mark.parametrize("price", ["1e30", "9.999"])
    def test_create_dish_out_of_range_price(
        self, client: TestClient, headers: dict[str, str], price: str
    ) -> None:
        """Test that prices that can not be totalled in cents are refused."""
        client.app.state.catalog_service.create_dish = AsyncMock()

        response = client.post(
            "/restaurants/rest_1/dishes", headers=headers, json={"name": "Caviar", "price": price}
        )

        assert response.status_code == 422
        client.app.state.catalog_service.create_dish.assert_not_called()


@pytest.mark.unit
class TestOrderEndpoints:
    """Test suite for order endpoints."""

    def test_place_order(
        self,
        client: TestClient,
        headers: dict[str, str],
        order: Order,
        order_item: OrderItem,
    ) -> None:
        """Test placing an order returns the order with its items."""
        client.app.state.order_service.place_order = AsyncMock(
            return_value=PlacedOrder(order=order, items=[order_item])
        )

        response = client.post(
            "/orders",
            headers=headers,
            json={
                "restaurant_id": "rest_1",
                "delivery_address": "22 Elm Road",
                "items": [{"dish_id": "dish_1", "quantity": 2, "price": "0.01"}],
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["order"]["status"] == "pending"
        assert Decimal(str(data["order"]["total_amount"])) == Decimal("24.98")
        assert data["items"][0]["quantity"] == 2

    def test_place_order_without_address(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test that the delivery address is required."""
        client.app.state.order_service.place_order = AsyncMock()

        response = client.post(
            "/orders",
            headers=headers,
            json={
                "restaurant_id": "rest_1",
                "delivery_address": "  ",
                "items": [{"dish_id": "dish_1", "quantity": 1}],
            },
        )

        assert response.status_code == 422
        client.app.state.order_service.place_order.assert_not_called()

    def test_place_order_storage_failure(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test StorageUnavailableError mapping."""
        client.app.state.order_service.place_order = AsyncMock(
            side_effect=StorageUnavailableError("Failed to place order")
        )

        response = client.post(
            "/orders",
            headers=headers,
            json={
                "restaurant_id": "rest_1",
                "delivery_address": "22 Elm Road",
                "items": [{"dish_id": "dish_1", "quantity": 1}],
            },
        )

        assert response.status_code == 503

    def test_change_status(
        self, client: TestClient, headers: dict[str, str], order: Order, customer: Caller
    ) -> None:
        """Test that the requested status reaches the service."""
        cancelled = order.model_copy(update={"status": OrderStatus.CANCELLED})
        client.app.state.order_service.change_status = AsyncMock(return_value=cancelled)

        response = client.post("/orders/order_1/status", headers=headers, json={"status": "cancelled"})

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        client.app.state.order_service.change_status.assert_called_once_with(
            customer, "order_1", OrderStatus.CANCELLED
        )

    def test_illegal_transition_is_409(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test IntegrityConflictError mapping."""
        client.app.state.order_service.change_status = AsyncMock(
            side_effect=IntegrityConflictError("Cannot move order from pending to confirmed")
        )

        response = client.post("/orders/order_1/status", headers=headers, json={"status": "confirmed"})

        assert response.status_code == 409
        assert "pending to confirmed" in response.json()["detail"]

    def test_unknown_status_is_422(self, client: TestClient, headers: dict[str, str]) -> None:
        """Test that status values are validated."""
        response = client.post("/orders/order_1/status", headers=headers, json={"status": "shipped"})
        assert response.status_code == 422

    def test_list_orders_filters_status(
        self, client: TestClient, headers: dict[str, str], order: Order
    ) -> None:
        """Test order list filters."""
        client.app.state.order_service.list_orders = AsyncMock(return_value=[order])

        response = client.get("/orders?status=pending", headers=headers)

        assert response.status_code == 200
        query = client.app.state.order_service.list_orders.call_args[0][1]
        assert query.filters == {"status": OrderStatus.PENDING}
        assert query.order_by == "created_at"
        assert query.ascending is False

    def test_list_order_items(
        self, client: TestClient, headers: dict[str, str], order_item: OrderItem
    ) -> None:
        """Test listing line items of an order."""
        client.app.state.order_service.list_order_items = AsyncMock(return_value=[order_item])

        response = client.get("/orders/order_1/items", headers=headers)

        assert response.status_code == 200
        assert response.json()[0]["dish_id"] == "dish_1"
