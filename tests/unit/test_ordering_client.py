"""Unit tests for OrderingClient."""

import json
import os
from collections.abc import Callable
from decimal import Decimal
from unittest.mock import patch

import httpx
import pytest

from restaurant_ordering_service.client.ordering_client import (
    GENERIC_ERROR_MESSAGE,
    OrderingClient,
    OrderingClientError,
)
from restaurant_ordering_service.models.catalog_models import Dish, DishUpdate, Restaurant
from restaurant_ordering_service.models.order_models import (
    Order,
    OrderCreate,
    OrderItem,
    OrderLineRequest,
    OrderStatus,
)

Handler = Callable[[httpx.Request], httpx.Response]


def make_client(handler: Handler) -> OrderingClient:
    """Create a client whose requests are answered by handler."""
    return OrderingClient(
        base_url="https://api.test.com/",
        api_key="test-api-key",
        session_token="session-token",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.unit
class TestOrderingClient:
    """Test suite for OrderingClient."""

    def test_client_initialization(self) -> None:
        """Test that the trailing slash is stripped."""
        client = OrderingClient(base_url="https://api.test.com/", api_key="k", session_token="t")
        assert client.base_url == "https://api.test.com"
        assert client.timeout == 10.0

    def test_from_env(self) -> None:
        """Test building the client from environment variables."""
        env = {"ORDERING_API_URL": "https://api.test.com", "ORDERING_API_KEY": "anon"}
        with patch.dict(os.environ, env, clear=True):
            client = OrderingClient.from_env("token")

        assert client.api_key == "anon"
        assert client.session_token == "token"

    def test_from_env_missing(self) -> None:
        """Test that missing configuration raises ValueError."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="ORDERING_API_URL"):
                OrderingClient.from_env("token")

    @pytest.mark.asyncio
    async def test_sends_credentials(self, restaurant: Restaurant) -> None:
        """Test that every request carries the API key and bearer token."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=restaurant.model_dump(mode="json"))

        result = await make_client(handler).get_restaurant("rest_1")

        assert result.id == restaurant.id
        assert result.seller_id == "seller_1"
        assert seen[0].url == "https://api.test.com/restaurants/rest_1"
        assert seen[0].headers["X-API-Key"] == "test-api-key"
        assert seen[0].headers["Authorization"] == "Bearer session-token"

    @pytest.mark.asyncio
    async def test_list_restaurants_encodes_params(self, restaurant: Restaurant) -> None:
        """Test query parameter encoding."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[restaurant.model_dump(mode="json")])

        restaurants = await make_client(handler).list_restaurants(
            is_active=True, order_by="name", seller_id=None, limit=5
        )

        assert [r.id for r in restaurants] == ["rest_1"]
        assert dict(seen[0].url.params) == {"is_active": "true", "order_by": "name", "limit": "5"}

    @pytest.mark.asyncio
    async def test_list_orders_encodes_status_enum(self) -> None:
        """Test that enum filters are sent by value."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        assert await make_client(handler).list_orders(status=OrderStatus.READY) == []
        assert seen[0].url.params["status"] == "ready"

    @pytest.mark.asyncio
    async def test_update_dish_sends_only_changes(self, dish: Dish) -> None:
        """Test that partial updates omit unset fields."""
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            updated = dish.model_copy(update={"is_available": False})
            return httpx.Response(200, json=updated.model_dump(mode="json"))

        result = await make_client(handler).update_dish("dish_1", DishUpdate(is_available=False))

        assert bodies == [{"is_available": False}]
        assert result.is_available is False
        assert result.price == Decimal("12.49")

    @pytest.mark.asyncio
    async def test_place_order(self, order: Order, order_item: OrderItem) -> None:
        """Test placing an order returns the order and its items."""
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(
                201,
                json={
                    "order": order.model_dump(mode="json"),
                    "items": [order_item.model_dump(mode="json")],
                },
            )

        placed = await make_client(handler).place_order(
            OrderCreate(
                restaurant_id="rest_1",
                delivery_address="22 Elm Road",
                items=[OrderLineRequest(dish_id="dish_1", quantity=2)],
            )
        )

        assert placed.order.total_amount == Decimal("24.98")
        assert placed.items[0].quantity == 2
        assert bodies[0]["items"] == [{"dish_id": "dish_1", "quantity": 2}]

    @pytest.mark.asyncio
    async def test_change_order_status(self, order: Order) -> None:
        """Test the status change request body."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            confirmed = order.model_copy(update={"status": OrderStatus.CONFIRMED})
            return httpx.Response(200, json=confirmed.model_dump(mode="json"))

        result = await make_client(handler).change_order_status("order_1", OrderStatus.CONFIRMED)

        assert result.status == OrderStatus.CONFIRMED
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/orders/order_1/status"
        assert json.loads(seen[0].content) == {"status": "confirmed"}

    @pytest.mark.asyncio
    async def test_delete_returns_none(self) -> None:
        """Test that 204 responses decode to None."""
        result = await make_client(lambda request: httpx.Response(204)).delete_dish("dish_1")
        assert result is None

    @pytest.mark.asyncio
    async def test_conflict_detail_shown_to_user(self) -> None:
        """Test that conflict details are surfaced."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"detail": "Dish dish_2 is not available"})

        with pytest.raises(OrderingClientError) as exc_info:
            await make_client(handler).get_order("order_1")

        assert exc_info.value.status_code == 409
        assert exc_info.value.user_message == "Dish dish_2 is not available"

    @pytest.mark.asyncio
    async def test_validation_errors_joined(self) -> None:
        """Test that FastAPI validation error lists are flattened."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                422,
                json={"detail": [{"msg": "Field required"}, {"msg": "Input should be greater than 0"}]},
            )

        with pytest.raises(OrderingClientError) as exc_info:
            await make_client(handler).list_orders()

        assert exc_info.value.detail == "Field required; Input should be greater than 0"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403, 404, 503])
    async def test_other_errors_are_generic(self, status_code: int) -> None:
        """Test that authorization and missing rows read the same to the user."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json={"detail": "No matching orders row"})

        with pytest.raises(OrderingClientError) as exc_info:
            await make_client(handler).get_order("order_1")

        assert exc_info.value.status_code == status_code
        assert exc_info.value.user_message == GENERIC_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_non_json_error_body(self) -> None:
        """Test errors without a JSON body."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(OrderingClientError) as exc_info:
            await make_client(handler).get_order("order_1")

        assert exc_info.value.detail is None
        assert "502" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_transport_failure(self) -> None:
        """Test that connection errors raise OrderingClientError without status."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with pytest.raises(OrderingClientError) as exc_info:
            await make_client(handler).get_profile()

        assert exc_info.value.status_code is None
        assert exc_info.value.user_message == GENERIC_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_non_json_success_body(self) -> None:
        """Test that an unreadable 2xx body raises OrderingClientError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        with pytest.raises(OrderingClientError) as exc_info:
            await make_client(handler).get_order("order_1")

        assert exc_info.value.status_code == 200
        assert exc_info.value.user_message == GENERIC_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_invalid_placed_order_body(self) -> None:
        """Test that a 2xx body of the wrong shape raises OrderingClientError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json={"order": {"id": "order_1"}})

        with pytest.raises(OrderingClientError) as exc_info:
            await make_client(handler).place_order(
                OrderCreate(
                    restaurant_id="rest_1",
                    delivery_address="22 Elm Road",
                    items=[OrderLineRequest(dish_id="dish_1", quantity=1)],
                )
            )

        assert exc_info.value.user_message == GENERIC_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_list_body_must_be_a_list(self) -> None:
        """Test that a list endpoint answering with an object raises OrderingClientError."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"detail": "unexpected"})

        with pytest.raises(OrderingClientError):
            await make_client(handler).list_orders()
