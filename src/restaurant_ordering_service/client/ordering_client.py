"""Client for the Restaurant Ordering API."""

import logging
import os
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from restaurant_ordering_service.models.catalog_models import (
    Dish,
    DishCreate,
    DishUpdate,
    Profile,
    ProfileCreate,
    ProfileUpdate,
    Restaurant,
    RestaurantCreate,
    RestaurantUpdate,
)
from restaurant_ordering_service.models.order_models import (
    Order,
    OrderCreate,
    OrderItem,
    OrderStatus,
    OrderUpdate,
    PlacedOrder,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class OrderingClientError(Exception):
    """A request to the ordering service failed.

    Attributes:
        status_code: HTTP status, None when the service could not be reached
            or answered with an unreadable body
        detail: Detail returned by the service, if any
    """

    def __init__(self, status_code: int | None, detail: str | None = None) -> None:
        super().__init__(detail or f"Request failed with status {status_code}")
        self.status_code = status_code
        self.detail = detail

    @property
    def user_message(self) -> str:
        """Message safe to show to the user.

        Validation and conflict details are shown as-is; authorization, missing
        rows and transport failures all read the same.
        """
        if self.status_code in (409, 422) and self.detail:
            return self.detail
        return GENERIC_ERROR_MESSAGE


class OrderingClient:
    """Async HTTP client used by the customer and seller front-ends.

    Configured with the service endpoint and the public API key of the
    deployment, plus the session token of the signed-in user.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session_token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL of the ordering API (e.g., "https://api.example.com")
            api_key: Public API key
            session_token: Session token from the identity provider
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session_token = session_token
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_env(cls, session_token: str) -> "OrderingClient":
        """Build a client from ORDERING_API_URL and ORDERING_API_KEY.

        Raises:
            ValueError: If either variable is missing
        """
        base_url = os.getenv("ORDERING_API_URL")
        api_key = os.getenv("ORDERING_API_KEY")
        if not base_url or not api_key:
            raise ValueError("ORDERING_API_URL and ORDERING_API_KEY must be set in environment")
        return cls(base_url=base_url, api_key=api_key, session_token=session_token)

    # Profiles

    async def get_profile(self) -> Profile:
        return _parse(Profile, await self._request("GET", "/profiles/me"))

    async def create_profile(self, request: ProfileCreate) -> Profile:
        return _parse(
            Profile,
            await self._request("POST", "/profiles", json=request.model_dump(mode="json")),
        )

    async def update_profile(self, changes: ProfileUpdate) -> Profile:
        return _parse(
            Profile,
            await self._request("PATCH", "/profiles/me", json=_changes(changes)),
        )

    # Restaurants

    async def list_restaurants(self, **params: Any) -> list[Restaurant]:
        """List visible restaurants.

        Args:
            **params: Query parameters (seller_id, is_active, order_by, ascending, limit)
        """
        data = await self._request("GET", "/restaurants", params=_params(params))
        return _parse_list(Restaurant, data)

    async def get_restaurant(self, restaurant_id: str) -> Restaurant:
        return _parse(Restaurant, await self._request("GET", f"/restaurants/{restaurant_id}"))

    async def create_restaurant(self, request: RestaurantCreate) -> Restaurant:
        return _parse(
            Restaurant,
            await self._request("POST", "/restaurants", json=request.model_dump(mode="json")),
        )

    async def update_restaurant(self, restaurant_id: str, changes: RestaurantUpdate) -> Restaurant:
        return _parse(
            Restaurant,
            await self._request("PATCH", f"/restaurants/{restaurant_id}", json=_changes(changes)),
        )

    async def delete_restaurant(self, restaurant_id: str) -> None:
        await self._request("DELETE", f"/restaurants/{restaurant_id}")

    # Dishes

    async def list_dishes(self, restaurant_id: str, **params: Any) -> list[Dish]:
        """List a restaurant's visible dishes.

        Args:
            restaurant_id: Restaurant whose menu to fetch
            **params: Query parameters (is_available, category, order_by, ascending, limit)
        """
        data = await self._request(
            "GET", f"/restaurants/{restaurant_id}/dishes", params=_params(params)
        )
        return _parse_list(Dish, data)

    async def get_dish(self, dish_id: str) -> Dish:
        return _parse(Dish, await self._request("GET", f"/dishes/{dish_id}"))

    async def create_dish(self, restaurant_id: str, request: DishCreate) -> Dish:
        return _parse(
            Dish,
            await self._request(
                "POST", f"/restaurants/{restaurant_id}/dishes", json=request.model_dump(mode="json")
            ),
        )

    async def update_dish(self, dish_id: str, changes: DishUpdate) -> Dish:
        return _parse(
            Dish,
            await self._request("PATCH", f"/dishes/{dish_id}", json=_changes(changes)),
        )

    async def delete_dish(self, dish_id: str) -> None:
        await self._request("DELETE", f"/dishes/{dish_id}")

    # Orders

    async def list_orders(self, **params: Any) -> list[Order]:
        """List visible orders.

        Args:
            **params: Query parameters (status, restaurant_id, customer_id, order_by,
                ascending, limit)
        """
        data = await self._request("GET", "/orders", params=_params(params))
        return _parse_list(Order, data)

    async def get_order(self, order_id: str) -> Order:
        return _parse(Order, await self._request("GET", f"/orders/{order_id}"))

    async def place_order(self, request: OrderCreate) -> PlacedOrder:
        """Place an order with all its line items in one request."""
        return _parse(
            PlacedOrder,
            await self._request("POST", "/orders", json=request.model_dump(mode="json")),
        )

    async def update_order(self, order_id: str, changes: OrderUpdate) -> Order:
        return _parse(
            Order,
            await self._request("PATCH", f"/orders/{order_id}", json=_changes(changes)),
        )

    async def change_order_status(self, order_id: str, status: OrderStatus) -> Order:
        return _parse(
            Order,
            await self._request(
                "POST", f"/orders/{order_id}/status", json={"status": status.value}
            ),
        )

    async def list_order_items(self, order_id: str) -> list[OrderItem]:
        data = await self._request("GET", f"/orders/{order_id}/items")
        return _parse_list(OrderItem, data)

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            OrderingClientError: On transport failure, an error status or an
                undecodable body
        """
        headers = {
            "X-API-Key": self.api_key,
            "Authorization": f"Bearer {self.session_token}",
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.request(
                    method, path, headers=headers, json=json, params=params
                )
        except httpx.RequestError as e:
            logger.error(f"Failed to reach ordering service for {method} {path}: {e}")
            raise OrderingClientError(None) from e

        if response.is_error:
            detail = _error_detail(response)
            logger.warning(f"{method} {path} failed with {response.status_code}: {detail}")
            raise OrderingClientError(response.status_code, detail)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{method} {path} returned a body that is not JSON: {e}")
            raise OrderingClientError(response.status_code) from e


def _parse(model: type[ModelT], data: Any) -> ModelT:
    """Validate a response body, reporting a malformed one as a client error."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error(f"Ordering service returned an invalid {model.__name__}: {e}")
        raise OrderingClientError(None) from e


def _parse_list(model: type[ModelT], data: Any) -> list[ModelT]:
    if not isinstance(data, list):
        logger.error(f"Ordering service returned {type(data).__name__} instead of a list")
        raise OrderingClientError(None)
    return [_parse(model, row) for row in data]


def _changes(model: Any) -> dict[str, Any]:
    changes: dict[str, Any] = model.model_dump(mode="json", exclude_unset=True)
    return changes


def _params(params: dict[str, Any]) -> dict[str, Any]:
    """Encode query parameters the way FastAPI parses them."""
    encoded: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        elif hasattr(value, "value"):
            encoded[key] = value.value
        else:
            encoded[key] = value
    return encoded


def _error_detail(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list):
        # FastAPI validation errors
        return "; ".join(str(error.get("msg", error)) for error in detail)
    return str(detail) if detail is not None else None
