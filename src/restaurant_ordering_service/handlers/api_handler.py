"""FastAPI application exposing the ordering API."""

import logging
from typing import Literal

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from restaurant_ordering_service.auth.api_dependencies import (
    get_api_key_from_header,
    get_identity_from_header,
)
from restaurant_ordering_service.auth.api_key_validator import APIKeyValidator
from restaurant_ordering_service.auth.row_policies import Caller
from restaurant_ordering_service.auth.session_tokens import SessionIdentity, SessionTokenVerifier
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
    OrderStatusUpdate,
    OrderUpdate,
    PlacedOrder,
)
from restaurant_ordering_service.models.query_models import RowQuery
from restaurant_ordering_service.services.catalog_service import CatalogService
from restaurant_ordering_service.services.errors import (
    IntegrityConflictError,
    OrderingServiceError,
    RowNotFoundError,
    StorageUnavailableError,
    WriteRejectedError,
)
from restaurant_ordering_service.services.order_service import OrderService
from restaurant_ordering_service.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[OrderingServiceError], int] = {
    RowNotFoundError: 404,
    WriteRejectedError: 403,
    IntegrityConflictError: 409,
    StorageUnavailableError: 503,
}


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str


def _filters(**columns: object) -> dict[str, object]:
    """Drop query parameters the client did not send."""
    return {column: value for column, value in columns.items() if value is not None}


def create_app(
    profile_service: ProfileService,
    catalog_service: CatalogService,
    order_service: OrderService,
    api_keys: list[str],
    token_verifier: SessionTokenVerifier,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        profile_service: Service for the profile registry
        catalog_service: Service for restaurants and dishes
        order_service: Service for orders and line items
        api_keys: Accepted public API keys
        token_verifier: Verifier for identity provider session tokens

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Restaurant Ordering API",
        description="Restaurants, menus and orders with row-level authorization",
        version="1.0.0",
    )

    app.state.profile_service = profile_service
    app.state.catalog_service = catalog_service
    app.state.order_service = order_service
    app.state.api_key_validator = APIKeyValidator(api_keys=api_keys)
    app.state.token_verifier = token_verifier

    @app.exception_handler(OrderingServiceError)
    async def handle_service_error(_request: Request, exc: OrderingServiceError) -> JSONResponse:
        status_code = ERROR_STATUS_CODES.get(type(exc), 500)
        if status_code >= 500:
            logger.error(f"Request failed: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def handle_validation_error(_request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={
                "detail": jsonable_encoder(exc.errors(include_url=False, include_context=False))
            },
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy")

    def validate_api_key(x_api_key: str | None = Header(None)) -> str:
        """Dependency to validate the public API key."""
        return get_api_key_from_header(x_api_key=x_api_key, validator=app.state.api_key_validator)

    def get_identity(
        authorization: str | None = Header(None),
        _api_key: str = Depends(validate_api_key),
    ) -> SessionIdentity:
        """Dependency to verify the session token."""
        return get_identity_from_header(
            authorization=authorization, verifier=app.state.token_verifier
        )

    def get_caller(identity: SessionIdentity = Depends(get_identity)) -> Caller:
        """Dependency resolving the caller and its profile role."""
        caller: Caller = app.state.profile_service.resolve_caller(identity)
        return caller

    # Profiles

    @app.get("/profiles/me", response_model=Profile, tags=["Profiles"])
    async def get_own_profile(caller: Caller = Depends(get_caller)) -> Profile:
        """Get the caller's profile."""
        profile: Profile = await app.state.profile_service.get_profile(caller)
        return profile

    @app.post("/profiles", response_model=Profile, status_code=201, tags=["Profiles"])
    async def create_profile(
        request: ProfileCreate, caller: Caller = Depends(get_caller)
    ) -> Profile:
        """Create the caller's profile after first sign-in."""
        profile: Profile = await app.state.profile_service.create_profile(caller, request)
        return profile

    @app.patch("/profiles/me", response_model=Profile, tags=["Profiles"])
    async def update_own_profile(
        changes: ProfileUpdate, caller: Caller = Depends(get_caller)
    ) -> Profile:
        """Update the caller's name or email."""
        profile: Profile = await app.state.profile_service.update_profile(caller, changes)
        return profile

    # Restaurants

    @app.get("/restaurants", response_model=list[Restaurant], tags=["Restaurants"])
    async def list_restaurants(
        seller_id: str | None = None,
        is_active: bool | None = None,
        order_by: Literal["created_at", "updated_at", "name"] = "created_at",
        ascending: bool = False,
        limit: int | None = None,
        caller: Caller = Depends(get_caller),
    ) -> list[Restaurant]:
        """List visible restaurants, newest first by default."""
        query = RowQuery(
            filters=_filters(seller_id=seller_id, is_active=is_active),
            order_by=order_by,
            ascending=ascending,
            limit=limit,
        )
        restaurants: list[Restaurant] = await app.state.catalog_service.list_restaurants(
            caller, query
        )
        return restaurants

    @app.post("/restaurants", response_model=Restaurant, status_code=201, tags=["Restaurants"])
    async def create_restaurant(
        request: RestaurantCreate, caller: Caller = Depends(get_caller)
    ) -> Restaurant:
        """Create a restaurant owned by the calling seller."""
        restaurant: Restaurant = await app.state.catalog_service.create_restaurant(caller, request)
        return restaurant

    @app.get("/restaurants/{restaurant_id}", response_model=Restaurant, tags=["Restaurants"])
    async def get_restaurant(restaurant_id: str, caller: Caller = Depends(get_caller)) -> Restaurant:
        """Get one restaurant."""
        restaurant: Restaurant = await app.state.catalog_service.get_restaurant(
            caller, restaurant_id
        )
        return restaurant

    @app.patch("/restaurants/{restaurant_id}", response_model=Restaurant, tags=["Restaurants"])
    async def update_restaurant(
        restaurant_id: str, changes: RestaurantUpdate, caller: Caller = Depends(get_caller)
    ) -> Restaurant:
        """Update a restaurant the caller owns."""
        restaurant: Restaurant = await app.state.catalog_service.update_restaurant(
            caller, restaurant_id, changes
        )
        return restaurant

    @app.delete("/restaurants/{restaurant_id}", status_code=204, tags=["Restaurants"])
    async def delete_restaurant(restaurant_id: str, caller: Caller = Depends(get_caller)) -> Response:
        """Delete a restaurant the caller owns, together with its dishes."""
        await app.state.catalog_service.delete_restaurant(caller, restaurant_id)
        return Response(status_code=204)

    # Dishes

    @app.get("/restaurants/{restaurant_id}/dishes", response_model=list[Dish], tags=["Dishes"])
    async def list_dishes(
        restaurant_id: str,
        is_available: bool | None = None,
        category: str | None = None,
        order_by: Literal["category", "name", "price", "created_at"] = "category",
        ascending: bool = True,
        limit: int | None = None,
        caller: Caller = Depends(get_caller),
    ) -> list[Dish]:
        """List a restaurant's visible dishes, grouped by category by default."""
        query = RowQuery(
            filters=_filters(is_available=is_available, category=category),
            order_by=order_by,
            ascending=ascending,
            limit=limit,
        )
        dishes: list[Dish] = await app.state.catalog_service.list_dishes(
            caller, restaurant_id, query
        )
        return dishes

    @app.post(
        "/restaurants/{restaurant_id}/dishes",
        response_model=Dish,
        status_code=201,
        tags=["Dishes"],
    )
    async def create_dish(
        restaurant_id: str, request: DishCreate, caller: Caller = Depends(get_caller)
    ) -> Dish:
        """Add a dish to a restaurant the caller owns."""
        dish: Dish = await app.state.catalog_service.create_dish(caller, restaurant_id, request)
        return dish

    @app.get("/dishes/{dish_id}", response_model=Dish, tags=["Dishes"])
    async def get_dish(dish_id: str, caller: Caller = Depends(get_caller)) -> Dish:
        """Get one dish."""
        dish: Dish = await app.state.catalog_service.get_dish(caller, dish_id)
        return dish

    @app.patch("/dishes/{dish_id}", response_model=Dish, tags=["Dishes"])
    async def update_dish(
        dish_id: str, changes: DishUpdate, caller: Caller = Depends(get_caller)
    ) -> Dish:
        """Update a dish the caller owns."""
        dish: Dish = await app.state.catalog_service.update_dish(caller, dish_id, changes)
        return dish

    @app.delete("/dishes/{dish_id}", status_code=204, tags=["Dishes"])
    async def delete_dish(dish_id: str, caller: Caller = Depends(get_caller)) -> Response:
        """Delete a dish the caller owns."""
        await app.state.catalog_service.delete_dish(caller, dish_id)
        return Response(status_code=204)

    # Orders

    @app.get("/orders", response_model=list[Order], tags=["Orders"])
    async def list_orders(
        status: OrderStatus | None = None,
        restaurant_id: str | None = None,
        customer_id: str | None = None,
        order_by: Literal["created_at", "updated_at", "total_amount", "status"] = "created_at",
        ascending: bool = False,
        limit: int | None = None,
        caller: Caller = Depends(get_caller),
    ) -> list[Order]:
        """List visible orders, newest first by default."""
        query = RowQuery(
            filters=_filters(status=status, restaurant_id=restaurant_id, customer_id=customer_id),
            order_by=order_by,
            ascending=ascending,
            limit=limit,
        )
        orders: list[Order] = await app.state.order_service.list_orders(caller, query)
        return orders

    @app.post("/orders", response_model=PlacedOrder, status_code=201, tags=["Orders"])
    async def place_order(request: OrderCreate, caller: Caller = Depends(get_caller)) -> PlacedOrder:
        """Place an order and its line items in one transaction."""
        placed: PlacedOrder = await app.state.order_service.place_order(caller, request)
        return placed

    @app.get("/orders/{order_id}", response_model=Order, tags=["Orders"])
    async def get_order(order_id: str, caller: Caller = Depends(get_caller)) -> Order:
        """Get one order."""
        order: Order = await app.state.order_service.get_order(caller, order_id)
        return order

    @app.patch("/orders/{order_id}", response_model=Order, tags=["Orders"])
    async def update_order(
        order_id: str, changes: OrderUpdate, caller: Caller = Depends(get_caller)
    ) -> Order:
        """Edit delivery details of a pending order."""
        order: Order = await app.state.order_service.update_order(caller, order_id, changes)
        return order

    @app.post("/orders/{order_id}/status", response_model=Order, tags=["Orders"])
    async def change_order_status(
        order_id: str, request: OrderStatusUpdate, caller: Caller = Depends(get_caller)
    ) -> Order:
        """Move an order to a new status."""
        order: Order = await app.state.order_service.change_status(
            caller, order_id, request.status
        )
        return order

    @app.get("/orders/{order_id}/items", response_model=list[OrderItem], tags=["Orders"])
    async def list_order_items(order_id: str, caller: Caller = Depends(get_caller)) -> list[OrderItem]:
        """List an order's line items."""
        items: list[OrderItem] = await app.state.order_service.list_order_items(caller, order_id)
        return items

    return app
