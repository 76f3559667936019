"""Shared dependency factory for the Lambda handler.

Dependencies are created once per Lambda container and reused across
invocations to keep warm starts cheap.
"""

import logging
import os
from typing import Any

import boto3
from fastapi import FastAPI

from restaurant_ordering_service.auth.session_tokens import SessionTokenVerifier
from restaurant_ordering_service.handlers.api_handler import create_app
from restaurant_ordering_service.observability import configure_logging, setup_observability
from restaurant_ordering_service.repositories.catalog_repositories import (
    DishRepository,
    ProfileRepository,
    RestaurantRepository,
)
from restaurant_ordering_service.repositories.order_repositories import (
    OrderItemRepository,
    OrderRepository,
)
from restaurant_ordering_service.services.catalog_service import CatalogService
from restaurant_ordering_service.services.order_service import OrderService
from restaurant_ordering_service.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

# Module-level caches for Lambda container reuse
_dynamodb_resource: Any | None = None
_profile_service: ProfileService | None = None
_catalog_service: CatalogService | None = None
_order_service: OrderService | None = None
_fastapi_app: FastAPI | None = None


def _table_name(logical_name: str, default: str) -> str:
    return os.getenv(f"DYNAMODB_{logical_name.upper()}_TABLE", default)


def get_dynamodb_resource() -> Any:
    """Create or retrieve cached DynamoDB resource.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    global _dynamodb_resource

    if _dynamodb_resource is not None:
        return _dynamodb_resource

    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        _dynamodb_resource = boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )
    else:
        logger.info(f"Using AWS DynamoDB in region {region}")
        _dynamodb_resource = boto3.resource("dynamodb", region_name=region)

    return _dynamodb_resource


def get_profile_service() -> ProfileService:
    """Create or retrieve cached profile service."""
    global _profile_service

    if _profile_service is not None:
        return _profile_service

    dynamodb_resource = get_dynamodb_resource()
    _profile_service = ProfileService(
        profile_repository=ProfileRepository(
            dynamodb_resource, _table_name("profiles", "ordering-profiles")
        ),
        restaurant_repository=RestaurantRepository(
            dynamodb_resource, _table_name("restaurants", "ordering-restaurants")
        ),
    )

    logger.info("Profile service initialized")
    return _profile_service


def get_catalog_service() -> CatalogService:
    """Create or retrieve cached catalog service."""
    global _catalog_service

    if _catalog_service is not None:
        return _catalog_service

    dynamodb_resource = get_dynamodb_resource()
    _catalog_service = CatalogService(
        restaurant_repository=RestaurantRepository(
            dynamodb_resource, _table_name("restaurants", "ordering-restaurants")
        ),
        dish_repository=DishRepository(dynamodb_resource, _table_name("dishes", "ordering-dishes")),
    )

    logger.info("Catalog service initialized")
    return _catalog_service


def get_order_service() -> OrderService:
    """Create or retrieve cached order service."""
    global _order_service

    if _order_service is not None:
        return _order_service

    dynamodb_resource = get_dynamodb_resource()
    order_items_table = _table_name("order_items", "ordering-order-items")
    _order_service = OrderService(
        order_repository=OrderRepository(
            dynamodb_resource, _table_name("orders", "ordering-orders"), order_items_table
        ),
        order_item_repository=OrderItemRepository(dynamodb_resource, order_items_table),
        restaurant_repository=RestaurantRepository(
            dynamodb_resource, _table_name("restaurants", "ordering-restaurants")
        ),
        dish_repository=DishRepository(dynamodb_resource, _table_name("dishes", "ordering-dishes")),
    )

    logger.info("Order service initialized")
    return _order_service


def get_fastapi_app() -> FastAPI:
    """Create or retrieve cached FastAPI application.

    Raises:
        ValueError: If SESSION_TOKEN_SECRET is not set
    """
    global _fastapi_app

    if _fastapi_app is not None:
        return _fastapi_app

    secret = os.getenv("SESSION_TOKEN_SECRET")
    if not secret:
        raise ValueError("SESSION_TOKEN_SECRET must be set in environment")

    api_keys_str = os.getenv("PUBLIC_API_KEYS", "")
    api_keys = [key.strip() for key in api_keys_str.split(",") if key.strip()]

    if not api_keys:
        logger.warning("No PUBLIC_API_KEYS configured - using development key")
        api_keys = ["dummy-key-for-development"]

    _fastapi_app = create_app(
        profile_service=get_profile_service(),
        catalog_service=get_catalog_service(),
        order_service=get_order_service(),
        api_keys=api_keys,
        token_verifier=SessionTokenVerifier(
            secret=secret, audience=os.getenv("SESSION_TOKEN_AUDIENCE", "authenticated")
        ),
    )

    logger.info("FastAPI application initialized")
    return _fastapi_app


def initialize_lambda_environment() -> None:
    """Initialize logging and observability. Call once during cold start."""
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))
    setup_observability()

    logger.info("Lambda environment initialized")
