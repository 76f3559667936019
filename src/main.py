"""Main application entry point for the restaurant ordering service.

This module wires repositories, services and the FastAPI application from
environment configuration for running the service locally or in production.
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
from restaurant_ordering_service.repositories.table_definitions import create_tables
from restaurant_ordering_service.services.catalog_service import CatalogService
from restaurant_ordering_service.services.order_service import OrderService
from restaurant_ordering_service.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

DEFAULT_TABLE_NAMES = {
    "profiles": "ordering-profiles",
    "restaurants": "ordering-restaurants",
    "dishes": "ordering-dishes",
    "orders": "ordering-orders",
    "order_items": "ordering-order-items",
}


def get_dynamodb_resource() -> Any:
    """Create DynamoDB resource with appropriate configuration.

    Returns:
        Boto3 DynamoDB resource configured for environment
    """
    endpoint_url = os.getenv("DYNAMODB_ENDPOINT")
    region = os.getenv("AWS_REGION", "us-east-1")

    if endpoint_url:
        logger.info(f"Using local DynamoDB at {endpoint_url}")
        return boto3.resource(
            "dynamodb",
            endpoint_url=endpoint_url,
            region_name=region,
            aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )

    logger.info(f"Using AWS DynamoDB in region {region}")
    # Default credential chain (IAM role, env vars, etc.)
    return boto3.resource("dynamodb", region_name=region)


def get_table_names() -> dict[str, str]:
    """Physical table names keyed by logical table name.

    Each table can be overridden with DYNAMODB_<LOGICAL_NAME>_TABLE.
    """
    return {
        logical: os.getenv(f"DYNAMODB_{logical.upper()}_TABLE", default)
        for logical, default in DEFAULT_TABLE_NAMES.items()
    }


def get_api_keys() -> list[str]:
    """Public API keys from the comma separated PUBLIC_API_KEYS variable."""
    api_keys_str = os.getenv("PUBLIC_API_KEYS", "")
    api_keys = [key.strip() for key in api_keys_str.split(",") if key.strip()]

    if not api_keys:
        logger.warning("No PUBLIC_API_KEYS configured - using development key")
        api_keys = ["dummy-key-for-development"]

    return api_keys


def get_token_verifier() -> SessionTokenVerifier:
    """Session token verifier from SESSION_TOKEN_SECRET and SESSION_TOKEN_AUDIENCE.

    Raises:
        ValueError: If SESSION_TOKEN_SECRET is not set
    """
    secret = os.getenv("SESSION_TOKEN_SECRET")
    if not secret:
        raise ValueError("SESSION_TOKEN_SECRET must be set in environment")

    audience = os.getenv("SESSION_TOKEN_AUDIENCE", "authenticated")
    return SessionTokenVerifier(secret=secret, audience=audience)


def create_application() -> FastAPI:
    """Create and configure the FastAPI application with all dependencies.

    This factory function:
    1. Configures logging
    2. Creates the DynamoDB resource (and local tables when asked to)
    3. Initializes repositories and services
    4. Creates the FastAPI app
    5. Sets up observability

    Returns:
        Configured FastAPI application instance
    """
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("Initializing restaurant ordering service...")

    dynamodb_resource = get_dynamodb_resource()
    table_names = get_table_names()

    if os.getenv("CREATE_TABLES", "false").lower() == "true":
        created = create_tables(dynamodb_resource, table_names)
        logger.info(f"Created tables: {', '.join(created) or 'none'}")

    profile_repository = ProfileRepository(dynamodb_resource, table_names["profiles"])
    restaurant_repository = RestaurantRepository(dynamodb_resource, table_names["restaurants"])
    dish_repository = DishRepository(dynamodb_resource, table_names["dishes"])
    order_repository = OrderRepository(
        dynamodb_resource, table_names["orders"], table_names["order_items"]
    )
    order_item_repository = OrderItemRepository(dynamodb_resource, table_names["order_items"])

    logger.info(f"Repositories configured - tables: {', '.join(table_names.values())}")

    app = create_app(
        profile_service=ProfileService(profile_repository, restaurant_repository),
        catalog_service=CatalogService(restaurant_repository, dish_repository),
        order_service=OrderService(
            order_repository, order_item_repository, restaurant_repository, dish_repository
        ),
        api_keys=get_api_keys(),
        token_verifier=get_token_verifier(),
    )

    setup_observability(app)

    logger.info("Restaurant ordering service initialized successfully")
    return app


# Only build the real app outside tests so test collection stays side-effect free
if os.getenv("ENVIRONMENT") != "test":  # noqa: SIM108
    app = create_application()
else:
    app = FastAPI()


if __name__ == "__main__":
    """Run the application with uvicorn when executed directly."""
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    host = os.getenv("HOST", "0.0.0.0")

    logger.info(f"Starting development server on {host}:{port}")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
