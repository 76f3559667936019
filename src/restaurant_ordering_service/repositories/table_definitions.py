"""DynamoDB table layouts for the five ordering tables.

Every table is keyed by a string `id`. Secondary indexes back the
foreign-key lookups the repositories and row policies need.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource

logger = logging.getLogger(__name__)


@dataclass
class TableDefinition:
    """Key schema of one table.

    Attributes:
        logical_name: Name used in configuration (profiles, restaurants, ...)
        indexes: Attribute names that get a global secondary index
    """

    logical_name: str
    indexes: list[str] = field(default_factory=list)

    def create_kwargs(self, table_name: str) -> dict[str, Any]:
        """Arguments for DynamoDB CreateTable."""
        attributes = ["id", *self.indexes]
        kwargs: dict[str, Any] = {
            "TableName": table_name,
            "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": name, "AttributeType": "S"} for name in attributes
            ],
            "BillingMode": "PAY_PER_REQUEST",
        }
        if self.indexes:
            kwargs["GlobalSecondaryIndexes"] = [
                {
                    "IndexName": f"{name}-index",
                    "KeySchema": [{"AttributeName": name, "KeyType": "HASH"}],
                    "Projection": {"ProjectionType": "ALL"},
                }
                for name in self.indexes
            ]
        return kwargs


TABLE_DEFINITIONS: list[TableDefinition] = [
    TableDefinition("profiles", indexes=["email"]),
    TableDefinition("restaurants", indexes=["seller_id"]),
    TableDefinition("dishes", indexes=["restaurant_id"]),
    TableDefinition("orders", indexes=["customer_id", "restaurant_id"]),
    TableDefinition("order_items", indexes=["order_id"]),
]


def create_tables(
    dynamodb_resource: DynamoDBServiceResource, table_names: dict[str, str]
) -> list[str]:
    """Create any missing tables. Intended for local DynamoDB.

    Args:
        dynamodb_resource: Boto3 DynamoDB resource
        table_names: Logical name to physical table name

    Returns:
        list: Physical names of the tables that were created
    """
    created: list[str] = []
    for definition in TABLE_DEFINITIONS:
        table_name = table_names.get(definition.logical_name, definition.logical_name)
        try:
            table = dynamodb_resource.create_table(**definition.create_kwargs(table_name))
            table.wait_until_exists()
            created.append(table_name)
            logger.info(f"Created table {table_name}")
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ResourceInUseException":
                logger.debug(f"Table {table_name} already exists")
                continue
            raise

    return created
