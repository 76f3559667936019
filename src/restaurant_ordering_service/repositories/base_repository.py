"""Shared plumbing for DynamoDB repositories."""

import logging
from typing import Any

from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource, Table

logger = logging.getLogger(__name__)


class ConditionalWriteError(Exception):
    """A conditional write was refused because the stored row did not match.

    Attributes:
        failed_actions: Positions of the transaction actions whose condition
            failed, or [0] for a single-item write
    """

    def __init__(self, failed_actions: list[int]) -> None:
        super().__init__(f"Condition check failed for actions {failed_actions}")
        self.failed_actions = failed_actions


def condition_failures(error: ClientError) -> list[int] | None:
    """Return the positions of failed conditions, or None for any other error."""
    code = error.response.get("Error", {}).get("Code")
    if code == "ConditionalCheckFailedException":
        return [0]
    if code == "TransactionCanceledException":
        reasons = error.response.get("CancellationReasons", [])
        failed = [i for i, r in enumerate(reasons) if r.get("Code") == "ConditionalCheckFailed"]
        return failed or None
    return None


class DynamoDBRepository:
    """Base class holding the table handle and pagination helpers.

    Repositories never raise on store errors. Following the convention used
    across this service, reads return None or an empty list and writes return
    False; services decide what a failure means. Conditional writes are the
    exception: a failed condition raises ConditionalWriteError so services
    can tell a lost race from an unavailable store.
    """

    def __init__(self, dynamodb_resource: DynamoDBServiceResource, table_name: str) -> None:
        """Initialize repository.

        Args:
            dynamodb_resource: Boto3 DynamoDB resource
            table_name: Name of the DynamoDB table
        """
        self.dynamodb = dynamodb_resource
        self.table_name = table_name
        self.table: Table = dynamodb_resource.Table(table_name)
        self.serializer = TypeSerializer()

    def _query_index(self, index_name: str, key_name: str, key_value: str) -> list[dict[str, Any]]:
        """Query a global secondary index for every item with the given key.

        Follows LastEvaluatedKey until the result set is exhausted.
        """
        kwargs: dict[str, Any] = {
            "IndexName": index_name,
            "KeyConditionExpression": "#k = :v",
            "ExpressionAttributeNames": {"#k": key_name},
            "ExpressionAttributeValues": {":v": key_value},
        }
        items: list[dict[str, Any]] = []
        while True:
            response = self.table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _scan_where(self, attribute: str, value: Any) -> list[dict[str, Any]]:
        """Scan the table for items whose attribute equals value."""
        kwargs: dict[str, Any] = {
            "FilterExpression": "#a = :v",
            "ExpressionAttributeNames": {"#a": attribute},
            "ExpressionAttributeValues": {":v": value},
        }
        items: list[dict[str, Any]] = []
        while True:
            response = self.table.scan(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def _transact(self, actions: list[dict[str, Any]], description: str) -> bool:
        """Run a TransactWriteItems call.

        Returns:
            bool: True if every action was applied, False on store errors

        Raises:
            ConditionalWriteError: If any action's condition failed
        """
        try:
            self.dynamodb.meta.client.transact_write_items(TransactItems=actions)
            return True

        except ClientError as e:
            failed = condition_failures(e)
            if failed is not None:
                raise ConditionalWriteError(failed) from e
            logger.error(f"Failed to {description}: {e}")
            return False

    def _serialize(self, item: dict[str, Any]) -> dict[str, Any]:
        return {key: self.serializer.serialize(value) for key, value in item.items()}

    def _put_new(self, table_name: str, item: dict[str, Any]) -> dict[str, Any]:
        """Build a transactional Put that refuses to overwrite an existing row."""
        return {
            "Put": {
                "TableName": table_name,
                "Item": self._serialize(item),
                "ConditionExpression": "attribute_not_exists(id)",
            }
        }
