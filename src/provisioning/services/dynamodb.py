"""DynamoDB access for the provisioning tables.

Every table is named ``<prefix>-<name>`` and has a single string hash key:

- payments (transaction_id)
- subscriptions (subscription_id)
- users (uid)
- app-credentials (email)

Conditional writes report a failed condition as a return value rather than
an exception; the webhook handlers build their idempotency on that.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Any

import boto3
from botocore.exceptions import ClientError
from pydantic import BaseModel

PAYMENTS_TABLE = "payments"
SUBSCRIPTIONS_TABLE = "subscriptions"
USERS_TABLE = "users"
CREDENTIALS_TABLE = "app-credentials"

DEFAULT_TABLE_PREFIX = "queima-dev"

_CONDITION_FAILED = "ConditionalCheckFailedException"

_store: "DynamoDBService | None" = None


def get_dynamodb_service(table_prefix: str | None = None) -> "DynamoDBService":
    """Return the process-wide store, creating it on first use.

    Args:
        table_prefix: Table prefix; ignored once the store exists
    """
    global _store
    if _store is None:
        _store = DynamoDBService(table_prefix or DEFAULT_TABLE_PREFIX)
    return _store


def reset_dynamodb_service() -> None:
    """Forget the process-wide store so the next call builds a new client."""
    global _store
    _store = None


def _to_dynamodb_value(value: Any) -> Any:
    if isinstance(value, dt.datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, (list, tuple)):
        return [_to_dynamodb_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_dynamodb_value(v) for k, v in value.items() if v is not None}
    return value


def to_item(model: BaseModel) -> dict[str, Any]:
    """Convert a record model into a DynamoDB item.

    Datetimes become ISO-8601 strings, enums their values, floats Decimals.
    None-valued attributes are dropped.
    """
    return _to_dynamodb_value(model.model_dump(mode="python", exclude_none=True))


def build_set_expression(
    fields: dict[str, Any],
) -> tuple[str, dict[str, str], dict[str, Any]]:
    """Build an UpdateExpression that SETs every field.

    All attribute names go through placeholders so reserved words such as
    "status" need no special handling.

    Args:
        fields: Attribute name to new value

    Returns:
        Tuple of (update_expression, expression_attribute_names,
        expression_attribute_values)
    """
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    assignments: list[str] = []
    for i, (name, value) in enumerate(fields.items()):
        names[f"#f{i}"] = name
        values[f":v{i}"] = _to_dynamodb_value(value)
        assignments.append(f"#f{i} = :v{i}")
    return "SET " + ", ".join(assignments), names, values


def _condition_failed(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == _CONDITION_FAILED


class DynamoDBService:
    """Reads and writes provisioning records in prefixed tables."""

    def __init__(self, table_prefix: str, region: str | None = None) -> None:
        """Create the boto3 resource.

        Args:
            table_prefix: Prefix for every table name (e.g. "queima-prod")
            region: AWS region, defaults to the session region
        """
        self.table_prefix = table_prefix
        self._resource = boto3.resource("dynamodb", region_name=region)

    def table(self, name: str) -> Any:
        """Table resource for an unprefixed table name."""
        return self._resource.Table(f"{self.table_prefix}-{name}")

    def get_item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        """Strongly consistent read of one item, or None."""
        item: dict[str, Any] | None = self.table(table).get_item(
            Key=key, ConsistentRead=True
        ).get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition: str | None = None,
        names: dict[str, str] | None = None,
        values: dict[str, Any] | None = None,
    ) -> bool:
        """Write a whole item, optionally guarded by a condition.

        Returns:
            False when the condition rejected the write, True otherwise

        Raises:
            ClientError: For any failure other than the condition
        """
        request: dict[str, Any] = {"Item": item}
        if condition:
            request["ConditionExpression"] = condition
        if names:
            request["ExpressionAttributeNames"] = names
        if values:
            request["ExpressionAttributeValues"] = values

        try:
            self.table(table).put_item(**request)
        except ClientError as e:
            if _condition_failed(e):
                return False
            raise
        return True

    def update_fields(
        self,
        table: str,
        key: dict[str, Any],
        fields: dict[str, Any],
        *,
        must_exist: bool = False,
    ) -> dict[str, Any] | None:
        """SET a group of attributes on an item.

        Without ``must_exist`` the update also creates a missing item.

        Args:
            table: Unprefixed table name
            key: Single-attribute primary key
            fields: Attribute name to new value (converted like to_item)
            must_exist: Skip the write when the item does not exist

        Returns:
            The item after the update, or None if ``must_exist`` and the
            item was absent

        Raises:
            ClientError: For any failure other than the existence check
        """
        expression, names, values = build_set_expression(fields)
        request: dict[str, Any] = {
            "Key": key,
            "UpdateExpression": expression,
            "ExpressionAttributeNames": names,
            "ExpressionAttributeValues": values,
            "ReturnValues": "ALL_NEW",
        }
        if must_exist:
            names["#pk"] = next(iter(key))
            request["ConditionExpression"] = "attribute_exists(#pk)"

        try:
            response = self.table(table).update_item(**request)
        except ClientError as e:
            if _condition_failed(e):
                return None
            raise
        attributes: dict[str, Any] = response.get("Attributes", {})
        return attributes
