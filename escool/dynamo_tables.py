"""
DynamoDB table definitions and idempotent provisioning.
"""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import ClientError

from escool.db import ENTITY_KINDS, FEATURED, EntityKind
from escool.errors import ProvisioningRace

logger = logging.getLogger(__name__)

COUNTERS_TABLE = "counters"
# Internal string copy of the ``featured`` flag; GSI hash keys cannot be booleans.
FEATURED_KEY = "featuredKey"


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def index_attribute(field_name: str) -> tuple[str, str]:
    """Return the (attribute name, attribute type) backing an index on a field."""
    if field_name == FEATURED:
        return FEATURED_KEY, "S"
    if field_name.endswith("_id") or field_name == "created_by":
        return camel(field_name), "N"
    return camel(field_name), "S"


def table_definition(prefix: str, kind: EntityKind) -> dict[str, Any]:
    attributes = {"id": "N"}
    indexes = []
    for field_name, index_name in kind.indexes.items():
        attribute, attribute_type = index_attribute(field_name)
        attributes[attribute] = attribute_type
        indexes.append(
            {
                "IndexName": index_name,
                "KeySchema": [{"AttributeName": attribute, "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        )
    definition: dict[str, Any] = {
        "TableName": f"{prefix}{kind.name}",
        "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": name, "AttributeType": attribute_type}
            for name, attribute_type in attributes.items()
        ],
        "BillingMode": "PAY_PER_REQUEST",
    }
    if indexes:
        definition["GlobalSecondaryIndexes"] = indexes
    return definition


def counters_definition(prefix: str) -> dict[str, Any]:
    return {
        "TableName": f"{prefix}{COUNTERS_TABLE}",
        "KeySchema": [{"AttributeName": "name", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "name", "AttributeType": "S"}],
        "BillingMode": "PAY_PER_REQUEST",
    }


def all_table_definitions(prefix: str) -> list[dict[str, Any]]:
    definitions = [table_definition(prefix, kind) for kind in ENTITY_KINDS]
    definitions.append(counters_definition(prefix))
    return definitions


def list_table_names(client) -> set[str]:
    names: set[str] = set()
    for page in client.get_paginator("list_tables").paginate():
        names.update(page.get("TableNames", []))
    return names


def _create_table(client, definition: dict[str, Any]) -> None:
    try:
        client.create_table(**definition)
    except ClientError as exc:
        if exc.response.get("Error", {}).get("Code") == "ResourceInUseException":
            raise ProvisioningRace(definition["TableName"]) from exc
        raise


def create_tables(client, prefix: str, wait: bool = True) -> list[str]:
    """
    Create any missing tables and return the names that were created.

    Tables that already exist are skipped. A table created concurrently by
    another process is logged and treated as present.
    """
    existing = list_table_names(client)
    logger.info("Existing DynamoDB tables: %s", sorted(existing))

    created: list[str] = []
    raced: list[str] = []
    for definition in all_table_definitions(prefix):
        name = definition["TableName"]
        if name in existing:
            logger.info("Table %s already exists, skipping creation", name)
            continue
        logger.info("Creating table %s", name)
        try:
            _create_table(client, definition)
        except ProvisioningRace as race:
            logger.info("%s; treating as created", race)
            raced.append(name)
            continue
        created.append(name)

    if wait:
        waiter = client.get_waiter("table_exists")
        # Raced tables may still be CREATING in the other process.
        for name in created + raced:
            waiter.wait(TableName=name)
    logger.info("All DynamoDB tables created or verified")
    return created
