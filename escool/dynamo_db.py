"""
DynamoDB storage backend.

Point reads use ``GetItem`` on the ``id`` hash key. Lookups with a known
access pattern (parent id, username, featured flag) query a global secondary
index, and any failure there is retried as a filtered scan. Ad hoc filters
are always full-table scans with an equality filter expression. That is fine
for demonstration-scale data and should move to dedicated indexes if the
tables grow.
"""

from __future__ import annotations

import logging
import re
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, is_dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterator, Mapping, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from escool.db import FEATURED, BaseDbClient, EntityKind
from escool.dynamo_tables import (
    COUNTERS_TABLE,
    FEATURED_KEY,
    camel,
    create_tables,
)
from escool.errors import BackendUnavailable, StorageFailure, ValidationFailure
from escool.models import Record

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def flag_key(value: Any) -> str:
    return "true" if value else "false"


def encode_value(value: Any) -> Any:
    """Convert a Python value into something boto3 can serialise."""
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {key: encode_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(item) for item in value]
    return value


def decode_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: decode_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [decode_value(item) for item in value]
    return value


def to_item(kind: EntityKind, record: Record) -> dict[str, Any]:
    item = {
        camel(name): encode_value(value)
        for name, value in record.as_dict().items()
        # Absent attributes decode to the field default; GSI keys may not be NULL.
        if value is not None
    }
    if FEATURED in kind.indexes:
        item[FEATURED_KEY] = flag_key(getattr(record, FEATURED))
    return item


def from_item(kind: EntityKind, item: Mapping[str, Any]) -> Record:
    data = {
        snake(name): decode_value(value)
        for name, value in item.items()
        if name != FEATURED_KEY
    }
    return kind.record_cls.from_dict(data)


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except ClientError as exc:
        if _error_code(exc) == "ValidationException":
            raise ValidationFailure(f"{operation}: {exc}") from exc
        raise StorageFailure(f"{operation} failed: {exc}") from exc
    except BotoCoreError as exc:
        raise StorageFailure(f"{operation} failed: {exc}") from exc


@dataclass
class DynamoDbClient(BaseDbClient):
    """
    DynamoDB-backed implementation of the storage contract.

    Tables are created lazily, once, before the first table operation.
    """

    region: str = "us-east-1"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None
    table_prefix: str = "escool_"
    probe_timeout_seconds: float = 3.0

    def __post_init__(self):
        session = boto3.session.Session(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            region_name=self.region,
        )
        self._resource = session.resource("dynamodb", endpoint_url=self.endpoint_url)
        self._client = self._resource.meta.client
        # The probe must fail fast rather than ride the default retry policy.
        probe_config = Config(
            connect_timeout=self.probe_timeout_seconds,
            read_timeout=self.probe_timeout_seconds,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        self._probe_client = session.client(
            "dynamodb", endpoint_url=self.endpoint_url, config=probe_config
        )
        self._tables: dict[str, Any] = {}
        self._tables_ready = False
        self._provision_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> "DynamoDbClient":
        return cls(
            region=settings.aws_region,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
            endpoint_url=settings.dynamodb_endpoint_url,
            table_prefix=settings.dynamodb_table_prefix,
            probe_timeout_seconds=settings.dynamodb_probe_timeout_seconds,
        )

    def ping(self) -> None:
        """Cheap, side-effect free connectivity check."""
        try:
            self._probe_client.list_tables(Limit=1)
        except (BotoCoreError, ClientError) as exc:
            raise BackendUnavailable(f"DynamoDB is unreachable: {exc}") from exc

    def provision_tables(self, wait: bool = True) -> list[str]:
        """Create missing tables now. Errors propagate to the caller."""
        created = create_tables(self._client, self.table_prefix, wait=wait)
        self._tables_ready = True
        return created

    def _ensure_tables(self) -> None:
        if self._tables_ready:
            return
        with self._provision_lock:
            if self._tables_ready:
                return
            try:
                create_tables(self._client, self.table_prefix)
            except (BotoCoreError, ClientError) as exc:
                logger.warning(
                    "DynamoDB table provisioning failed, assuming tables exist: %s",
                    exc,
                )
            self._tables_ready = True

    def _table(self, name: str):
        self._ensure_tables()
        table = self._tables.get(name)
        if table is None:
            table = self._resource.Table(f"{self.table_prefix}{name}")
            self._tables[name] = table
        return table

    def _paginate(self, method, **kwargs) -> list[dict]:
        items: list[dict] = []
        while True:
            response = method(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    # Primitives

    def _get(self, kind: EntityKind, record_id: int) -> Optional[Record]:
        with _storage_errors(f"get {kind.name}"):
            response = self._table(kind.name).get_item(Key={"id": record_id})
        item = response.get("Item")
        return from_item(kind, item) if item else None

    def _scan(self, kind: EntityKind, filters: Mapping[str, Any]) -> list:
        condition = None
        for name, value in filters.items():
            clause = Attr(camel(name)).eq(encode_value(value))
            condition = clause if condition is None else condition & clause
        kwargs: dict[str, Any] = {}
        if condition is not None:
            kwargs["FilterExpression"] = condition
        with _storage_errors(f"scan {kind.name}"):
            items = self._paginate(self._table(kind.name).scan, **kwargs)
        return [from_item(kind, item) for item in items]

    def _query(self, kind: EntityKind, field_name: str, value: Any) -> list:
        index_name = kind.indexes.get(field_name)
        if index_name is None:
            return self._scan(kind, {field_name: value})
        if field_name == FEATURED:
            key_condition = Key(FEATURED_KEY).eq(flag_key(value))
        else:
            key_condition = Key(camel(field_name)).eq(encode_value(value))
        table = self._table(kind.name)
        try:
            items = self._paginate(
                table.query, IndexName=index_name, KeyConditionExpression=key_condition
            )
        except (BotoCoreError, ClientError) as exc:
            logger.warning(
                "Query on %s.%s failed, falling back to scan: %s",
                table.name,
                index_name,
                exc,
            )
            return self._scan(kind, {field_name: value})
        return [from_item(kind, item) for item in items]

    def _next_id(self, kind: EntityKind) -> int:
        with _storage_errors(f"allocate {kind.name} id"):
            response = self._table(COUNTERS_TABLE).update_item(
                Key={"name": kind.name},
                UpdateExpression="ADD nextId :one",
                ExpressionAttributeValues={":one": 1},
                ReturnValues="UPDATED_NEW",
            )
        return int(response["Attributes"]["nextId"])

    def _put(self, kind: EntityKind, record: Record) -> None:
        with _storage_errors(f"put {kind.name}"):
            self._table(kind.name).put_item(Item=to_item(kind, record))

    def _update(
        self, kind: EntityKind, record_id: int, changes: Mapping[str, Any]
    ) -> Optional[Record]:
        names = {"#id": "id"}
        values: dict[str, Any] = {}
        assignments = []
        removals = []
        for index, (name, value) in enumerate(changes.items()):
            placeholder = f"#a{index}"
            names[placeholder] = camel(name)
            if value is None:
                removals.append(placeholder)
            else:
                assignments.append(f"{placeholder} = :v{index}")
                values[f":v{index}"] = encode_value(value)
        if FEATURED in changes and FEATURED in kind.indexes:
            names["#featuredKey"] = FEATURED_KEY
            assignments.append("#featuredKey = :featuredKey")
            values[":featuredKey"] = flag_key(changes[FEATURED])

        expression = []
        if assignments:
            expression.append("SET " + ", ".join(assignments))
        if removals:
            expression.append("REMOVE " + ", ".join(removals))
        kwargs: dict[str, Any] = {
            "Key": {"id": record_id},
            "UpdateExpression": " ".join(expression),
            "ConditionExpression": "attribute_exists(#id)",
            "ExpressionAttributeNames": names,
            "ReturnValues": "ALL_NEW",
        }
        if values:
            kwargs["ExpressionAttributeValues"] = values

        table = self._table(kind.name)
        with _storage_errors(f"update {kind.name}"):
            try:
                response = table.update_item(**kwargs)
            except ClientError as exc:
                if _error_code(exc) == "ConditionalCheckFailedException":
                    return None
                raise
        return from_item(kind, response["Attributes"])

    def _delete(self, kind: EntityKind, record_id: int) -> bool:
        with _storage_errors(f"delete {kind.name}"):
            response = self._table(kind.name).delete_item(
                Key={"id": record_id}, ReturnValues="ALL_OLD"
            )
        return bool(response.get("Attributes"))
