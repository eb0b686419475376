"""
DynamoDB backend for the document store.

One table per collection, keyed by ``id``. Sub-collections live in their own
table keyed by ``parent_id`` (hash) and ``case_id`` (range). DynamoDB has no
native float type, so numbers are written as ``Decimal`` and converted back
to ``int``/``float`` on read.
"""
from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from ..aws_clients import dynamodb_resource
from ..config import Settings
from .document_store import (
    CASE_RESULTS,
    SUBMISSIONS,
    TASKS,
    USERS,
    Document,
    DocumentNotFound,
    apply_query,
)

logger = logging.getLogger(__name__)


def to_dynamo(value: Any) -> Any:
    """Convert floats (recursively) to Decimal so boto3 accepts them."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    """Convert Decimal (recursively) back to int or float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def _to_document(item: Dict[str, Any]) -> Document:
    data = from_dynamo(item)
    doc_id = data.pop("id")
    return Document(doc_id, data)


class DynamoDocumentStore:
    """DynamoDB document store implementation."""

    def __init__(
        self,
        dynamodb,
        tables: Mapping[str, str],
        child_tables: Mapping[Tuple[str, str], str],
    ) -> None:
        self._dynamodb = dynamodb
        self._tables = dict(tables)
        self._child_tables = dict(child_tables)

    @classmethod
    def from_settings(cls, settings: Settings) -> "DynamoDocumentStore":
        return cls(
            dynamodb_resource(settings),
            tables={
                SUBMISSIONS: settings.submissions_table,
                TASKS: settings.tasks_table,
                USERS: settings.users_table,
            },
            child_tables={(SUBMISSIONS, CASE_RESULTS): settings.submission_status_table},
        )

    def _table(self, collection: str):
        return self._dynamodb.Table(self._tables.get(collection, collection))

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        response = self._table(collection).get_item(Key={"id": doc_id})
        if "Item" not in response:
            return None
        return _to_document(response["Item"])

    def _scan(self, collection: str, filters: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        table = self._table(collection)
        scan_kwargs: Dict[str, Any] = {}
        if filters:
            condition = None
            for name, value in filters.items():
                clause = Attr(name).eq(to_dynamo(value))
                condition = clause if condition is None else condition & clause
            scan_kwargs["FilterExpression"] = condition

        items: List[Dict[str, Any]] = []
        response = table.scan(**scan_kwargs)
        items.extend(response.get("Items", []))
        # Handle pagination
        while "LastEvaluatedKey" in response:
            response = table.scan(ExclusiveStartKey=response["LastEvaluatedKey"], **scan_kwargs)
            items.extend(response.get("Items", []))
        return items

    def query(
        self,
        collection: str,
        *,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        start_after: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        cursor = None
        if start_after:
            cursor = self.get(collection, start_after)
            if cursor is None:
                raise DocumentNotFound(f"Cursor document {collection}/{start_after} does not exist")

        docs = [_to_document(item) for item in self._scan(collection, filters)]
        logger.debug(f"Scanned {len(docs)} documents from {collection}")
        return apply_query(
            docs,
            order_by=order_by,
            descending=descending,
            cursor=cursor,
            offset=offset,
            limit=limit,
        )

    def add(self, collection: str, data: Mapping[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        item = to_dynamo(dict(data))
        item["id"] = doc_id
        self._table(collection).put_item(
            Item=item,
            ConditionExpression="attribute_not_exists(id)",
        )
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        if not fields:
            return
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments = []
        for i, (name, value) in enumerate(fields.items()):
            names[f"#f{i}"] = name
            values[f":v{i}"] = to_dynamo(value)
            assignments.append(f"#f{i} = :v{i}")
        try:
            self._table(collection).update_item(
                Key={"id": doc_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "ConditionalCheckFailedException":
                raise DocumentNotFound(f"No document to update: {collection}/{doc_id}") from e
            raise

    def list_children(
        self, collection: str, doc_id: str, child: str, *, order_by: Optional[str] = None
    ) -> List[Document]:
        table_name = self._child_tables.get((collection, child))
        if table_name is None:
            raise KeyError(f"No table configured for {collection}/*/{child}")
        table = self._dynamodb.Table(table_name)

        query_kwargs = {"KeyConditionExpression": Key("parent_id").eq(doc_id)}
        items: List[Dict[str, Any]] = []
        response = table.query(**query_kwargs)
        items.extend(response.get("Items", []))
        while "LastEvaluatedKey" in response:
            response = table.query(ExclusiveStartKey=response["LastEvaluatedKey"], **query_kwargs)
            items.extend(response.get("Items", []))

        docs = []
        for item in items:
            data = from_dynamo(item)
            data.pop("parent_id", None)
            docs.append(Document(str(data.get("case_id", "")), data))
        return apply_query(docs, order_by=order_by)
