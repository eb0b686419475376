"""
Document store abstraction for submission, task and user records.

This module provides the interface every storage backend implements plus the
query semantics they share: equality filters, a single ordering field,
cursor pagination (``start_after``), offset and limit. Backends only have to
fetch candidate documents; ``apply_query`` shapes the result.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from ..config import Settings

logger = logging.getLogger(__name__)

SUBMISSIONS = "submissions"
TASKS = "tasks"
USERS = "users"
CASE_RESULTS = "status"


class DocumentNotFound(LookupError):
    """Raised when an operation needs a document that does not exist."""


@dataclass
class Document:
    id: str
    data: Dict[str, Any] = field(default_factory=dict)


class DocumentStore(Protocol):
    """Protocol defining the interface for document store backends."""

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return the document or ``None`` when it does not exist."""
        ...

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
        """
        Return documents matching every equality filter.

        Args:
            collection: Collection name
            filters: Field name to required value
            order_by: Field to sort on; documents missing it are excluded
            descending: Sort direction
            start_after: Id of the document the results resume after
            offset: Number of leading results to skip
            limit: Maximum number of results

        Raises:
            DocumentNotFound: If the ``start_after`` document does not exist
        """
        ...

    def add(self, collection: str, data: Mapping[str, Any]) -> str:
        """Insert a document under a store-assigned id and return the id."""
        ...

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        """
        Overwrite the given fields of an existing document.

        Raises:
            DocumentNotFound: If the document does not exist
        """
        ...

    def list_children(
        self, collection: str, doc_id: str, child: str, *, order_by: Optional[str] = None
    ) -> List[Document]:
        """Return the documents of a sub-collection (e.g. per-case verdicts)."""
        ...


def _sort_key(doc: Document, order_by: str) -> Tuple[Any, str]:
    return (doc.data[order_by], doc.id)


def apply_query(
    docs: List[Document],
    *,
    filters: Optional[Mapping[str, Any]] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    cursor: Optional[Document] = None,
    offset: int = 0,
    limit: Optional[int] = None,
) -> List[Document]:
    """Filter, order, page and cap an in-memory list of documents."""
    if filters:
        docs = [
            d for d in docs
            if all(name in d.data and d.data[name] == value for name, value in filters.items())
        ]

    if order_by:
        docs = [d for d in docs if order_by in d.data]
        docs.sort(key=lambda d: _sort_key(d, order_by), reverse=descending)
        if cursor is not None and order_by in cursor.data:
            boundary = _sort_key(cursor, order_by)
            if descending:
                docs = [d for d in docs if _sort_key(d, order_by) < boundary]
            else:
                docs = [d for d in docs if _sort_key(d, order_by) > boundary]
    elif cursor is not None:
        docs.sort(key=lambda d: d.id)
        docs = [d for d in docs if d.id > cursor.id]

    if offset:
        docs = docs[offset:]
    if limit is not None:
        docs = docs[:limit]
    return docs


def create_document_store(settings: Settings) -> DocumentStore:
    """Build the document store selected by ``STORE_BACKEND``."""
    if settings.store_backend == "memory":
        from .memory_store import MemoryDocumentStore

        logger.info("Initializing in-memory document store")
        return MemoryDocumentStore()

    from .dynamo_service import DynamoDocumentStore

    logger.info("Initializing DynamoDB document store (default)")
    return DynamoDocumentStore.from_settings(settings)
