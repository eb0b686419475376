from __future__ import annotations

import copy
import threading
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .document_store import Document, DocumentNotFound, apply_query


class MemoryDocumentStore:
    """Simple in-memory document store for local runs and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = defaultdict(dict)
        self._children: Dict[Tuple[str, str, str], List[Dict[str, Any]]] = defaultdict(list)

    def put(self, collection: str, doc_id: str, data: Mapping[str, Any]) -> None:
        """Create or replace a document under a caller-chosen id."""
        with self._lock:
            self._collections[collection][doc_id] = copy.deepcopy(dict(data))

    def add_child(self, collection: str, doc_id: str, child: str, data: Mapping[str, Any]) -> None:
        with self._lock:
            self._children[(collection, doc_id, child)].append(copy.deepcopy(dict(data)))

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            data = self._collections[collection].get(doc_id)
            if data is None:
                return None
            return Document(doc_id, copy.deepcopy(data))

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
        with self._lock:
            docs = [
                Document(doc_id, copy.deepcopy(data))
                for doc_id, data in self._collections[collection].items()
            ]
        return apply_query(
            docs,
            filters=filters,
            order_by=order_by,
            descending=descending,
            cursor=cursor,
            offset=offset,
            limit=limit,
        )

    def add(self, collection: str, data: Mapping[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self.put(collection, doc_id, data)
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            existing = self._collections[collection].get(doc_id)
            if existing is None:
                raise DocumentNotFound(f"No document to update: {collection}/{doc_id}")
            existing.update(copy.deepcopy(dict(fields)))

    def list_children(
        self, collection: str, doc_id: str, child: str, *, order_by: Optional[str] = None
    ) -> List[Document]:
        with self._lock:
            rows = copy.deepcopy(self._children.get((collection, doc_id, child), []))
        docs = [Document(str(row.get("case_id", i)), row) for i, row in enumerate(rows)]
        return apply_query(docs, order_by=order_by)
