"""
Generic document store used by the lifecycle engine.

The engine only needs get/find/insert/update_in_place/delete_hard over
JSON documents keyed by id, with equality and range filters on declared
fields. Three backends implement it:

 - ``InMemoryDocumentStore`` for tests and embedding
 - ``FileDocumentStore`` for local runs (JSON file under RUNTIME_STATE_DIR)
 - ``CosmosDocumentStore`` for Azure Cosmos DB

Documents are stored in their JSON form: datetimes become ISO-8601 UTC
strings with a fixed format, so range filters compare correctly as text.
"""
from __future__ import annotations

import copy
import json
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from src.shared.logging_utils import debug as log_debug, info as log_info
from src.specs.common.datetime_utils import format_iso_datetime
from src.specs.common.errors import ConfigurationError, ConflictError

_MISSING = object()


@dataclass(frozen=True)
class Range:
    """Inclusive/exclusive bounds for a range filter; unset bounds are open."""

    gte: Any = None
    lte: Any = None
    gt: Any = None
    lt: Any = None

    def bounds(self) -> List[Tuple[str, Any]]:
        return [(op, encode_value(v)) for op, v in (("gte", self.gte), ("lte", self.lte), ("gt", self.gt), ("lt", self.lt)) if v is not None]


Filters = Mapping[str, Any]


def encode_value(value: Any) -> Any:
    """Convert a python document value into its stored JSON form."""
    if isinstance(value, datetime):
        return format_iso_datetime(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def encode_document(doc: Mapping[str, Any]) -> Dict[str, Any]:
    return encode_value(dict(doc))


def _lookup(doc: Mapping[str, Any], path: str) -> Any:
    current: Any = doc
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _compare(value: Any, op: str, bound: Any) -> bool:
    try:
        if op == "gte":
            return value >= bound
        if op == "lte":
            return value <= bound
        if op == "gt":
            return value > bound
        return value < bound
    except TypeError:
        return False


def matches(doc: Mapping[str, Any], filters: Optional[Filters]) -> bool:
    for path, expected in (filters or {}).items():
        value = _lookup(doc, path)
        if isinstance(expected, Range):
            if value is _MISSING or value is None:
                return False
            if not all(_compare(value, op, bound) for op, bound in expected.bounds()):
                return False
            continue
        if expected is None:
            if value is not _MISSING and value is not None:
                return False
            continue
        if value is _MISSING or value != encode_value(expected):
            return False
    return True


class DocumentStore(Protocol):
    def get(self, container: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def find(self, container: str, filters: Optional[Filters] = None) -> List[Dict[str, Any]]:
        ...

    def insert(self, container: str, doc: Mapping[str, Any]) -> Dict[str, Any]:
        ...

    def update_in_place(self, container: str, doc_id: str, fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    def delete_hard(self, container: str, doc_id: str) -> bool:
        ...


class InMemoryDocumentStore:
    """Dictionary-backed store. Safe for use from several threads."""

    def __init__(self, data: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = data if data is not None else {}
        self._lock = threading.RLock()

    def _bucket(self, container: str) -> Dict[str, Dict[str, Any]]:
        return self._data.setdefault(container, {})

    def _changed(self) -> None:
        """Hook for subclasses that persist after each write."""

    def get(self, container: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._bucket(container).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def find(self, container: str, filters: Optional[Filters] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._bucket(container).values() if matches(d, filters)]

    def insert(self, container: str, doc: Mapping[str, Any]) -> Dict[str, Any]:
        body = encode_document(doc)
        doc_id = body.get("id")
        if not doc_id:
            raise ValueError("Documents must carry an id before insert")
        with self._lock:
            bucket = self._bucket(container)
            if doc_id in bucket:
                raise ConflictError(f"Document '{doc_id}' already exists in '{container}'")
            bucket[doc_id] = body
            self._changed()
        return copy.deepcopy(body)

    def update_in_place(self, container: str, doc_id: str, fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            bucket = self._bucket(container)
            doc = bucket.get(doc_id)
            if doc is None:
                return None
            doc.update(encode_document(fields))
            doc["id"] = doc_id
            self._changed()
            return copy.deepcopy(doc)

    def delete_hard(self, container: str, doc_id: str) -> bool:
        with self._lock:
            removed = self._bucket(container).pop(doc_id, None) is not None
            if removed:
                self._changed()
            return removed


_DEFAULT_STATE_BASE = Path(tempfile.gettempdir()) / "campaign-engine-runtime"


class FileDocumentStore(InMemoryDocumentStore):
    """In-memory store mirrored to a JSON file after every write."""

    def __init__(self, path: Optional[Path] = None):
        state_dir = Path(os.getenv("RUNTIME_STATE_DIR", str(_DEFAULT_STATE_BASE)))
        self._path = path or state_dir / "documents.json"
        data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        if self._path.exists():
            try:
                data = json.loads(self._path.read_text())
            except json.JSONDecodeError:
                log_info(None, "store:file:unreadable", path=str(self._path))
                data = {}
        super().__init__(data)

    def _changed(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data))


def _field_ref(path: str) -> str:
    return "c" + "".join(f'["{part}"]' for part in path.split("."))


_SQL_OPS = {"gte": ">=", "lte": "<=", "gt": ">", "lt": "<"}


def build_query(filters: Optional[Filters]) -> Tuple[str, List[Dict[str, Any]]]:
    """Translate equality/range filters into a parameterised Cosmos SQL query."""
    clauses: List[str] = []
    params: List[Dict[str, Any]] = []
    for path, expected in (filters or {}).items():
        ref = _field_ref(path)
        if isinstance(expected, Range):
            for op, bound in expected.bounds():
                name = f"@p{len(params)}"
                clauses.append(f"{ref} {_SQL_OPS[op]} {name}")
                params.append({"name": name, "value": bound})
        elif expected is None:
            clauses.append(f"(NOT IS_DEFINED({ref}) OR IS_NULL({ref}))")
        else:
            name = f"@p{len(params)}"
            clauses.append(f"{ref} = {name}")
            params.append({"name": name, "value": encode_value(expected)})
    query = "SELECT * FROM c"
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    return query, params


class CosmosDocumentStore:
    """Store backed by Cosmos DB containers partitioned on /id."""

    def __init__(self, client: Any = None):
        if client is None:
            from src.shared.cosmos_client import get_cosmos_client

            client = get_cosmos_client()
        self._client = client

    @staticmethod
    def _strip_system(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if doc is None:
            return None
        return {k: v for k, v in doc.items() if not k.startswith("_")}

    def get(self, container: str, doc_id: str) -> Optional[Dict[str, Any]]:
        return self._strip_system(self._client.get_item(container, doc_id))

    def find(self, container: str, filters: Optional[Filters] = None) -> List[Dict[str, Any]]:
        query, params = build_query(filters)
        log_debug(None, "cosmos:query", container=container, query=query)
        return [self._strip_system(d) for d in self._client.query_items(container, query, params)]

    def insert(self, container: str, doc: Mapping[str, Any]) -> Dict[str, Any]:
        body = encode_document(doc)
        if not body.get("id"):
            raise ValueError("Documents must carry an id before insert")
        return self._strip_system(self._client.create_item(container, body))

    def update_in_place(self, container: str, doc_id: str, fields: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        current = self._client.get_item(container, doc_id)
        if current is None:
            return None
        body = self._strip_system(current)
        body.update(encode_document(fields))
        body["id"] = doc_id
        return self._strip_system(self._client.upsert_item(container, body))

    def delete_hard(self, container: str, doc_id: str) -> bool:
        return bool(self._client.delete_item(container, doc_id))


def _cosmos_configured() -> bool:
    return bool(os.getenv("COSMOS_DB_CONNECTION_STRING") and os.getenv("COSMOS_DB_NAME"))


def create_document_store(backend: Optional[str] = None) -> DocumentStore:
    backend = (backend or os.getenv("DOCUMENT_STORE_BACKEND", "auto")).lower()
    if backend == "memory":
        return InMemoryDocumentStore()
    if backend == "file":
        return FileDocumentStore()
    if backend == "cosmos":
        if not _cosmos_configured():
            raise ConfigurationError("DOCUMENT_STORE_BACKEND=cosmos but Cosmos DB settings are missing")
        return CosmosDocumentStore()
    if backend != "auto":
        raise ConfigurationError(f"Unknown DOCUMENT_STORE_BACKEND '{backend}'")
    # auto-detect cosmos if config present
    if _cosmos_configured():
        return CosmosDocumentStore()
    return FileDocumentStore()


@lru_cache(maxsize=1)
def get_document_store() -> DocumentStore:
    store = create_document_store()
    log_info(None, "store:init", backend=type(store).__name__)
    return store
