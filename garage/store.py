"""
Document store with atomic write batches and live query subscriptions.

Documents are plain camelCase dicts grouped into collections. Every write
goes through a WriteBatch whose commit either applies all of its
operations or none. Subscribers receive the current result of their query
when they subscribe and again after any commit that changes it.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

import yaml

from .errors import StorageError

logger = logging.getLogger(__name__)

VEHICLES = "vehicles"
TASKS = "maintenanceTasks"
LOGS = "serviceLogs"
COLLECTIONS = (VEHICLES, TASKS, LOGS)

Document = Dict[str, Any]
SnapshotCallback = Callable[[List[Document]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle for a live query. Call unsubscribe() when the owner is done."""

    def __init__(
        self,
        store: "DocumentStore",
        collection: str,
        field: str,
        value: Any,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ):
        self._store = store
        self.collection = collection
        self.field = field
        self.value = value
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True
        self.last_result: Optional[List[Document]] = None

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._store._remove_subscription(self)

    def __call__(self) -> None:
        self.unsubscribe()


class WriteBatch:
    """A group of writes committed together."""

    def __init__(self, store: "DocumentStore"):
        self._store = store
        self._ops: List[tuple] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    def set(self, collection: str, doc_id: str, data: Document) -> "WriteBatch":
        """Create or replace a document."""
        self._ops.append(("set", collection, doc_id, copy.deepcopy(data)))
        return self

    def update(self, collection: str, doc_id: str, fields: Document) -> "WriteBatch":
        """Merge fields into an existing document. The commit fails if it is missing."""
        self._ops.append(("update", collection, doc_id, copy.deepcopy(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> "WriteBatch":
        self._ops.append(("delete", collection, doc_id, None))
        return self

    def commit(self) -> None:
        if self._committed:
            raise StorageError("Batch already committed")
        self._committed = True
        self._store._commit(self._ops)


class DocumentStore:
    """
    In-memory document store.

    Args:
        data: initial documents as {collection: [document, ...]}
        indexed_fields: fields that may be queried; None allows any field
    """

    def __init__(
        self,
        data: Optional[Dict[str, Iterable[Document]]] = None,
        indexed_fields: Optional[Iterable[str]] = None,
    ):
        self._data: Dict[str, Dict[str, Document]] = {c: {} for c in COLLECTIONS}
        for collection, docs in (data or {}).items():
            self._check_collection(collection)
            for doc in docs or []:
                self._data[collection][doc["id"]] = copy.deepcopy(doc)
        self._indexed_fields = set(indexed_fields) if indexed_fields is not None else None
        self._subscriptions: List[Subscription] = []

    @staticmethod
    def _check_collection(collection: str) -> None:
        if collection not in COLLECTIONS:
            raise StorageError(f"Unknown collection '{collection}'")

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        self._check_collection(collection)
        doc = self._data[collection].get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def all(self, collection: str) -> List[Document]:
        self._check_collection(collection)
        return copy.deepcopy(list(self._data[collection].values()))

    def query(self, collection: str, field: str, value: Any) -> List[Document]:
        """Documents whose field equals value, in insertion order."""
        self._check_collection(collection)
        if self._indexed_fields is not None and field not in self._indexed_fields:
            raise StorageError(f"Query on {collection}.{field} requires an index")
        return copy.deepcopy(
            [doc for doc in self._data[collection].values() if doc.get(field) == value]
        )

    def snapshot(self) -> Dict[str, List[Document]]:
        return {c: self.all(c) for c in COLLECTIONS}

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def batch(self) -> WriteBatch:
        return WriteBatch(self)

    def set(self, collection: str, doc_id: str, data: Document) -> None:
        self.batch().set(collection, doc_id, data).commit()

    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        self.batch().update(collection, doc_id, fields).commit()

    def delete(self, collection: str, doc_id: str) -> None:
        self.batch().delete(collection, doc_id).commit()

    def _commit(self, ops: List[tuple]) -> None:
        # Work on a copy; the live state is only swapped once every op applied.
        state = {c: dict(docs) for c, docs in self._data.items()}
        for op, collection, doc_id, payload in ops:
            self._check_collection(collection)
            docs = state[collection]
            if op == "set":
                docs[doc_id] = payload
            elif op == "update":
                if doc_id not in docs:
                    raise StorageError(f"No document {collection}/{doc_id} to update")
                merged = dict(docs[doc_id])
                merged.update(payload)
                docs[doc_id] = merged
            elif op == "delete":
                docs.pop(doc_id, None)
            else:
                raise StorageError(f"Unknown batch operation '{op}'")

        self._persist(state)
        self._data = state
        logger.debug("Committed batch of %d operations", len(ops))
        self._notify({collection for _, collection, _, _ in ops})

    def _persist(self, state: Dict[str, Dict[str, Document]]) -> None:
        """Hook for durable stores. Raise StorageError to abort the commit."""

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(
        self,
        collection: str,
        field: str,
        value: Any,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Watch documents where field == value. Delivers the current result at once."""
        self._check_collection(collection)
        sub = Subscription(self, collection, field, value, on_snapshot, on_error)
        self._subscriptions.append(sub)
        self._deliver(sub, force=True)
        return sub

    def _remove_subscription(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def _notify(self, collections: set) -> None:
        for sub in list(self._subscriptions):
            if sub.active and sub.collection in collections:
                self._deliver(sub)

    def _deliver(self, sub: Subscription, force: bool = False) -> None:
        try:
            docs = self.query(sub.collection, sub.field, sub.value)
        except StorageError as e:
            if sub.on_error is None:
                logger.warning("Subscription on %s.%s failed: %s", sub.collection, sub.field, e)
                return
            sub.on_error(e)
            return

        if not force and docs == sub.last_result:
            return
        sub.last_result = docs
        try:
            sub.on_snapshot(copy.deepcopy(docs))
        except Exception:
            logger.exception(
                "Snapshot listener for %s.%s=%r raised", sub.collection, sub.field, sub.value
            )


# =============================================================================
# YAML-backed store
# =============================================================================


def load_documents(filename: Union[str, Path]) -> Dict[str, List[Document]]:
    """Load a store file: {collection: [document, ...]}."""
    with open(filename, "r") as fp:
        data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
    return {c: data.get(c) or [] for c in COLLECTIONS}


class YamlDocumentStore(DocumentStore):
    """
    Document store persisted to a single YAML file.

    Each commit rewrites the file through a temporary file and os.replace,
    so a failed write leaves both the file and the in-memory state as they were.
    """

    def __init__(self, filename: Union[str, Path], indexed_fields: Optional[Iterable[str]] = None):
        self.filename = Path(filename)
        data = load_documents(self.filename) if self.filename.exists() else None
        super().__init__(data, indexed_fields)

    def _persist(self, state: Dict[str, Dict[str, Document]]) -> None:
        data = {c: list(state[c].values()) for c in COLLECTIONS}
        tmp = self.filename.with_name(self.filename.name + ".tmp")
        try:
            with open(tmp, "w") as fp:
                yaml.dump(
                    data,
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
            os.replace(tmp, self.filename)
        except (OSError, yaml.YAMLError) as e:
            raise StorageError(f"Could not write {self.filename}: {e}") from e
        finally:
            if tmp.is_file():
                tmp.unlink()
