import atexit
import copy
import logging
import os
import pickle
import threading
from pathlib import Path
from typing import Callable, TypeVar

from locadora.config import get_settings
from locadora.utils.constants import Collection

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ---- Paths ----
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DATA_PATH = BASE_DIR / "data.pkl"


class StoreError(Exception):
    """Base class for storage-level failures."""


class TransactionConflict(StoreError):
    """A document read inside a transaction changed before the commit."""


class TransactionError(StoreError):
    """The transaction handle was used out of order."""


class DocumentNotFoundError(StoreError):
    """An update targeted a document that does not exist."""


class Transaction:
    """
    Read-then-write unit of work.

    Reads go straight to the store and remember the version they saw; writes
    are buffered and only applied by ``Store.run_transaction`` if none of the
    versions read has moved in the meantime.
    """

    def __init__(self, store: "Store"):
        self._store = store
        self._reads: dict[tuple[str, str], int] = {}
        self._writes: list[tuple[str, str, str, dict | None]] = []

    def _check_read_allowed(self):
        if self._writes:
            raise TransactionError("Transactions require all reads to happen before writes")

    def get(self, collection: str, doc_id: str) -> dict | None:
        self._check_read_allowed()
        with self._store._rw:
            key = (collection, doc_id)
            self._reads.setdefault(key, self._store._versions.get(key, 0))
            return self._store.get(collection, doc_id)

    def where(self, collection: str, **equals) -> list[dict]:
        self._check_read_allowed()
        with self._store._rw:
            docs = self._store.where(collection, **equals)
            for d in docs:
                key = (collection, d["id"])
                self._reads.setdefault(key, self._store._versions.get(key, 0))
            return docs

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        self._writes.append(("set", collection, doc_id, copy.deepcopy(data)))

    def update(self, collection: str, doc_id: str, fields: dict) -> None:
        self._writes.append(("update", collection, doc_id, copy.deepcopy(fields)))

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes.append(("delete", collection, doc_id, None))


class Store:
    _inst = None
    _inst_lock = threading.Lock()
    _atexit_registered = False

    def __init__(self, path: str | os.PathLike | None = None, persist: bool = True):
        self.path = str(path or DEFAULT_DATA_PATH)
        self.persist = persist
        self.clients: dict[str, dict] = {}
        self.vehicles: dict[str, dict] = {}
        self.rentals: dict[str, dict] = {}
        self._versions: dict[tuple[str, str], int] = {}
        self._rw = threading.RLock()

        if self.persist:
            logger.info("Using store file: %s", self.path)
            self._load()

        # Automatically save on exit (skipped in test environments)
        if self.persist and not Store._atexit_registered and not get_settings().is_test:
            atexit.register(self.save)
            Store._atexit_registered = True

    # ---------- Singleton ----------
    @classmethod
    def instance(cls, path: str | os.PathLike | None = None):
        """Return the global singleton instance of Store."""
        with cls._inst_lock:
            if cls._inst is None:
                cls._inst = Store(path or get_settings().locadora_data_path or DEFAULT_DATA_PATH)
        return cls._inst

    # ---------- Persistence ----------
    def _load(self):
        """Load data from the pickle file, or start empty if unavailable or invalid."""
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "rb") as f:
                data = pickle.load(f)
        except Exception as e:
            logger.warning("Store load failed (%s); starting empty.", e)
            return

        if isinstance(data, dict):
            for name in Collection.ALL:
                docs = data.get(name, {}) or {}
                setattr(self, name, docs)
                for doc_id in docs:
                    self._versions[(name, doc_id)] = 1
            logger.info(
                "Store loaded: clients=%d, vehicles=%d, rentals=%d",
                len(self.clients), len(self.vehicles), len(self.rentals))
        else:
            # Incompatible data format: back up the old file and start empty
            bak = self.path + ".bak"
            try:
                os.replace(self.path, bak)
                logger.warning(
                    "Incompatible store (%s); backed up to %s. Starting empty.",
                    type(data).__name__, bak)
            except OSError as e:
                logger.error("Store backup failed: %s", e)

    def _dump(self):
        """Write the in-memory data to the pickle file safely (atomic replace)."""
        if not self.persist:
            return
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        tmp = self.path + ".tmp"
        payload = {name: self._collection(name) for name in Collection.ALL}
        with open(tmp, "wb") as f:
            pickle.dump(payload, f, protocol=pickle.HIGHEST_PROTOCOL)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)

    def save(self):
        """Thread-safe save method."""
        with self._rw:
            logger.info("Saving store to %s", self.path)
            self._dump()

    def clear(self):
        with self._rw:
            for name in Collection.ALL:
                for doc_id in list(self._collection(name)):
                    self._bump(name, doc_id)
                self._collection(name).clear()
            self._dump()

    # ---------- Documents ----------
    def _collection(self, name: str) -> dict[str, dict]:
        if name not in Collection.ALL:
            raise StoreError(f"Unknown collection: {name}")
        return getattr(self, name)

    def _bump(self, name: str, doc_id: str):
        key = (name, doc_id)
        self._versions[key] = self._versions.get(key, 0) + 1

    def get(self, collection: str, doc_id: str) -> dict | None:
        """Return a copy of the document, or None."""
        with self._rw:
            doc = self._collection(collection).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def where(self, collection: str, **equals) -> list[dict]:
        """Return copies of every document whose fields equal ``equals``."""
        with self._rw:
            return [
                copy.deepcopy(d) for d in self._collection(collection).values()
                if all(d.get(k) == v for k, v in equals.items())
            ]

    def set(self, collection: str, doc_id: str, data: dict) -> None:
        with self._rw:
            self._apply("set", collection, doc_id, copy.deepcopy(data))
            self._dump()

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        """Merge fields into an existing document; return False if it is absent."""
        with self._rw:
            if doc_id not in self._collection(collection):
                return False
            self._apply("update", collection, doc_id, copy.deepcopy(fields))
            self._dump()
            return True

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._rw:
            if doc_id not in self._collection(collection):
                return False
            self._apply("delete", collection, doc_id, None)
            self._dump()
            return True

    def _apply(self, op: str, collection: str, doc_id: str, data: dict | None):
        docs = self._collection(collection)
        if op == "set":
            data["id"] = doc_id
            docs[doc_id] = data
        elif op == "update":
            docs[doc_id].update(data)
        else:
            docs.pop(doc_id, None)
        self._bump(collection, doc_id)

    # ---------- Transactions ----------
    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        """
        Run ``fn`` with a fresh transaction handle and commit its writes atomically.

        Raises TransactionConflict if any document read by ``fn`` changed before
        the commit; in that case nothing is written. No automatic retry.
        """
        tx = Transaction(self)
        result = fn(tx)
        self._commit(tx)
        return result

    def _commit(self, tx: Transaction) -> None:
        with self._rw:
            for key, seen in tx._reads.items():
                if self._versions.get(key, 0) != seen:
                    raise TransactionConflict(f"Document {key[0]}/{key[1]} changed during transaction")
            present = {}
            for op, collection, doc_id, _ in tx._writes:
                key = (collection, doc_id)
                exists = present.get(key, doc_id in self._collection(collection))
                if op == "update" and not exists:
                    raise DocumentNotFoundError(f"No document to update: {collection}/{doc_id}")
                present[key] = op != "delete"
            for op, collection, doc_id, data in tx._writes:
                self._apply(op, collection, doc_id, data)
            if tx._writes:
                self._dump()
