# studysphere/services/storage.py
import copy
import logging
import threading
from typing import Any, Callable, Optional, Protocol

from sqlalchemy.orm import sessionmaker

from ..db.models import StorageEntryModel

logger = logging.getLogger(__name__)

Mutation = Callable[[Optional[Any]], Any]


class StoragePort(Protocol):
    """Key/value persistence for JSON-serialisable documents.

    ``update`` applies ``mutate`` to the stored value and writes the result
    back as one atomic step, so concurrent writers of the same key merge
    instead of overwriting each other.
    """

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...

    def update(self, key: str, mutate: Mutation) -> Any: ...


class InMemoryStorage:
    def __init__(self):
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def update(self, key: str, mutate: Mutation) -> Any:
        with self._lock:
            value = mutate(copy.deepcopy(self._data.get(key)))
            self._data[key] = copy.deepcopy(value)
            return copy.deepcopy(value)


class DatabaseStorage:
    """Stores each key as one row of ``storage_entries``."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        # In-memory SQLite shares a single connection between threads
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock, self.session_factory() as db:
            entry = db.get(StorageEntryModel, key)
            return entry.value if entry else None

    def set(self, key: str, value: Any) -> None:
        self.update(key, lambda _: value)

    def delete(self, key: str) -> None:
        with self._lock, self.session_factory() as db:
            try:
                entry = db.get(StorageEntryModel, key)
                if entry:
                    db.delete(entry)
                    db.commit()
            except Exception:
                logger.error(f"Failed to delete storage key {key}")
                db.rollback()
                raise

    def update(self, key: str, mutate: Mutation) -> Any:
        with self._lock, self.session_factory() as db:
            try:
                entry = db.get(StorageEntryModel, key, with_for_update=True)
                # Work on a copy so the change is detected on flush
                value = mutate(copy.deepcopy(entry.value) if entry else None)
                if entry:
                    entry.value = value
                else:
                    db.add(StorageEntryModel(key=key, value=value))
                db.commit()
                return value
            except Exception:
                logger.error(f"Failed to write storage key {key}")
                db.rollback()
                raise


class NamespacedStorage:
    """Prefixes every key so several users can share one backend."""

    def __init__(self, backend: StoragePort, namespace: str):
        self.backend = backend
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[Any]:
        return self.backend.get(self._key(key))

    def set(self, key: str, value: Any) -> None:
        self.backend.set(self._key(key), value)

    def delete(self, key: str) -> None:
        self.backend.delete(self._key(key))

    def update(self, key: str, mutate: Mutation) -> Any:
        return self.backend.update(self._key(key), mutate)
