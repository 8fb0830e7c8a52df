"""
Key-value persistence shared by the attempt tracker and the security monitor.

Each component owns exactly one key. Updates are plain read-modify-write
cycles with no locking: two writers that read the same value will lose one
of their updates. A multi-process deployment needs an atomic update at this
layer before relying on the counters.
"""
import copy
import json
import logging
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

LOGIN_ATTEMPTS_KEY = "loginAttempts"
SECURITY_EVENTS_KEY = "securityEvents"


class StorageError(Exception):
    """Raised when the backing store cannot be read or written."""


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store. Values are copied in and out."""

    def __init__(self, initial: dict | None = None):
        self._data = copy.deepcopy(initial) if initial else {}

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class DatabaseStore:
    """
    Store backed by the kv_entries table. Values are JSON encoded.
    Requires an application context (uses the Flask-SQLAlchemy session).
    """

    def __init__(self, db, model=None):
        if model is None:
            from models.kv_entry import KeyValueEntry
            model = KeyValueEntry
        self.db = db
        self.model = model

    def _row(self, key: str):
        return self.model.query.filter_by(key=key).first()

    def get(self, key: str, default: Any = None) -> Any:
        try:
            row = self._row(key)
        except SQLAlchemyError as exc:
            raise StorageError(f"read failed for {key}") from exc
        if not row:
            return default
        try:
            value = json.loads(row.value_json)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable value stored under %s", key)
            return default
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"value for {key} is not JSON serializable") from exc

        try:
            row = self._row(key)
            if not row:
                row = self.model(key=key, value_json=encoded)
                self.db.session.add(row)
            else:
                row.value_json = encoded
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            raise StorageError(f"write failed for {key}") from exc

    def delete(self, key: str) -> None:
        try:
            row = self._row(key)
            if row:
                self.db.session.delete(row)
                self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            raise StorageError(f"delete failed for {key}") from exc
