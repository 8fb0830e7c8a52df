"""Tests for the key-value stores behind the security components."""

import pytest
from sqlalchemy.exc import OperationalError

from models import db
from models.kv_entry import KeyValueEntry
from security.storage import DatabaseStore, MemoryStore, StorageError


class BrokenQuery:
    def filter_by(self, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))


class BrokenModel:
    query = BrokenQuery()


class FakeSession:
    def __init__(self):
        self.rollbacks = 0

    def rollback(self):
        self.rollbacks += 1


class FakeDb:
    def __init__(self):
        self.session = FakeSession()


class TestMemoryStore:

    def test_default_for_missing_key(self):
        assert MemoryStore().get("missing", {}) == {}

    def test_values_are_copied(self):
        store = MemoryStore()
        value = {"a": {"count": 1}}
        store.set("k", value)
        value["a"]["count"] = 99

        fetched = store.get("k")
        assert fetched == {"a": {"count": 1}}
        fetched["a"]["count"] = 42
        assert store.get("k") == {"a": {"count": 1}}

    def test_delete(self):
        store = MemoryStore({"k": [1, 2]})
        store.delete("k")
        store.delete("k")
        assert store.get("k") is None


class TestDatabaseStore:

    def test_round_trip(self, app):
        with app.app_context():
            store = DatabaseStore(db)
            store.set("securityEvents", [{"type": "LOGIN_FAILED"}])
            store.set("securityEvents", [{"type": "LOGIN_SUCCESS"}])

            assert store.get("securityEvents") == [{"type": "LOGIN_SUCCESS"}]
            assert KeyValueEntry.query.filter_by(key="securityEvents").count() == 1

            store.delete("securityEvents")
            assert store.get("securityEvents", []) == []

    def test_undecodable_row_returns_default(self, app):
        with app.app_context():
            db.session.add(KeyValueEntry(key="loginAttempts", value_json="{not json"))
            db.session.commit()
            assert DatabaseStore(db).get("loginAttempts", {}) == {}

    def test_unserializable_value(self, app):
        with app.app_context():
            with pytest.raises(StorageError):
                DatabaseStore(db).set("loginAttempts", {"when": object()})

    def test_database_errors_become_storage_errors(self):
        fake_db = FakeDb()
        store = DatabaseStore(fake_db, model=BrokenModel)

        with pytest.raises(StorageError):
            store.get("loginAttempts")
        with pytest.raises(StorageError):
            store.set("loginAttempts", {})
        with pytest.raises(StorageError):
            store.delete("loginAttempts")
        assert fake_db.session.rollbacks == 2
