"""
tests.conftest
~~~~~~~~~~~~~~
Shared fixtures: an in-memory document store standing in for MongoDB, and
a coordinator wired to it for both direct service calls and API requests.
"""
from __future__ import annotations

import copy
import re
import uuid

import bson
import pytest
from pymongo.errors import ServerSelectionTimeoutError
from rest_framework.test import APIClient

from apps.storage.services import dual_storage
from apps.storage.services.document_store import bson_safe
from apps.storage.services.dual_storage import DualStorageService


# ===========================================================================
# Fake document store
# ===========================================================================

def _lookup(document: dict, dotted: str) -> object:
    value: object = document
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(document: dict, query: dict) -> bool:
    for key, expected in query.items():
        actual = _lookup(document, key)
        if isinstance(expected, dict) and "$regex" in expected:
            flags = re.IGNORECASE if "i" in expected.get("$options", "") else 0
            if not isinstance(actual, str) or not re.search(expected["$regex"], actual, flags):
                return False
        elif actual != expected:
            return False
    return True


class FakeDocumentStore:
    """
    Dict-backed stand-in for
    :class:`~apps.storage.services.document_store.DocumentStore`.

    Documents are BSON-encoded on write, as pymongo does before sending, so
    unencodable values fail the same way.  Set ``fail = True`` to make every
    call raise a pymongo error, the way an unreachable server does once the
    deadline expires.
    """

    def __init__(self) -> None:
        self.collections: dict[str, list[dict]] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise ServerSelectionTimeoutError("document store unreachable")

    def _collection(self, name: str) -> list[dict]:
        return self.collections.setdefault(name, [])

    def insert_one(self, collection: str, document: dict) -> object:
        self._check()
        stored = bson_safe(document)
        bson.encode(stored)
        stored["_id"] = uuid.uuid4().hex
        self._collection(collection).append(stored)
        return stored["_id"]

    def insert_many(self, collection: str, documents: list[dict]) -> list:
        self._check()
        return [self.insert_one(collection, document) for document in documents]

    def update_one(self, collection: str, query: dict, changes: dict) -> int:
        self._check()
        for document in self._collection(collection):
            if _matches(document, query):
                changes = bson_safe(changes)
                bson.encode(changes)
                document.update(changes)
                return 1
        return 0

    def delete_one(self, collection: str, query: dict) -> int:
        self._check()
        for index, document in enumerate(self._collection(collection)):
            if _matches(document, query):
                del self._collection(collection)[index]
                return 1
        return 0

    def delete_many(self, collection: str, query: dict) -> int:
        self._check()
        kept = [doc for doc in self._collection(collection) if not _matches(doc, query)]
        deleted = len(self._collection(collection)) - len(kept)
        self.collections[collection] = kept
        return deleted

    def find_one(self, collection: str, query: dict) -> dict | None:
        self._check()
        for document in self._collection(collection):
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, collection: str, query: dict, *, sort=None) -> list[dict]:
        self._check()
        found = [copy.deepcopy(doc) for doc in self._collection(collection) if _matches(doc, query)]
        for key, direction in reversed(sort or []):
            found.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return found

    def ping(self) -> None:
        self._check()


# ===========================================================================
# Fixtures
# ===========================================================================

@pytest.fixture
def document_store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def storage(db, document_store: FakeDocumentStore) -> DualStorageService:
    """Coordinator over the test database and the fake document store."""
    return DualStorageService(document_store)


@pytest.fixture
def fake_storage(storage: DualStorageService, monkeypatch) -> DualStorageService:
    """Route every service and view to the fake-backed coordinator."""
    monkeypatch.setattr(dual_storage, "get_dual_storage", lambda using="default": storage)
    return storage


@pytest.fixture
def api_client() -> APIClient:
    """Return an unauthenticated DRF APIClient."""
    return APIClient()
