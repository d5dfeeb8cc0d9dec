"""
apps.storage.services.document_store
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Thin wrapper around a pymongo :class:`~pymongo.database.Database` that
bounds every call with a deadline.

Each operation runs inside ``pymongo.timeout(seconds)``; the deadline is
released when the ``with`` block exits, whether the call succeeded, raised
or timed out.  Failures surface as one of :data:`DOCUMENT_STORE_ERRORS`
and are never retried here.
"""
from __future__ import annotations

import datetime
import decimal

import pymongo
from bson.errors import BSONError
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

#: Collection mirroring VNFInstance rows (one document per instance).
INSTANCES_COLLECTION = "vnf_instances"

#: Collection mirroring VNFDefinition rows (one document per field).
DEFINITIONS_COLLECTION = "vnf_definitions"

#: Everything a document-store call can raise.  bson encodes documents on the
#: client before sending, so an unencodable value (an integer wider than 64
#: bits, an unsupported type) raises BSONError or OverflowError rather than
#: a PyMongoError.
DOCUMENT_STORE_ERRORS: tuple[type[Exception], ...] = (PyMongoError, BSONError, OverflowError)


def bson_safe(value: object) -> object:
    """
    Return a copy of *value* that BSON can encode.

    Mapping keys are stringified (YAML allows ``1:`` or ``on:`` keys),
    tuples become lists, dates become ISO strings and decimals floats.
    """
    if isinstance(value, dict):
        return {str(key): bson_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [bson_safe(item) for item in value]
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return value.isoformat()
    if isinstance(value, decimal.Decimal):
        return float(value)
    return value


class DocumentStore:
    """
    Document-store handle owned by
    :class:`~apps.storage.services.dual_storage.DualStorageService`.

    Args:
        database: The pymongo database holding the mirror collections.
        timeout: Deadline in seconds applied to every single operation.
        search_timeout: Deadline for :meth:`find` calls that scan a
            collection (searches); defaults to *timeout*.
    """

    def __init__(
        self,
        database: Database,
        *,
        timeout: float,
        search_timeout: float | None = None,
    ) -> None:
        self.database = database
        self.timeout = timeout
        self.search_timeout = search_timeout or timeout

    @classmethod
    def from_uri(
        cls,
        uri: str,
        database_name: str,
        *,
        timeout: float,
        search_timeout: float | None = None,
    ) -> DocumentStore:
        """
        Build a store on a lazily connecting client.

        ``connect=False`` defers the first network round-trip until the first
        operation so that process start-up never blocks on the document
        store.
        """
        timeout_ms = int(timeout * 1000)
        client: MongoClient = MongoClient(
            uri,
            connect=False,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            tz_aware=True,
        )
        return cls(client[database_name], timeout=timeout, search_timeout=search_timeout)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_one(self, collection: str, document: dict) -> object:
        with pymongo.timeout(self.timeout):
            result = self.database[collection].insert_one(bson_safe(document))
        return result.inserted_id

    def insert_many(self, collection: str, documents: list[dict]) -> list:
        with pymongo.timeout(self.timeout):
            result = self.database[collection].insert_many(
                [bson_safe(doc) for doc in documents]
            )
        return list(result.inserted_ids)

    def update_one(self, collection: str, query: dict, changes: dict) -> int:
        with pymongo.timeout(self.timeout):
            result = self.database[collection].update_one(query, {"$set": bson_safe(changes)})
        return result.matched_count

    def delete_one(self, collection: str, query: dict) -> int:
        with pymongo.timeout(self.timeout):
            result = self.database[collection].delete_one(query)
        return result.deleted_count

    def delete_many(self, collection: str, query: dict) -> int:
        with pymongo.timeout(self.timeout):
            result = self.database[collection].delete_many(query)
        return result.deleted_count

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_one(self, collection: str, query: dict) -> dict | None:
        with pymongo.timeout(self.timeout):
            return self.database[collection].find_one(query)

    def find(
        self,
        collection: str,
        query: dict,
        *,
        sort: list[tuple[str, int]] | None = None,
    ) -> list[dict]:
        with pymongo.timeout(self.search_timeout):
            cursor = self.database[collection].find(query)
            if sort:
                cursor = cursor.sort(sort)
            return list(cursor)

    def ping(self) -> None:
        with pymongo.timeout(self.timeout):
            self.database.client.admin.command("ping")
