"""Document store library public API.

Provides the abstract collection interface, Mongo-style filter matching,
bulk operations with the shared bounded buffer, and the SQLAlchemy store.
"""

from fieldops.lib.store.base import BulkWriteResult, Document, DocumentCollection, DocumentStore
from fieldops.lib.store.bulk import BATCH_SIZE, BulkBuffer, BulkOperation, InsertOne, ReplaceOne, UpdateOne
from fieldops.lib.store.filters import matches
from fieldops.lib.store.sql import SqlCollection, SqlDocumentStore

__all__ = [
    "BATCH_SIZE",
    "BulkBuffer",
    "BulkOperation",
    "BulkWriteResult",
    "Document",
    "DocumentCollection",
    "DocumentStore",
    "InsertOne",
    "ReplaceOne",
    "SqlCollection",
    "SqlDocumentStore",
    "matches",
]
