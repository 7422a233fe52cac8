"""
Storage adapters for ADVDESK.

Provides the document store, the blob store and tenant-scoped repositories.
"""

from advdesk.storage.documents import (
    DocumentStore,
    InMemoryDocumentStore,
    RedisDocumentStore,
    get_document_store,
)
from advdesk.storage.blobs import BlobStore, LocalBlobStore, get_blob_store
from advdesk.storage.repositories import Repository, get_repository

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "RedisDocumentStore",
    "get_document_store",
    "BlobStore",
    "LocalBlobStore",
    "get_blob_store",
    "Repository",
    "get_repository",
]
