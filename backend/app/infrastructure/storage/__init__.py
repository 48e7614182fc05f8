"""
  Blob storage infrastructure.
  Callers import the store and its result types from here:
     from app.infrastructure.storage import DatabaseBlobStore, BlobNotFoundError
"""
from .db_blob_store import (
    BlobNotFoundError,
    DatabaseBlobStore,
    PutResult,
    StoredObject,
    compute_checksum,
)

__all__ = ["DatabaseBlobStore", "BlobNotFoundError", "PutResult", "StoredObject", "compute_checksum"]
