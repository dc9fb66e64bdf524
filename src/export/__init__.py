"""
Record export to blob storage.
"""

from .blob_store import BlobStore, LocalBlobStore, S3BlobStore
from .exporter import EXPORT_CONTENT_TYPE, EXPORT_PREFIX, Exporter, export_key

__all__ = [
    "BlobStore",
    "LocalBlobStore",
    "S3BlobStore",
    "Exporter",
    "export_key",
    "EXPORT_CONTENT_TYPE",
    "EXPORT_PREFIX",
]
