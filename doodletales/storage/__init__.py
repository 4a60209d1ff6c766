"""
Storage collaborators used to persist generated media.
"""

from .blob_store import BlobStore, LocalBlobStore, store_or_inline

__all__ = ["BlobStore", "LocalBlobStore", "store_or_inline"]
