"""Client-side gallery state: API client, local cache and the synchronizer."""
from portfolio.client.api import GalleryApiClient
from portfolio.client.cache import GalleryCache, JsonFileStore, MemoryStore
from portfolio.client.synchronizer import (
    GallerySynchronizer,
    ImageUpload,
    SyncState,
    create_synchronizer,
)

__all__ = [
    "GalleryApiClient",
    "GalleryCache",
    "GallerySynchronizer",
    "ImageUpload",
    "JsonFileStore",
    "MemoryStore",
    "SyncState",
    "create_synchronizer",
]
