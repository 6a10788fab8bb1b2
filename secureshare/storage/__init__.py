from secureshare.storage.base import SlotStorage
from secureshare.storage.blob_store import BlobStore
from secureshare.storage.sqlite_store import SqliteSlotStorage

__all__ = ["SlotStorage", "BlobStore", "SqliteSlotStorage"]
