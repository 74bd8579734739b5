from fedsync_import.ingestion.store.base import ContentStore, Record
from fedsync_import.ingestion.store.memory import InMemoryContentStore
from fedsync_import.ingestion.store.rest import RestContentStore, RestStoreConfig

__all__ = [
    "ContentStore",
    "InMemoryContentStore",
    "Record",
    "RestContentStore",
    "RestStoreConfig",
]
