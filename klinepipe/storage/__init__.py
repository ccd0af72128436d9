"""Content store package."""
from klinepipe.storage.base import ContentStore, kline_key
from klinepipe.storage.file_store import FileContentStore
from klinepipe.storage.sql_store import SqlContentStore

__all__ = ["ContentStore", "kline_key", "FileContentStore", "SqlContentStore"]
