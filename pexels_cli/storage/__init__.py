"""
Storage Layer.

This package handles all data persistence: configuration files, the metadata
ledger, the usage log, the in-memory response cache and the filesystem
primitives used to place downloaded files.
"""

from .cache import TTLCache
from .config_manager import ConfigManager
from .filesystem import FileStore, LocalFileStore
from .ledger import MetadataLedger
from .usage import UsageTracker

__all__ = [
    "ConfigManager",
    "FileStore",
    "LocalFileStore",
    "MetadataLedger",
    "TTLCache",
    "UsageTracker",
]
