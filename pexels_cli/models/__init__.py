"""
Data Models Layer.

This package contains Pydantic models that define the core data structures
used throughout the application: configuration, provider payloads, ledger
records and operation results.
"""

from .config import AppConfig
from .media import Rendition, SearchPage, SearchParams, Uploader, Video
from .records import (
    AssetRecord,
    BatchFetchOptions,
    FetchOptions,
    FetchResult,
    FilterCriteria,
    ListOptions,
    OrganizeOptions,
    OrganizeResult,
    PexelsMetadata,
    RenditionMetadata,
)

__all__ = [
    "AppConfig",
    "AssetRecord",
    "BatchFetchOptions",
    "FetchOptions",
    "FetchResult",
    "FilterCriteria",
    "ListOptions",
    "OrganizeOptions",
    "OrganizeResult",
    "PexelsMetadata",
    "Rendition",
    "RenditionMetadata",
    "SearchPage",
    "SearchParams",
    "Uploader",
    "Video",
]
