"""
Pydantic models for ledger records, operation options and operation results.

Every public operation returns one of these models so front ends can
serialize results with ``model_dump(mode="json")``.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from .media import Uploader

Quality = Literal["hd", "sd", "mobile"]
SortKey = Literal["date", "size", "duration", "name"]
Status = Literal["success", "failed"]


class PexelsMetadata(BaseModel):
    """Provider attributes captured at download time."""

    width: int = 0
    height: int = 0
    duration: Union[int, float] = 0
    url: str = ""
    tags: list[str] = Field(default_factory=list)
    user: Uploader = Field(default_factory=Uploader)


class AssetRecord(BaseModel):
    """One entry in the metadata ledger. Field order is the on-disk order."""

    id: int
    filename: str
    local_path: str
    file_size: int
    download_date: str
    category: Optional[str] = None
    pexels_metadata: PexelsMetadata = Field(default_factory=PexelsMetadata)


class RenditionMetadata(BaseModel):
    width: int = 0
    height: int = 0
    duration: Union[int, float] = 0
    fps: float = 0
    codec: str = ""
    bitrate: str = ""


class FetchResult(BaseModel):
    """Outcome of fetching a single video."""

    video_id: int
    local_path: str = ""
    file_size: int = 0
    download_time: float = 0.0
    metadata: RenditionMetadata = Field(default_factory=RenditionMetadata)
    status: Status
    error: Optional[str] = None


class FetchOptions(BaseModel):
    quality: Quality = "hd"
    filename: Optional[str] = None
    category: Optional[str] = None


class FilterCriteria(BaseModel):
    min_width: Optional[int] = None
    min_height: Optional[int] = None
    preferred_fps: Optional[float] = None
    exclude_ids: list[int] = Field(default_factory=list)


class BatchFetchOptions(BaseModel):
    max_videos: int = Field(10, ge=1)
    quality: Quality = "hd"
    category: Optional[str] = None
    filter_criteria: Optional[FilterCriteria] = None


class ListOptions(BaseModel):
    category: Optional[str] = None
    sort_by: SortKey = "date"
    limit: int = Field(50, ge=1)


class OrganizeOptions(BaseModel):
    organization_scheme: str = "emotion"
    custom_rules: Optional[dict[str, list[str]]] = None


class OrganizeResult(BaseModel):
    """Outcome of a categorization pass over the ledger."""

    status: Status = "success"
    moved_files: int = 0
    categories_created: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
