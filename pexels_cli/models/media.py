"""
Pydantic models for the video shapes returned by the Pexels API.
"""

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Uploader(BaseModel):
    """The Pexels user who published a video."""

    id: int = 0
    name: str = ""
    url: str = ""


class Rendition(BaseModel):
    """One downloadable file of a video at a given quality and resolution."""

    model_config = ConfigDict(extra="ignore")

    id: int = 0
    quality: Optional[str] = None
    file_type: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[float] = None
    link: str


class Video(BaseModel):
    """A single video entry in the Pexels catalog."""

    model_config = ConfigDict(extra="ignore")

    id: int
    width: int = 0
    height: int = 0
    duration: Union[int, float] = 0
    url: str = ""
    image: str = ""
    avg_color: Optional[str] = None
    user: Uploader = Field(default_factory=Uploader)
    video_files: list[Rendition] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class SearchParams(BaseModel):
    """Query parameters for the video search endpoint."""

    query: str
    orientation: Optional[Literal["landscape", "portrait", "square"]] = None
    size: Optional[Literal["large", "medium", "small"]] = None
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    per_page: int = Field(15, ge=1, le=80)
    page: int = Field(1, ge=1)

    def to_query(self) -> dict[str, str]:
        """Builds the query-string mapping, omitting unset filters."""
        return {
            key: str(value)
            for key, value in self.model_dump().items()
            if value is not None
        }


class RateLimitInfo(BaseModel):
    remaining: int
    reset_in: int


class SearchPage(BaseModel):
    """One page of search results plus the current quota snapshot."""

    total_results: int = 0
    page: int = 1
    per_page: int = 15
    videos: list[Video] = Field(default_factory=list)
    rate_limit: RateLimitInfo
