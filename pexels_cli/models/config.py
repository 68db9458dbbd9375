"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Quality tiers accepted by the download commands, with display metadata
QUALITY_MAP = {
    "hd": {"name": "HD (720p and above)", "color": "cyan"},
    "sd": {"name": "SD (below 720p)", "color": "green"},
    "mobile": {"name": "Mobile", "color": "yellow"},
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def get_quality_info(quality: str) -> dict[str, str]:
    """Gets display information for a quality tier from the central map."""
    return QUALITY_MAP.get(quality, {"name": "Unknown", "color": "white"})


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    # API
    api_key: str = ""

    # Download Settings
    download_path: str = Field("./downloads", validate_default=True)
    max_concurrent_downloads: int = 3
    default_quality: str = "hd"
    transfer_timeout: float = 60.0

    # Cache Settings
    cache_duration: int = 3600
    cache_sweep_interval: int = 300

    # Behaviour
    track_usage: bool = True
    log_level: str = "INFO"

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Rejects keys with embedded whitespace, which Pexels never issues."""
        if any(ch.isspace() for ch in v):
            raise ValueError("API key must not contain whitespace.")
        return v

    @field_validator("max_concurrent_downloads")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent downloads."""
        if v < 1 or v > 32:
            raise ValueError("Max concurrent downloads must be between 1 and 32.")
        return v

    @field_validator("default_quality")
    @classmethod
    def validate_quality(cls, v: str) -> str:
        v = v.lower()
        if v not in QUALITY_MAP:
            raise ValueError("Quality must be one of 'hd', 'sd' or 'mobile'.")
        return v

    @field_validator("cache_duration", "cache_sweep_interval")
    @classmethod
    def validate_positive_seconds(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Cache timings must be positive numbers of seconds.")
        return v

    @field_validator("transfer_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Transfer timeout must be positive.")
        return v

    @field_validator("download_path")
    @classmethod
    def validate_download_path(cls, v: str) -> str:
        if not v:
            raise ValueError("Download path cannot be empty.")
        return str(Path(v).expanduser().resolve())

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of {', '.join(LOG_LEVELS)}.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
