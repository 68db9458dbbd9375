"""
Pexels API Layer.

This package handles all communication with the Pexels REST API.
"""

from .client import PexelsAPIClient
from .rate_limiter import RateLimitTracker

__all__ = ["PexelsAPIClient", "RateLimitTracker"]
