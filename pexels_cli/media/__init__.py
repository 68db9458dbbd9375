"""
Media Transfer Layer.

This package is responsible for streaming video files from the Pexels CDN
to local storage.
"""

from .downloader import Downloader, close_connection_pool

__all__ = ["Downloader", "close_connection_pool"]
