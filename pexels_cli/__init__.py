"""
pexels-cli: fetch, deduplicate and organize stock videos from Pexels.
"""

__version__ = "1.0.0"
