"""
Image resolution - cache, resolver and loader for detection images.
"""

from .cache import CacheEntry, ResolutionCache, cache_key
from .loader import ImageLoader
from .resolver import ASSET_KINDS, UNAVAILABLE, ImageResolver, Resolution

__all__ = [
    "ASSET_KINDS",
    "CacheEntry",
    "ImageLoader",
    "ImageResolver",
    "Resolution",
    "ResolutionCache",
    "UNAVAILABLE",
    "cache_key",
]
