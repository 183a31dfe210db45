"""
Backend API access (review submission, image URL lookup, static URLs).
"""

from .client import API_PREFIX, ApiClient

__all__ = [
    "API_PREFIX",
    "ApiClient",
]
