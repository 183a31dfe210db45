"""
Consolidated data models for the detection feed.
"""

from .detection import DetectionRecord, ProcessingStatus, derive_status
from .errors import (
    DetectionFeedError,
    LoadError,
    ParseError,
    ResolutionError,
    SubmissionError,
    TransportError,
)
from .review import ReviewAction, ReviewStatus

__all__ = [
    # Detection models
    "DetectionRecord",
    "ProcessingStatus",
    "derive_status",
    # Review
    "ReviewAction",
    "ReviewStatus",
    # Errors
    "DetectionFeedError",
    "LoadError",
    "ParseError",
    "ResolutionError",
    "SubmissionError",
    "TransportError",
]
