"""
Detection Feed

Real-time detection event pipeline for the food-waste monitoring dashboard.
Follows the backend's server-sent event stream, assembles multi-stage
detection updates into one record per detection, decides when to
interrupt the operator, and resolves detection images with caching and
fallback.

Package structure:
  stream/     - Event stream client (reconnect policy) and SSE transport
  processor/  - Event bus, per-detection merger, attention policy, router
  images/     - Resolution cache, image resolver, image loader
  api/        - Backend calls (review submission, image URL lookup)
  models/     - Detection record, processing status, review actions, errors
  config/     - Configuration loading and validation
  utils/      - Constants, event schema, display helpers, timers
"""

__version__ = "1.0.0"

# Models
from .models import (
    DetectionRecord,
    ProcessingStatus,
    ReviewAction,
    derive_status,
)

# Event processing
from .processor import (
    AttentionPolicy,
    AttentionWindow,
    DetectionStateMerger,
    EventBus,
    EventRouter,
)

# Images
from .images import ImageLoader, ImageResolver, ResolutionCache

# Stream
from .stream import ConnectionState, SSETransport, StreamClient

# Session
from .session import FeedSession

__all__ = [
    # Processor
    "AttentionPolicy",
    "AttentionWindow",
    # Stream
    "ConnectionState",
    # Models
    "DetectionRecord",
    "DetectionStateMerger",
    "EventBus",
    "EventRouter",
    "FeedSession",
    # Images
    "ImageLoader",
    "ImageResolver",
    "ProcessingStatus",
    "ResolutionCache",
    "ReviewAction",
    "SSETransport",
    "StreamClient",
    "derive_status",
]
