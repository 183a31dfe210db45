"""
Constants used throughout the detection feed
"""

# Stream reconnection
MAX_RECONNECT_ATTEMPTS = 5
RECONNECT_DELAY = 5.0  # Seconds, multiplied by the attempt number
STREAM_PATH = "/api/v1/events/stream"
STREAM_READ_TIMEOUT = 90.0  # Seconds without bytes before the stream is dead

# Attention window
NO_WASTE_CATEGORY = "NO_WASTE"
NO_WASTE_DISMISS_MS = 1000
DEFAULT_DISMISS_MS = 10000
DEFAULT_REVIEW_CAPABILITIES = ("worker", "admin", "staff", "reviewer", "manager")

# Description the backend sends while the food classifier is still running
ANALYZING_SENTINEL = "Analyzing..."

# Image loading
MAX_LOAD_RETRIES = 2
LOAD_RETRY_DELAY = 1.0  # Fixed delay between load retries (seconds)
DEFAULT_RESOLVER_WORKERS = 4

# HTTP
DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_HTTP_TIMEOUT = 10  # seconds

# Environment variables
ENV_API_URL = "DETECTION_FEED_API_URL"
ENV_TOKEN = "DETECTION_FEED_TOKEN"
