"""
Error taxonomy for the detection feed.

Only SubmissionError is meant to reach the operator. The others are caught
where they happen and turned into a state change (reconnect, dropped
message, placeholder image).
"""


class DetectionFeedError(Exception):
    """Base class for all detection feed errors."""


class TransportError(DetectionFeedError):
    """Stream transport failed or could not be opened. Recoverable via reconnect."""


class ParseError(DetectionFeedError):
    """A stream message was not a valid JSON envelope. Dropped silently."""


class ResolutionError(DetectionFeedError):
    """Asset URL lookup failed. Triggers the static fallback."""


class LoadError(DetectionFeedError):
    """A resolved asset URL could not be fetched after retries."""

    def __init__(self, url: str, attempts: int, message: str | None = None):
        self.url = url
        self.attempts = attempts
        super().__init__(message or f"Failed to load {url} after {attempts} attempt(s)")


class SubmissionError(DetectionFeedError):
    """A review action was rejected or could not be sent. Not retried."""

    def __init__(self, detection_id, action: str, message: str | None = None):
        self.detection_id = detection_id
        self.action = action
        super().__init__(message or f"Failed to {action} detection {detection_id}")
