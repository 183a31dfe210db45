"""
Review actions the operator can take on a finished detection.
"""

from enum import Enum


class ReviewStatus(str, Enum):
    DETECTION_OK = "DETECTION_OK"
    NEED_REVISION = "NEED_REVISION"
    DETECTION_REJECTED = "DETECTION_REJECTED"


class ReviewAction(str, Enum):
    """Operator action on the attention window (keyboard A / R / C)."""

    ACCEPT = "accept"
    REVIEW = "review"
    CANCEL = "cancel"

    @property
    def review_status(self) -> ReviewStatus:
        return _ACTION_STATUS[self]

    @property
    def review_notes(self) -> str:
        return _ACTION_NOTES[self]

    @property
    def past_tense(self) -> str:
        """Wording used in success notices ("approved", "marked for review")."""
        return _ACTION_PAST[self]

    @property
    def verb(self) -> str:
        """Wording used in failure notices ("approve", "mark for review")."""
        return _ACTION_VERB[self]

    def to_payload(self) -> dict[str, str]:
        """Request body for the review submission call."""
        return {
            "review_status": self.review_status.value,
            "review_notes": self.review_notes,
        }


_ACTION_STATUS = {
    ReviewAction.ACCEPT: ReviewStatus.DETECTION_OK,
    ReviewAction.REVIEW: ReviewStatus.NEED_REVISION,
    ReviewAction.CANCEL: ReviewStatus.DETECTION_REJECTED,
}

_ACTION_NOTES = {
    ReviewAction.ACCEPT: "Detection automatically approved via SSE popup",
    ReviewAction.REVIEW: "Detection marked for review via SSE popup",
    ReviewAction.CANCEL: "Detection rejected via SSE popup",
}

_ACTION_PAST = {
    ReviewAction.ACCEPT: "approved",
    ReviewAction.REVIEW: "marked for review",
    ReviewAction.CANCEL: "cancelled",
}

_ACTION_VERB = {
    ReviewAction.ACCEPT: "approve",
    ReviewAction.REVIEW: "mark for review",
    ReviewAction.CANCEL: "cancel",
}
