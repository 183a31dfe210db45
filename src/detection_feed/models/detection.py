"""
Detection data models - the progressively assembled detection record and
its processing status.
"""

import copy
import logging
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from ..utils.constants import ANALYZING_SENTINEL

logger = logging.getLogger(__name__)


class ProcessingStatus(str, Enum):
    """
    How far the backend has progressed on a detection.

    Normal progression is ANALYZING -> FOOD_CLASSIFIED ->
    INITIAL_OCR_COMPLETE -> COMPLETE. AI_ERROR only ever comes from the
    backend and is never derived from field presence.
    """

    ANALYZING = "analyzing"
    FOOD_CLASSIFIED = "food_classified"
    INITIAL_OCR_COMPLETE = "initial_ocr_complete"
    COMPLETE = "complete"
    AI_ERROR = "ai_error"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        """True once the operator can act on the detection."""
        return self in (ProcessingStatus.COMPLETE, ProcessingStatus.AI_ERROR)


@dataclass
class DetectionRecord:
    """
    Canonical state for one detection id.

    Every field except ``id`` is optional because stream events only carry
    what the backend learned at that stage. Fields the backend sends that
    are not declared here are kept in ``extra`` so nothing is dropped.

    Attributes:
        id: Detection id assigned by the backend
        status: Explicit processing status, when the backend sends one
        category: Food category (PROTEIN, NO_WASTE, ...)
        description: Classifier description, "Analyzing..." while pending
        confidence: Classifier confidence (0-1)
        initial_weight: Scale reading before disposal (grams)
        final_weight: Scale reading after disposal (grams)
        net_weight: Waste weight after tray subtraction (grams)
        tray_weight: Weight of the detected tray (grams)
        initial_ocr_raw_text: Raw OCR text of the initial scale reading
        final_ocr_raw_text: Raw OCR text of the final scale reading
        tray_id: Detected tray reference
        camera_id: Capturing camera reference
        image_path: Static path of the main capture
        motion_data: Motion metadata from the capture trigger
        error_message: Backend error text for AI_ERROR detections
        extra: Any other field the backend sent
    """

    id: Any
    status: str | None = None
    category: str | None = None
    description: str | None = None
    confidence: float | None = None
    initial_weight: float | None = None
    final_weight: float | None = None
    net_weight: float | None = None
    tray_weight: float | None = None
    initial_ocr_raw_text: str | None = None
    final_ocr_raw_text: str | None = None
    tray_id: int | None = None
    camera_id: int | None = None
    image_path: str | None = None
    motion_data: dict | None = None
    error_message: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls) if f.name != "extra"}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DetectionRecord":
        """Build a record from an event payload. ``data`` must contain ``id``."""
        record = cls(id=data["id"])
        record.update(data)
        return record

    def update(self, data: dict[str, Any]) -> None:
        """
        Shallow-merge ``data`` into this record.

        Keys present in ``data`` overwrite; keys absent keep their value.
        Nested values are deep-copied so later mutation of the event payload
        cannot reach into the record.
        """
        known = self.field_names()
        for key, value in data.items():
            value = copy.deepcopy(value)
            if key in known:
                setattr(self, key, value)
            else:
                self.extra[key] = value

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict, omitting unset fields."""
        result: dict[str, Any] = {}
        for name in self.field_names():
            value = getattr(self, name)
            if value is not None:
                result[name] = copy.deepcopy(value)
        for key, value in self.extra.items():
            if key not in result:
                result[key] = copy.deepcopy(value)
        return result

    def copy(self) -> "DetectionRecord":
        return copy.deepcopy(self)


def derive_status(record: DetectionRecord | None) -> ProcessingStatus:
    """
    Work out how far a detection has progressed.

    An explicit ``status`` always wins. Otherwise the checks run in a fixed
    order and each one assumes the previous ones failed, so the order
    matters. Records assembled from reordered events are judged on whatever
    fields are present, which can skip intermediate stages.

    Args:
        record: Merged detection record (None yields UNKNOWN)

    Returns:
        The processing status
    """
    if record is None:
        return ProcessingStatus.UNKNOWN

    if record.status:
        try:
            return ProcessingStatus(record.status)
        except ValueError:
            logger.debug(f"Detection {record.id} has unrecognized status '{record.status}'")
            return ProcessingStatus.UNKNOWN

    if not record.category or record.description == ANALYZING_SENTINEL:
        return ProcessingStatus.ANALYZING
    if record.initial_weight is None:
        return ProcessingStatus.FOOD_CLASSIFIED
    if record.final_weight is None:
        return ProcessingStatus.INITIAL_OCR_COMPLETE
    return ProcessingStatus.COMPLETE
