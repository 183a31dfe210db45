"""
Detection State Merger - one canonical record per detection id.

Stream events for a detection are partial: each carries the fields the
backend learned at that stage. apply() folds them into a single record;
derive_status() (see models.detection) reads how far it has progressed.

Events are delivered at least once and may be reordered. Merging is a
shallow overwrite, so re-applying an event is harmless and a late event
simply fills in whatever fields it carries.
"""

import logging
from typing import Any, Iterator

from ..models.detection import DetectionRecord, ProcessingStatus, derive_status

logger = logging.getLogger(__name__)


class DetectionStateMerger:
    """
    Keyed store of merged DetectionRecords.

    Callers must reject events without ``data["id"]`` before apply();
    the merger assumes well-formed input and never raises on it.
    """

    def __init__(self):
        self._records: dict[Any, DetectionRecord] = {}

    def apply(self, event: dict[str, Any]) -> DetectionRecord:
        """
        Merge one event into the record for its detection id.

        Args:
            event: Envelope with ``data`` containing at least ``id``

        Returns:
            The merged record (the stored instance)
        """
        data = event["data"]
        detection_id = data["id"]

        record = self._records.get(detection_id)
        if record is None:
            record = DetectionRecord.from_dict(data)
            self._records[detection_id] = record
            logger.debug(f"Tracking detection {detection_id}")
        else:
            record.update(data)

        return record

    @staticmethod
    def derive_status(record: DetectionRecord | None) -> ProcessingStatus:
        return derive_status(record)

    def get(self, detection_id: Any) -> DetectionRecord | None:
        return self._records.get(detection_id)

    def status_of(self, detection_id: Any) -> ProcessingStatus:
        return derive_status(self._records.get(detection_id))

    def discard(self, detection_id: Any) -> bool:
        """Forget a detection (superseded or reviewed)."""
        removed = self._records.pop(detection_id, None) is not None
        if removed:
            logger.debug(f"Discarded detection {detection_id}")
        return removed

    def clear(self) -> None:
        """Drop every record (session end)."""
        self._records.clear()

    def __contains__(self, detection_id: Any) -> bool:
        return detection_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DetectionRecord]:
        return iter(list(self._records.values()))
