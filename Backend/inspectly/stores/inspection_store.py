import threading
from typing import List, Optional

from inspectly.schemas.inspection import Inspection


class InspectionStore:
    """Local working set of inspections. No fetch and no realtime feed."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._inspections: List[Inspection] = []

    @property
    def inspections(self) -> List[Inspection]:
        with self._lock:
            return list(self._inspections)

    def get(self, inspection_id: str) -> Optional[Inspection]:
        with self._lock:
            return next((i for i in self._inspections if i.id == inspection_id), None)

    def add_inspection(self, inspection: Inspection) -> None:
        with self._lock:
            self._inspections.append(inspection)

    def update_inspection(self, inspection_id: str, inspection: Inspection) -> None:
        with self._lock:
            self._inspections = [
                inspection if existing.id == inspection_id else existing
                for existing in self._inspections
            ]

    def delete_inspection(self, inspection_id: str) -> None:
        with self._lock:
            self._inspections = [i for i in self._inspections if i.id != inspection_id]
