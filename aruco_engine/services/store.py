import threading
from typing import Iterable, Optional

from ..ip_types import Marker


class DetectionStore:
    """
    Latest detection result, keyed by marker id.

    Contents are replaced wholesale by ``replace``; nothing is merged across
    calls. A lock makes each replace/read atomic, so a reader sees either the
    previous pass or the new one, never a mix. Ids iterate in ascending order.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._markers: dict[int, Marker] = {}

    def replace(self, markers: Iterable[Marker]) -> None:
        fresh: dict[int, Marker] = {}
        for m in markers:
            fresh[m.marker_id] = m  # last write wins
        with self._lock:
            self._markers = fresh

    def ids(self) -> list[int]:
        with self._lock:
            return sorted(self._markers)

    def get(self, marker_id: int) -> Optional[Marker]:
        with self._lock:
            return self._markers.get(int(marker_id))

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._markers)

    def __contains__(self, marker_id) -> bool:
        return self.get(marker_id) is not None
