"""
Twin Registry - In-memory lookup of caller-owned twin records.

The engine never persists twins; callers load them from their own store and
hand them over through a registry (or any mapping of id -> record).
"""

from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from ..errors import TwinNotFoundError
from .twin_state import DigitalTwin, TwinType

logger = logging.getLogger(__name__)

TwinRecord = Union[DigitalTwin, Dict[str, Any]]


class InMemoryTwinRegistry:
    """Registry of digital twins keyed by identity."""

    def __init__(self, twins: Optional[Iterable[TwinRecord]] = None):
        self._twins: Dict[str, DigitalTwin] = {}
        for twin in twins or []:
            self.register(twin)

    def register(self, twin: TwinRecord) -> DigitalTwin:
        """Register a twin, replacing any twin with the same id."""
        if not isinstance(twin, DigitalTwin):
            twin = DigitalTwin.from_record(twin)

        if twin.twin_id in self._twins:
            logger.info(f"Replacing twin {twin.twin_id}")
        self._twins[twin.twin_id] = twin
        return twin

    def get(self, twin_id: Any) -> Optional[DigitalTwin]:
        return self._twins.get(str(twin_id))

    def require(self, twin_id: Any) -> DigitalTwin:
        """Get a twin or raise TwinNotFoundError."""
        twin = self.get(twin_id)
        if twin is None:
            raise TwinNotFoundError(twin_id)
        return twin

    def remove(self, twin_id: Any) -> bool:
        return self._twins.pop(str(twin_id), None) is not None

    def list(self, twin_type: Optional[TwinType] = None) -> List[DigitalTwin]:
        twins = list(self._twins.values())
        if twin_type is not None:
            twins = [t for t in twins if t.twin_type == twin_type]
        return twins

    def __contains__(self, twin_id: Any) -> bool:
        return str(twin_id) in self._twins

    def __len__(self) -> int:
        return len(self._twins)
