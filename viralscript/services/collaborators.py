"""
Boundary collaborators - persistence and daily usage counting.

The studio core depends only on these Protocols. The in-memory
implementations follow the same rules as the product's local history store
and are used by tests and by embedders that have no storage of their own.
"""

import logging
import threading
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

from .models import AnalysisResult, PersonaProfile, SavedScript, ScriptDocument

logger = logging.getLogger(__name__)


@runtime_checkable
class ScriptStore(Protocol):
    """Saved-script history."""

    def save(
        self,
        document: ScriptDocument,
        persona: PersonaProfile,
        analysis: Optional[AnalysisResult] = None,
    ) -> SavedScript: ...

    def list(self) -> List[SavedScript]: ...

    def delete(self, script_id: str) -> None: ...


@runtime_checkable
class UsageCounter(Protocol):
    """Per-day generation counter."""

    def increment(self) -> int: ...

    def get(self) -> int: ...


class InMemoryScriptStore:
    """
    Newest-first history held in process memory.

    Saving a document whose id is already stored updates that record in
    place; the previous analysis is kept unless a new one is given.
    """

    def __init__(self):
        self._records: List[SavedScript] = []
        self._lock = threading.Lock()

    def save(
        self,
        document: ScriptDocument,
        persona: PersonaProfile,
        analysis: Optional[AnalysisResult] = None,
    ) -> SavedScript:
        with self._lock:
            for i, existing in enumerate(self._records):
                if document.id and existing.id == document.id:
                    record = SavedScript(
                        **document.model_dump(exclude={"analysis"}),
                        analysis=analysis or existing.analysis,
                    )
                    self._records[i] = record
                    logger.debug(f"Updated saved script {record.id}")
                    return record

            data = document.model_dump(exclude={"analysis"})
            data.update(
                creator_id=document.creator_id or persona.id,
                creator_name=document.creator_name or persona.name,
                creator_style=document.creator_style or persona.style,
            )
            record = SavedScript(**data, analysis=analysis)
            if not record.id:
                raise ValueError("Cannot save a script document without an id")
            self._records.insert(0, record)
            logger.debug(f"Saved new script {record.id}")
            return record

    def list(self) -> List[SavedScript]:
        with self._lock:
            return list(self._records)

    def get(self, script_id: str) -> Optional[SavedScript]:
        with self._lock:
            return next((r for r in self._records if r.id == script_id), None)

    def delete(self, script_id: str) -> None:
        with self._lock:
            self._records = [r for r in self._records if r.id != script_id]


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class InMemoryUsageCounter:
    """Daily counter that resets when the (UTC) date changes."""

    def __init__(self, today: Callable[[], date] = _utc_today):
        """
        Args:
            today: Clock returning the current date (injectable for tests)
        """
        self._today = today
        self._counts: Dict[date, int] = {}
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            day = self._today()
            self._counts = {day: self._counts.get(day, 0) + 1}
            return self._counts[day]

    def get(self) -> int:
        with self._lock:
            return self._counts.get(self._today(), 0)
