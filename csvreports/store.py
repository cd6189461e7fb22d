"""
Report persistence seam.

The engine only talks to ``ReportStore``; the backing technology is the
deployment's choice. ``InMemoryReportStore`` serves tests and single-process
runs.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .errors import StoreFailure
from .log import get_logger
from .models import Report
from .visibility import visible_to

logger = get_logger(__name__)


class ReportStore(ABC):
    """Create / find / delete reports keyed by opaque string ids.

    Implementations raise ``StoreFailure`` for backend errors. Reads return
    reports in upload order.
    """

    @abstractmethod
    def create(self, report: Report) -> Report:
        ...

    @abstractmethod
    def find_by_id(self, report_id: str) -> Optional[Report]:
        ...

    @abstractmethod
    def find_by_owner(self, owner_id: str) -> List[Report]:
        ...

    @abstractmethod
    def find_public_or_owned(self, requester_id: Optional[str]) -> List[Report]:
        ...

    @abstractmethod
    def delete(self, report_id: str) -> bool:
        """Remove a report; False when the id was unknown."""


class InMemoryReportStore(ReportStore):
    def __init__(self) -> None:
        self._reports: Dict[str, Report] = {}
        self._lock = threading.Lock()

    def create(self, report: Report) -> Report:
        with self._lock:
            if report.id in self._reports:
                raise StoreFailure(f"duplicate report id {report.id}")
            self._reports[report.id] = report
        logger.debug("Stored report %s", report.id)
        return report

    def find_by_id(self, report_id: str) -> Optional[Report]:
        with self._lock:
            return self._reports.get(report_id)

    def find_by_owner(self, owner_id: str) -> List[Report]:
        with self._lock:
            return [r for r in self._reports.values() if r.owner_id == owner_id]

    def find_public_or_owned(self, requester_id: Optional[str]) -> List[Report]:
        predicate = visible_to(requester_id)
        with self._lock:
            return [r for r in self._reports.values() if predicate(r)]

    def delete(self, report_id: str) -> bool:
        with self._lock:
            return self._reports.pop(report_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._reports)
