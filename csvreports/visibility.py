"""Public/owner access predicate applied to every report read."""

from typing import Callable, Optional

from .models import Report


def can_read(report: Report, requester_id: Optional[str]) -> bool:
    if report.is_public:
        return True
    return requester_id is not None and requester_id == report.owner_id


def visible_to(requester_id: Optional[str]) -> Callable[[Report], bool]:
    """List-level form of ``can_read``: public reports plus the requester's own."""
    def predicate(report: Report) -> bool:
        return can_read(report, requester_id)
    return predicate
