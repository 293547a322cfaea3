"""Odometer-check audit snapshot types."""

from dataclasses import dataclass, field
from typing import List, Optional

from .status import Status


@dataclass
class OdoCheckResult:
    """Audit-relevant slice of one MaintenanceStatus."""

    tag_id: str
    tag_name: str
    status: Status
    km_until_due: Optional[int] = None
    days_until_due: Optional[int] = None


@dataclass
class OdoCheckRecord:
    """Immutable snapshot of an odometer check."""

    user_id: str
    date: str
    kilometers: int
    results: List[OdoCheckResult] = field(default_factory=list)
    id: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def overdue_count(self) -> int:
        return sum(1 for r in self.results if r.status == Status.OVERDUE)
