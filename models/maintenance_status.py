"""MaintenanceStatus dataclass for calculated per-tag status."""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from .status import Status

if TYPE_CHECKING:
    from .maintenance_record import MaintenanceRecord
    from .tag_interval import TagInterval


@dataclass
class MaintenanceStatus:
    """Live evaluation result for one enabled tag interval."""

    tag: str
    interval: "TagInterval"
    status: Status
    km_since_last_maintenance: int
    days_since_last_maintenance: int
    last_maintenance: Optional["MaintenanceRecord"] = None
    km_until_due: Optional[int] = None
    days_until_due: Optional[int] = None

    @property
    def tag_id(self) -> Optional[str]:
        return self.interval.id

    @property
    def is_due(self) -> bool:
        return self.status in (Status.OVERDUE, Status.DUE_SOON)

    @property
    def km_progress(self) -> float:
        """Share of the distance interval used up, capped at 1.0."""
        if not self.interval.kilometers or self.last_maintenance is None:
            return 0.0
        return min(self.km_since_last_maintenance / self.interval.kilometers, 1.0)
