"""MaintenanceRecord class for logged maintenance events."""
from datetime import datetime
from typing import Iterable, List, Optional

from .calculations import parse_instant


class MaintenanceRecord:
    """A record of maintenance performed at a given odometer reading."""

    def __init__(
            self,
            user_id: str,
            date: str,
            kilometers: int,
            tag_ids: Optional[Iterable[str]] = None,
            photo: Optional[str] = None,
            notes: Optional[str] = None,
            id: Optional[str] = None,
            created_at: Optional[str] = None,
            updated_at: Optional[str] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.date = date
        self.kilometers = kilometers
        self.tag_ids: List[str] = list(tag_ids or [])
        self.photo = photo
        self.notes = notes
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def performed_at(self) -> datetime:
        """Instant the maintenance was performed (timezone-aware)."""
        return parse_instant(self.date)

    def has_tag(self, tag_id: str) -> bool:
        return tag_id in self.tag_ids

    def __repr__(self) -> str:
        return (
            f"MaintenanceRecord(id={self.id!r}, date={self.date!r}, "
            f"kilometers={self.kilometers!r}, tag_ids={self.tag_ids!r})"
        )
