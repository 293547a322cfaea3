"""TagInterval class for per-tag maintenance recurrence rules."""
from typing import Optional


class TagInterval:
    """A named maintenance category with distance and/or time intervals."""

    def __init__(
            self,
            user_id: str,
            name: str,
            kilometers: Optional[int] = None,
            days: Optional[int] = None,
            enabled: bool = True,
            id: Optional[str] = None,
            created_at: Optional[str] = None,
            updated_at: Optional[str] = None,
    ):
        self.id = id
        self.user_id = user_id
        self.name = name
        self.kilometers = kilometers
        self.days = days
        self.enabled = enabled
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def is_evaluable(self) -> bool:
        """A tag with neither interval set is never due."""
        return bool(self.kilometers) or bool(self.days)

    @property
    def interval_label(self) -> str:
        parts = []
        if self.kilometers:
            parts.append(f"{self.kilometers:,} km")
        if self.days:
            parts.append(f"{self.days} d")
        return " / ".join(parts) if parts else "-"

    def __repr__(self) -> str:
        return (
            f"TagInterval(id={self.id!r}, name={self.name!r}, "
            f"kilometers={self.kilometers!r}, days={self.days!r}, enabled={self.enabled!r})"
        )
