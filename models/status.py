"""Status enum for maintenance urgency levels."""

from enum import Enum


class Status(Enum):
    """Maintenance status categories. Lower value = more urgent."""

    OVERDUE = 1
    DUE_SOON = 2
    OK = 3

    @property
    def label(self) -> str:
        """Wire/display label: 'overdue', 'due-soon' or 'ok'."""
        return self.name.lower().replace("_", "-")

    @classmethod
    def from_label(cls, label: str) -> "Status":
        """Parse a wire label back into a Status."""
        try:
            return cls[label.upper().replace("-", "_")]
        except KeyError:
            raise ValueError(f"Unknown status label: {label!r}") from None
