"""Scheduling error taxonomy."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .conflicts import Blocker


class SchedulingError(Exception):
    """Base class for errors raised by the scheduling core."""

    pass


class ValidationError(SchedulingError):
    """Raised when a payload is malformed. Carries one message per invalid field."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ConflictError(SchedulingError):
    """Raised when a candidate interval overlaps blocking entities."""

    def __init__(self, blockers: list["Blocker"]):
        self.blockers = list(blockers)
        described = ", ".join(b.describe() for b in self.blockers)
        super().__init__(f"Time slot unavailable, conflicts with: {described}")


class InvalidStateTransition(SchedulingError):
    """Raised when a lifecycle operation is not legal from the current status."""

    def __init__(self, current: str, attempted: str):
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot go from '{current}' to '{attempted}'")


class NotFoundError(SchedulingError):
    """Raised when an id does not resolve to a stored entity."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")
