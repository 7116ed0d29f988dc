"""Blocked slot repository interface."""

from typing import Protocol

from agenda.core.models import BlockedSlot


class BlockedSlotRepository(Protocol):
    """Interface for storing blocked slots and recurring templates."""

    def get(self, slot_id: str) -> BlockedSlot | None:
        """Fetch one slot or template. Returns None if not found."""
        ...

    def list_all(self) -> list[BlockedSlot]:
        """All one-off slots and templates."""
        ...

    def add(self, slot: BlockedSlot) -> BlockedSlot:
        """Insert a slot or template and return it as stored."""
        ...

    def delete(self, slot_id: str) -> None:
        """Remove a slot or template (and with it every occurrence)."""
        ...
