"""Service catalog repository interface."""

from typing import Protocol

from agenda.core.models import Service


class ServiceRepository(Protocol):
    """Interface for storing bookable services."""

    def get(self, service_id: str) -> Service | None:
        ...

    def list_all(self) -> list[Service]:
        ...

    def add(self, service: Service) -> Service:
        ...

    def update(self, service: Service) -> Service:
        ...

    def delete(self, service_id: str) -> None:
        ...
