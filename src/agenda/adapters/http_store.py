"""HTTP storage adapter - REST client for a remote booking store."""

import logging
from datetime import datetime

import requests

from agenda.core.errors import NotFoundError
from agenda.core.models import Appointment, BlockedSlot, Service

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class HttpClient:
    """
    Thin authenticated JSON client.

    No business logic - just I/O. Transport errors (connection failures, 5xx)
    propagate unmodified as requests exceptions.
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    @staticmethod
    def _unwrap(payload):
        """Accept both bare payloads and {"success": ..., "data": ...} envelopes."""
        if isinstance(payload, dict) and "data" in payload:
            return payload["data"]
        return payload

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        resp = self._session.request(
            method,
            f"{self.base_url}{path}",
            headers=self._headers(),
            timeout=self.timeout,
            **kwargs,
        )
        logger.debug(f"{method} {path} -> {resp.status_code}")
        return resp

    def get_json(self, path: str, params: dict | None = None):
        resp = self.request("GET", path, params=params)
        resp.raise_for_status()
        return self._unwrap(resp.json())

    def get_optional(self, path: str):
        """GET returning None on 404."""
        resp = self.request("GET", path)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return self._unwrap(resp.json())

    def send_json(self, method: str, path: str, body: dict):
        resp = self.request(method, path, json=body)
        resp.raise_for_status()
        return self._unwrap(resp.json())

    def delete(self, path: str, kind: str, entity_id: str) -> None:
        resp = self.request("DELETE", path)
        if resp.status_code == 404:
            raise NotFoundError(kind, entity_id)
        resp.raise_for_status()


class _HttpResource:
    """CRUD over one REST collection."""

    model = None
    path = ""
    kind = ""

    def __init__(self, client: HttpClient):
        self.client = client

    def get(self, entity_id: str):
        data = self.client.get_optional(f"{self.path}/{entity_id}")
        return self.model.from_dict(data) if data else None

    def list_all(self) -> list:
        return [self.model.from_dict(row) for row in self.client.get_json(self.path)]

    def add(self, entity):
        return self.model.from_dict(self.client.send_json("POST", self.path, entity.to_dict()))

    def update(self, entity):
        data = self.client.send_json("PUT", f"{self.path}/{entity.id}", entity.to_dict())
        return self.model.from_dict(data)

    def delete(self, entity_id: str) -> None:
        self.client.delete(f"{self.path}/{entity_id}", self.kind, entity_id)


class HttpAppointmentRepository(_HttpResource):
    """Implements AppointmentRepository protocol."""

    model = Appointment
    path = "/appointments"
    kind = "Appointment"

    def list_between(
        self,
        start: datetime,
        end: datetime,
        contact_id: str | None = None,
    ) -> list[Appointment]:
        params = {"start": start.isoformat(), "end": end.isoformat()}
        if contact_id:
            params["contact_id"] = contact_id
        return [Appointment.from_dict(row) for row in self.client.get_json(self.path, params)]


class HttpBlockedSlotRepository(_HttpResource):
    """Implements BlockedSlotRepository protocol."""

    model = BlockedSlot
    path = "/blocked-slots"
    kind = "Blocked slot"


class HttpServiceRepository(_HttpResource):
    """Implements ServiceRepository protocol."""

    model = Service
    path = "/services"
    kind = "Service"


class HttpStore:
    """All three repositories backed by one REST endpoint."""

    def __init__(self, base_url: str, token: str = "", session: requests.Session | None = None):
        self.client = HttpClient(base_url, token, session)
        self.appointments = HttpAppointmentRepository(self.client)
        self.blocked_slots = HttpBlockedSlotRepository(self.client)
        self.services = HttpServiceRepository(self.client)
