"""Scheduling operations - the imperative shell around the pure core.

Each operation validates and conflict-checks locally before any write reaches
the store. Store errors propagate unmodified and nothing is retried. The service
keeps no cache: after a successful write, callers re-query get_calendar_events
for any window they display.
"""

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable

from .config import Config
from .core import lifecycle
from .core.calendar import CalendarEvent, EventType, project_calendar
from .core.conflicts import Blocker, ensure_no_conflict, find_conflicts
from .core.errors import NotFoundError, ValidationError
from .core.models import (
    Appointment,
    AppointmentStatus,
    AppointmentUpdate,
    BlockedSlot,
    CreateAppointmentData,
    CreateBlockedSlotData,
    FinancialRecord,
    OccurrenceKey,
    Service,
    ServiceData,
    validate_appointment_fields,
    validate_blocked_slot,
    validate_interval,
    validate_series_rule,
    validate_service,
)
from .core.recurrence import expand_template, series_starts
from .ports import AppointmentRepository, BlockedSlotRepository, ServiceRepository

logger = logging.getLogger(__name__)

# Days of a new template checked for conflicts; covers one full daily/weekly cycle.
TEMPLATE_CONFLICT_HORIZON = timedelta(days=7)


def _new_id() -> str:
    return str(uuid.uuid4())


class SchedulingService:
    """
    Appointment, blocked-slot and service operations over injected repositories.

    Every read-check-write on appointments and blocked slots runs under one lock,
    so writers sharing this instance cannot both pass a conflict check, and a
    status change or delete cannot be overwritten by a concurrent edit.
    Deployments with several processes need the store itself to be atomic.
    """

    def __init__(
        self,
        appointments: AppointmentRepository,
        blocked_slots: BlockedSlotRepository,
        services: ServiceRepository,
        config: Config | None = None,
    ):
        self.appointments = appointments
        self.blocked_slots = blocked_slots
        self.services = services
        self.config = config or Config()
        self._write_lock = threading.Lock()

    @classmethod
    def from_store(cls, store, config: Config | None = None) -> "SchedulingService":
        """Build from any object exposing appointments/blocked_slots/services repositories."""
        return cls(store.appointments, store.blocked_slots, store.services, config)

    # ============== Queries ==============

    def get_calendar_events(
        self,
        start_date: datetime,
        end_date: datetime,
        contact_id: str | None = None,
        types: Iterable[EventType] | None = None,
        statuses: Iterable[AppointmentStatus] | None = None,
        service_id: str | None = None,
        now: datetime | None = None,
    ) -> list[CalendarEvent]:
        """Ordered calendar feed for [start_date, end_date)."""
        wanted = {EventType(t) for t in types} if types else set(EventType)

        appointments = []
        if EventType.APPOINTMENT in wanted:
            appointments = self.appointments.list_between(start_date, end_date, contact_id)
        blocked = self.blocked_slots.list_all() if EventType.BLOCKED in wanted else []
        services = {s.id: s for s in self.services.list_all()}

        return project_calendar(
            start_date,
            end_date,
            appointments,
            blocked,
            services=services,
            statuses=statuses,
            service_id=service_id,
            types=wanted,
            now=now,
            appointment_color=self.config.appointment_color,
            blocked_color=self.config.blocked_color,
        )

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        return appointment

    def get_services(self, active_only: bool = False) -> list[Service]:
        services = self.services.list_all()
        if active_only:
            services = [s for s in services if s.is_active]
        return sorted(services, key=lambda s: s.name.lower())

    def check_availability(
        self,
        start: datetime,
        end: datetime,
        exclude_id: str | None = None,
    ) -> list[Blocker]:
        """
        Blockers for [start, end); an empty list means the slot is free.

        Raises:
            ValidationError: missing, naive or inverted interval
        """
        validate_interval(start, end)
        return find_conflicts(
            start,
            end,
            self.appointments.list_between(start, end),
            self.blocked_slots.list_all(),
            exclude_id,
        )

    def _ensure_free(self, start: datetime, end: datetime, exclude_id: str | None = None) -> None:
        ensure_no_conflict(
            start,
            end,
            self.appointments.list_between(start, end),
            self.blocked_slots.list_all(),
            exclude_id,
        )

    # ============== Appointments ==============

    def _resolve_service(self, service_id: str | None) -> Service | None:
        if not service_id:
            return None
        service = self.services.get(service_id)
        if service is None:
            raise ValidationError([f"unknown service_id: {service_id}"])
        return service

    def create_appointment(self, data: CreateAppointmentData) -> Appointment:
        """
        Book an appointment in status scheduled.

        End time and price default from the service when omitted. A series rule
        also books follow-ups; follow-ups that would conflict are skipped.

        Raises:
            ValidationError: malformed payload
            ConflictError: the (first) interval overlaps a blocker
        """
        service = self._resolve_service(data.service_id)

        end_time = data.end_time
        if end_time is None and service is not None and data.start_time is not None:
            end_time = data.start_time + timedelta(minutes=service.default_duration_minutes)
        price = data.price_cents
        if price is None:
            price = service.default_price_cents if service else 0

        validate_appointment_fields(
            data.contact_id, data.title, data.start_time, end_time, price, data.notes
        )
        if data.series is not None:
            validate_series_rule(data.series, data.start_time)

        appointment = Appointment(
            id=_new_id(),
            contact_id=data.contact_id,
            service_id=data.service_id,
            title=data.title.strip(),
            start_time=data.start_time,
            end_time=end_time,
            price_cents=price,
            notes=data.notes or "",
            financial_record=[FinancialRecord(amount_cents=price)] if price > 0 else [],
        )

        with self._write_lock:
            self._ensure_free(appointment.start_time, appointment.end_time)
            created = self.appointments.add(appointment)
            logger.info(f"Appointment created: {created.id} for contact {created.contact_id}")

            if data.series is not None:
                self._book_series(created, data)

        return created

    def _book_series(self, parent: Appointment, data: CreateAppointmentData) -> None:
        duration = parent.end_time - parent.start_time
        booked = 0
        for start in series_starts(parent.start_time, data.series):
            end = start + duration
            if self.check_availability(start, end):
                logger.warning(f"Skipping series occurrence at {start.isoformat()}: slot unavailable")
                continue
            self.appointments.add(
                replace(
                    parent,
                    id=_new_id(),
                    start_time=start,
                    end_time=end,
                    financial_record=[FinancialRecord(amount_cents=parent.price_cents)]
                    if parent.price_cents > 0
                    else [],
                    recurring_parent_id=parent.id,
                )
            )
            booked += 1
        logger.info(f"Series for {parent.id}: {booked} follow-up appointments booked")

    def update_appointment(self, appointment_id: str, fields: AppointmentUpdate) -> Appointment:
        """
        Edit an appointment. Only legal while scheduled or confirmed.

        A status in the update goes through the lifecycle rules.

        Raises:
            NotFoundError, InvalidStateTransition, ValidationError, ConflictError
        """
        with self._write_lock:
            existing = self.get_appointment(appointment_id)
            lifecycle.ensure_editable(existing)
            if fields.service_id is not None:
                self._resolve_service(fields.service_id)

            updated = replace(
                existing,
                title=fields.title if fields.title is not None else existing.title,
                start_time=fields.start_time or existing.start_time,
                end_time=fields.end_time or existing.end_time,
                service_id=fields.service_id if fields.service_id is not None else existing.service_id,
                price_cents=fields.price_cents if fields.price_cents is not None else existing.price_cents,
                notes=fields.notes if fields.notes is not None else existing.notes,
            )
            validate_appointment_fields(
                updated.contact_id,
                updated.title,
                updated.start_time,
                updated.end_time,
                updated.price_cents,
                updated.notes,
            )

            if fields.price_cents is not None and fields.price_cents != existing.price_cents:
                updated = replace(updated, financial_record=_repriced(existing.financial_record, fields.price_cents))

            if fields.status is not None and fields.status != existing.status:
                updated = lifecycle.transition(updated, fields.status, fields.cancellation_reason)

            if fields.changes_time():
                self._ensure_free(updated.start_time, updated.end_time, exclude_id=appointment_id)

            saved = self.appointments.update(updated)

        logger.info(f"Appointment updated: {appointment_id}")
        return saved

    def update_appointment_status(
        self,
        appointment_id: str,
        target: AppointmentStatus,
        reason: str | None = None,
    ) -> Appointment:
        """
        Raises:
            NotFoundError, InvalidStateTransition
        """
        with self._write_lock:
            existing = self.get_appointment(appointment_id)
            updated = lifecycle.transition(existing, target, reason)
            saved = self.appointments.update(updated)
        logger.info(f"Appointment {appointment_id} status: {existing.status.value} -> {saved.status.value}")
        return saved

    def confirm(self, appointment_id: str) -> Appointment:
        return self.update_appointment_status(appointment_id, AppointmentStatus.CONFIRMED)

    def complete(self, appointment_id: str) -> Appointment:
        return self.update_appointment_status(appointment_id, AppointmentStatus.COMPLETED)

    def cancel(self, appointment_id: str, reason: str | None = None) -> Appointment:
        return self.update_appointment_status(appointment_id, AppointmentStatus.CANCELLED, reason)

    def mark_no_show(self, appointment_id: str) -> Appointment:
        return self.update_appointment_status(appointment_id, AppointmentStatus.NO_SHOW)

    def delete_appointment(self, appointment_id: str) -> None:
        """
        Raises:
            NotFoundError, InvalidStateTransition (completed appointments are kept)
        """
        with self._write_lock:
            existing = self.get_appointment(appointment_id)
            lifecycle.ensure_deletable(existing)
            self.appointments.delete(appointment_id)
        logger.info(f"Appointment deleted: {appointment_id}")

    # ============== Blocked slots ==============

    def create_blocked_slot(self, data: CreateBlockedSlotData) -> BlockedSlot:
        """
        Block a one-off interval, or store a recurring template.

        A template is checked against the occurrences it produces over its first
        week, starting on its anchor day.

        Raises:
            ValidationError, ConflictError
        """
        validate_blocked_slot(data)
        slot = BlockedSlot(
            id=_new_id(),
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason,
            is_recurring=data.is_recurring,
            recurring_pattern=data.recurring_pattern if data.is_recurring else None,
        )

        with self._write_lock:
            if slot.is_recurring:
                anchor = slot.start_time.replace(hour=0, minute=0, second=0, microsecond=0)
                for occ in expand_template(slot, anchor, anchor + TEMPLATE_CONFLICT_HORIZON):
                    self._ensure_free(occ.start, occ.end)
            else:
                self._ensure_free(slot.start_time, slot.end_time)
            created = self.blocked_slots.add(slot)

        logger.info(f"Blocked slot created: {created.id} (recurring={created.is_recurring})")
        return created

    def delete_blocked_slot(self, slot_id: str | OccurrenceKey) -> None:
        """
        Delete a slot or a whole recurring series.

        Given an occurrence key, the owning template is deleted: single occurrences
        cannot be removed on their own.

        Raises:
            NotFoundError
        """
        template_id = slot_id.template_id if isinstance(slot_id, OccurrenceKey) else slot_id
        with self._write_lock:
            if self.blocked_slots.get(template_id) is None:
                raise NotFoundError("Blocked slot", template_id)
            self.blocked_slots.delete(template_id)
        logger.info(f"Blocked slot deleted: {template_id}")

    # ============== Services ==============

    def create_service(self, data: ServiceData) -> Service:
        validate_service(data)
        service = Service(
            id=_new_id(),
            name=data.name.strip(),
            default_duration_minutes=data.default_duration_minutes,
            default_price_cents=data.default_price_cents,
            color=data.color,
            is_active=data.is_active,
        )
        created = self.services.add(service)
        logger.info(f"Service created: {created.id} ({created.name})")
        return created

    def update_service(self, service_id: str, data: ServiceData) -> Service:
        if self.services.get(service_id) is None:
            raise NotFoundError("Service", service_id)
        validate_service(data)
        service = Service(
            id=service_id,
            name=data.name.strip(),
            default_duration_minutes=data.default_duration_minutes,
            default_price_cents=data.default_price_cents,
            color=data.color,
            is_active=data.is_active,
        )
        return self.services.update(service)

    def delete_service(self, service_id: str) -> None:
        """Existing appointments keep their service_id; they just lose the service color."""
        if self.services.get(service_id) is None:
            raise NotFoundError("Service", service_id)
        self.services.delete(service_id)
        logger.info(f"Service deleted: {service_id}")


def _repriced(records: list[FinancialRecord], price_cents: int) -> list[FinancialRecord]:
    """Update the latest record's amount, or open a pending one for a new positive price."""
    if records:
        return records[:-1] + [replace(records[-1], amount_cents=price_cents)]
    if price_cents > 0:
        return [FinancialRecord(amount_cents=price_cents)]
    return []


def get_scheduler(config: Config) -> SchedulingService:
    """Resolve the configured store and wrap it in a SchedulingService."""
    from .adapters import HttpStore, JsonFileStore, MemoryStore

    match config.store:
        case "memory":
            store = MemoryStore()
        case "http":
            if not config.store_url:
                raise ValueError("STORE_URL not configured. Add it to agenda.conf")
            store = HttpStore(config.store_url, config.store_token)
        case _:
            store = JsonFileStore(config.data_dir)
    return SchedulingService.from_store(store, config)
