"""Scheduling domain model - pure data types and shape validation, no I/O."""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from zoneinfo import ZoneInfo

from .errors import ValidationError

MIN_DURATION_MINUTES = 5
MAX_DURATION_MINUTES = 480
MAX_TITLE_LENGTH = 255
MAX_NOTES_LENGTH = 2000
MAX_REASON_LENGTH = 255

_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class RecurrenceType(str, Enum):
    """Repeat rule of a blocked-slot template."""

    DAILY = "daily"
    WEEKLY = "weekly"


class SeriesType(str, Enum):
    """Repeat rule of a persisted appointment series."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass
class Service:
    """A bookable service with booking defaults."""

    id: str
    name: str
    default_duration_minutes: int = 60
    default_price_cents: int = 0
    color: str = "#3b82f6"
    is_active: bool = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "default_duration_minutes": self.default_duration_minutes,
            "default_price_cents": self.default_price_cents,
            "color": self.color,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Service":
        return cls(
            id=data["id"],
            name=data["name"],
            default_duration_minutes=data.get("default_duration_minutes", 60),
            default_price_cents=data.get("default_price_cents", 0),
            color=data.get("color") or "#3b82f6",
            is_active=data.get("is_active", True),
        )


@dataclass
class FinancialRecord:
    """Payment tracking entry attached to an appointment."""

    amount_cents: int
    payment_status: PaymentStatus = PaymentStatus.PENDING

    def to_dict(self) -> dict:
        return {"amount_cents": self.amount_cents, "payment_status": self.payment_status.value}

    @classmethod
    def from_dict(cls, data: dict) -> "FinancialRecord":
        return cls(
            amount_cents=data.get("amount_cents", 0),
            payment_status=PaymentStatus(data.get("payment_status", "pending")),
        )


@dataclass
class Appointment:
    """A booking tied to a contact and optionally a service."""

    id: str
    contact_id: str
    title: str
    start_time: datetime
    end_time: datetime
    service_id: str | None = None
    price_cents: int = 0
    notes: str = ""
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    cancellation_reason: str | None = None
    financial_record: list[FinancialRecord] = field(default_factory=list)
    recurring_parent_id: str | None = None

    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() / 60)

    @property
    def is_active(self) -> bool:
        """Scheduled or confirmed - the statuses that still occupy time."""
        return self.status in (AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED)

    @property
    def has_pending_payment(self) -> bool:
        return any(r.payment_status == PaymentStatus.PENDING for r in self.financial_record)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "contact_id": self.contact_id,
            "service_id": self.service_id,
            "title": self.title,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "price_cents": self.price_cents,
            "notes": self.notes,
            "status": self.status.value,
            "cancellation_reason": self.cancellation_reason,
            "financial_record": [r.to_dict() for r in self.financial_record],
            "recurring_parent_id": self.recurring_parent_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Appointment":
        return cls(
            id=data["id"],
            contact_id=data["contact_id"],
            service_id=data.get("service_id"),
            title=data["title"],
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=datetime.fromisoformat(data["end_time"]),
            price_cents=data.get("price_cents", 0),
            notes=data.get("notes") or "",
            status=AppointmentStatus(data.get("status", "scheduled")),
            cancellation_reason=data.get("cancellation_reason"),
            financial_record=[FinancialRecord.from_dict(r) for r in data.get("financial_record") or []],
            recurring_parent_id=data.get("recurring_parent_id"),
        )


@dataclass(frozen=True)
class RecurringPattern:
    """Repeat rule of a blocked-slot template. Weekdays run 0=Sunday..6=Saturday."""

    type: RecurrenceType
    days: frozenset[int] = frozenset()

    def to_dict(self) -> dict:
        return {"type": self.type.value, "days": sorted(self.days)}

    @classmethod
    def from_dict(cls, data: dict) -> "RecurringPattern":
        return cls(type=RecurrenceType(data["type"]), days=frozenset(data.get("days") or []))


@dataclass
class BlockedSlot:
    """
    A window that must never be double-booked.

    With is_recurring=False this is one concrete interval. With is_recurring=True
    it is a template: start_time/end_time only give the time-of-day and duration
    of each occurrence, which are computed on demand and never stored.
    """

    id: str
    start_time: datetime
    end_time: datetime
    reason: str | None = None
    is_recurring: bool = False
    recurring_pattern: RecurringPattern | None = None

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def zone_key(self) -> str | None:
        """IANA name of the template's zone, or None for a fixed offset."""
        tz = self.start_time.tzinfo
        return tz.key if isinstance(tz, ZoneInfo) else None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "timezone": self.zone_key,
            "reason": self.reason,
            "is_recurring": self.is_recurring,
            "recurring_pattern": self.recurring_pattern.to_dict() if self.recurring_pattern else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BlockedSlot":
        pattern = data.get("recurring_pattern")
        start_time = datetime.fromisoformat(data["start_time"])
        end_time = datetime.fromisoformat(data["end_time"])
        if data.get("timezone"):
            tz = ZoneInfo(data["timezone"])
            start_time, end_time = start_time.astimezone(tz), end_time.astimezone(tz)
        return cls(
            id=data["id"],
            start_time=start_time,
            end_time=end_time,
            reason=data.get("reason"),
            is_recurring=data.get("is_recurring", False),
            recurring_pattern=RecurringPattern.from_dict(pattern) if pattern else None,
        )


@dataclass(frozen=True)
class OccurrenceKey:
    """Identity of one expanded occurrence: the owning template plus the day."""

    template_id: str
    occurrence_date: date

    def __str__(self) -> str:
        return f"{self.template_id}@{self.occurrence_date.isoformat()}"


# ============== Payloads ==============


@dataclass(frozen=True)
class SeriesRule:
    """Repeat rule for creating a persisted appointment series."""

    type: SeriesType
    interval: int = 1
    end_date: date | None = None


@dataclass
class CreateAppointmentData:
    contact_id: str
    title: str
    start_time: datetime
    end_time: datetime | None = None
    service_id: str | None = None
    price_cents: int | None = None
    notes: str = ""
    series: SeriesRule | None = None


@dataclass
class AppointmentUpdate:
    """Partial edit. Fields left as None are unchanged."""

    title: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    service_id: str | None = None
    price_cents: int | None = None
    notes: str | None = None
    status: AppointmentStatus | None = None
    cancellation_reason: str | None = None

    def changes_time(self) -> bool:
        return self.start_time is not None or self.end_time is not None


@dataclass
class CreateBlockedSlotData:
    start_time: datetime
    end_time: datetime
    reason: str | None = None
    is_recurring: bool = False
    recurring_pattern: RecurringPattern | None = None


@dataclass
class ServiceData:
    name: str
    default_duration_minutes: int = 60
    default_price_cents: int = 0
    color: str = "#3b82f6"
    is_active: bool = True


# ============== Validation ==============


def _check_interval(start: datetime | None, end: datetime | None, errors: list[str]) -> None:
    if start is None:
        errors.append("start_time is required")
    elif start.tzinfo is None:
        errors.append("start_time must be timezone-aware")
    if end is None:
        errors.append("end_time is required")
    elif end.tzinfo is None:
        errors.append("end_time must be timezone-aware")
    if errors or start is None or end is None:
        return
    if end <= start:
        errors.append("end_time must be after start_time")


def _check_duration(start: datetime, end: datetime, errors: list[str]) -> None:
    minutes = (end - start).total_seconds() / 60
    if not MIN_DURATION_MINUTES <= minutes <= MAX_DURATION_MINUTES:
        errors.append(
            f"duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes"
        )


def _check_title(title: str | None, errors: list[str]) -> None:
    if not title or not title.strip():
        errors.append("title is required")
    elif len(title) > MAX_TITLE_LENGTH:
        errors.append(f"title cannot exceed {MAX_TITLE_LENGTH} characters")


def validate_interval(start_time: datetime | None, end_time: datetime | None) -> None:
    """Validate a bare time range. Raises ValidationError."""
    errors: list[str] = []
    _check_interval(start_time, end_time, errors)
    if errors:
        raise ValidationError(errors)


def validate_appointment_fields(
    contact_id: str,
    title: str,
    start_time: datetime | None,
    end_time: datetime | None,
    price_cents: int,
    notes: str | None,
) -> None:
    """Validate a complete appointment shape. Raises ValidationError."""
    errors: list[str] = []
    if not contact_id:
        errors.append("contact_id is required")
    _check_title(title, errors)

    interval_errors: list[str] = []
    _check_interval(start_time, end_time, interval_errors)
    if not interval_errors:
        _check_duration(start_time, end_time, interval_errors)
    errors.extend(interval_errors)

    if not isinstance(price_cents, int) or price_cents < 0:
        errors.append("price_cents must be a non-negative integer")
    if notes and len(notes) > MAX_NOTES_LENGTH:
        errors.append(f"notes cannot exceed {MAX_NOTES_LENGTH} characters")

    if errors:
        raise ValidationError(errors)


def validate_series_rule(rule: SeriesRule, first_start: datetime) -> None:
    errors = []
    if not 1 <= rule.interval <= 12:
        errors.append("series interval must be between 1 and 12")
    if rule.end_date is not None and rule.end_date < first_start.date():
        errors.append("series end_date cannot be before the first appointment")
    if errors:
        raise ValidationError(errors)


def validate_recurring_pattern(pattern: RecurringPattern | None) -> list[str]:
    """Return validation messages for a blocked-slot repeat rule."""
    if pattern is None:
        return ["recurring_pattern is required for recurring slots"]
    errors = []
    if pattern.type == RecurrenceType.WEEKLY:
        if not pattern.days:
            errors.append("weekly recurrence needs at least one weekday")
        elif any(not isinstance(d, int) or not 0 <= d <= 6 for d in pattern.days):
            errors.append("weekdays must be integers from 0 (Sunday) to 6 (Saturday)")
    return errors


def validate_blocked_slot(data: CreateBlockedSlotData) -> None:
    """Validate a blocked-slot payload. Raises ValidationError."""
    errors: list[str] = []
    _check_interval(data.start_time, data.end_time, errors)
    if data.reason and len(data.reason) > MAX_REASON_LENGTH:
        errors.append(f"reason cannot exceed {MAX_REASON_LENGTH} characters")
    if data.is_recurring:
        errors.extend(validate_recurring_pattern(data.recurring_pattern))
    elif data.recurring_pattern is not None:
        errors.append("recurring_pattern given for a non-recurring slot")
    if errors:
        raise ValidationError(errors)


def validate_service(data: ServiceData) -> None:
    """Validate a service payload. Raises ValidationError."""
    errors = []
    if not data.name or not data.name.strip():
        errors.append("name is required")
    elif len(data.name) > MAX_TITLE_LENGTH:
        errors.append(f"name cannot exceed {MAX_TITLE_LENGTH} characters")
    if not MIN_DURATION_MINUTES <= data.default_duration_minutes <= MAX_DURATION_MINUTES:
        errors.append(
            f"default_duration_minutes must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES}"
        )
    if data.default_price_cents < 0:
        errors.append("default_price_cents must be non-negative")
    if not _HEX_COLOR.match(data.color or ""):
        errors.append("color must be a hex code like #3b82f6")
    if errors:
        raise ValidationError(errors)
