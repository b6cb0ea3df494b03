"""Registration entity, conflict predicates and cancellation policy."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

from musicreg.domain.exceptions import ValidationError
from musicreg.domain.values import (
    InstructorId,
    RegistrationId,
    RegistrationType,
    ReenrollmentIntent,
    StudentId,
    Weekday,
    format_12_hour,
    is_uuid,
    minutes_to_time,
    normalize_time,
    time_to_minutes,
)

logger = logging.getLogger("musicreg.domain")

# Fixed column order of a registration row
REGISTRATION_COLUMNS = (
    "Id",
    "StudentId",
    "InstructorId",
    "Day",
    "StartTime",
    "Length",
    "RegistrationType",
    "RoomId",
    "Instrument",
    "TransportationType",
    "Notes",
    "ClassId",
    "ClassTitle",
    "ExpectedStartDate",
    "CreatedAt",
    "CreatedBy",
    "reenrollmentIntent",
    "intentSubmittedAt",
    "intentSubmittedBy",
    "linkedPreviousRegistrationId",
)

_HEADER_IDS = frozenset({"id", "registrationid"})

DEFAULT_LESSON_COUNT = 12


def _blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    value = _blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_date(value: Any) -> date | None:
    """Parse a calendar date from "2024-09-03" or a full ISO timestamp."""
    value = _blank_to_none(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _format(value: date | datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def _parse_length(value: Any) -> int | None:
    value = _blank_to_none(value)
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not number.is_integer():
        raise ValidationError(f"length must be a whole number of minutes, got {value!r}")
    return int(number)


@dataclass
class Registration:
    """A student's enrollment in a private lesson slot or a group class.

    Construction validates required fields, normalizes the day, start
    time and registration type, and enforces the length rule. A group
    registration without a class is demoted to private.
    """

    student_id: str
    instructor_id: str
    day: str
    start_time: str
    registration_type: RegistrationType | str
    length: int | None = None
    id: str | None = None
    room_id: str | None = None
    instrument: str | None = None
    transportation_type: str | None = None
    notes: str | None = None
    class_id: str | None = None
    class_title: str | None = None
    expected_start_date: date | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    created_by: str | None = None
    reenrollment_intent: ReenrollmentIntent | None = None
    intent_submitted_at: datetime | None = None
    intent_submitted_by: str | None = None
    linked_previous_registration_id: str | None = None
    is_waitlist_class: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        required = {
            "studentId": self.student_id,
            "instructorId": self.instructor_id,
            "day": self.day,
            "startTime": self.start_time,
            "registrationType": self.registration_type,
        }
        missing = [name for name, value in required.items() if _blank_to_none(value) is None]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        try:
            self.student_id = StudentId(str(self.student_id)).value
            self.instructor_id = InstructorId(str(self.instructor_id)).value
            self.day = Weekday.parse(self.day).value
            self.start_time = normalize_time(self.start_time)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        self.class_id = _blank_to_none(self.class_id)
        self.class_title = _blank_to_none(self.class_title)
        self.registration_type = RegistrationType.normalize(self.registration_type)
        if self.registration_type == RegistrationType.GROUP and self.class_id is None:
            logger.warning(
                "Group registration for student %s has no class; treating as private",
                self.student_id,
            )
            self.registration_type = RegistrationType.PRIVATE
        if self.registration_type == RegistrationType.PRIVATE:
            self.class_id = None
            self.class_title = None

        parsed_length = _parse_length(self.length)
        if not self.is_waitlist_class and (parsed_length is None or parsed_length <= 0):
            raise ValidationError("length is required and must be a valid number")
        self.length = parsed_length

        if self.id is not None:
            self.id = str(self.id).strip().lower() or None

    # --- Type predicates ---

    def is_private_lesson(self) -> bool:
        """Whether this is a one-on-one lesson."""
        return self.registration_type == RegistrationType.PRIVATE

    def is_group_class(self) -> bool:
        """Whether this is an enrollment in a group class."""
        return self.registration_type == RegistrationType.GROUP

    # --- Derived fields ---

    @property
    def start_minutes(self) -> int:
        """Start time as minutes since midnight."""
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        """End time as minutes since midnight (zero-length when unknown)."""
        return self.start_minutes + (self.length or 0)

    @property
    def end_time(self) -> str:
        """End time as ``HH:MM``."""
        return minutes_to_time(self.end_minutes)

    @property
    def formatted_time(self) -> str:
        """Start time for display, e.g. "2:00 PM"."""
        return format_12_hour(self.start_time)

    def first_lesson_at(self) -> datetime | None:
        """Start of the first lesson, or None without an expected start date."""
        if self.expected_start_date is None:
            return None
        hours, minutes = divmod(self.start_minutes, 60)
        return datetime.combine(self.expected_start_date, time(hours, minutes), tzinfo=UTC)

    def generate_schedule(self, count: int = DEFAULT_LESSON_COUNT) -> list[date]:
        """Weekly lesson dates starting on the first lesson day on/after the start date.

        Args:
            count: Number of lessons to generate.

        Returns:
            Lesson dates, empty if no expected start date is known.
        """
        if self.expected_start_date is None:
            return []
        weekday = Weekday(self.day).index
        offset = (weekday - self.expected_start_date.weekday()) % 7
        first = self.expected_start_date + timedelta(days=offset)
        return [first + timedelta(weeks=i) for i in range(count)]

    # --- Conflict predicates ---

    def time_overlaps(self, other: Registration) -> bool:
        """Whether both fall on the same day with intersecting time ranges."""
        if self.day != other.day:
            return False
        return self.start_minutes < other.end_minutes and other.start_minutes < self.end_minutes

    def is_same_class_enrollment(self, other: Registration) -> bool:
        """Whether both are group enrollments in the same class."""
        return (
            self.is_group_class()
            and other.is_group_class()
            and self.class_id is not None
            and self.class_id == other.class_id
        )

    def conflicts_with(self, other: Registration) -> bool:
        """Check whether two registrations cannot coexist.

        They conflict when the same student is enrolled twice in the same
        class, or when the same instructor is booked at overlapping times on
        the same day. Classmates sharing a group class never conflict.
        """
        if self.id is not None and self.id == other.id:
            return False
        if self.is_same_class_enrollment(other):
            return self.student_id == other.student_id
        return self.instructor_id == other.instructor_id and self.time_overlaps(other)

    # --- Intent ---

    def update_intent(self, intent: ReenrollmentIntent | str, submitted_by: str) -> Registration:
        """Record a reenrollment intent.

        Args:
            intent: keep, drop or change.
            submitted_by: Actor identity submitting the intent.

        Returns:
            This registration, for chaining.

        Raises:
            ValidationError: If intent is invalid or submitted_by is blank.
        """
        try:
            parsed = ReenrollmentIntent.parse(intent)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if not _blank_to_none(submitted_by):
            raise ValidationError("submittedBy is required for audit trail")
        self.reenrollment_intent = parsed
        self.intent_submitted_at = datetime.now(UTC)
        self.intent_submitted_by = submitted_by
        return self

    # --- Serialization ---

    def to_database_row(self) -> list[str]:
        """Serialize to the fixed 20-column row layout."""
        return [
            self.id or "",
            self.student_id,
            self.instructor_id,
            self.day,
            self.start_time,
            "" if self.length is None else str(self.length),
            self.registration_type.value,
            self.room_id or "",
            self.instrument or "",
            self.transportation_type or "",
            self.notes or "",
            self.class_id or "",
            self.class_title or "",
            _format(self.expected_start_date),
            _format(self.created_at),
            self.created_by or "",
            self.reenrollment_intent.value if self.reenrollment_intent else "",
            _format(self.intent_submitted_at),
            self.intent_submitted_by or "",
            self.linked_previous_registration_id or "",
        ]

    @classmethod
    def from_database_row(
        cls,
        row: Iterable[Any] | None,
        waitlist_class_ids: Iterable[str] = (),
    ) -> Registration | None:
        """Build a Registration from a stored row.

        Blank rows, header rows, rows without a UUID in the first cell and
        rows that fail validation all yield None.

        Args:
            row: Cell values in REGISTRATION_COLUMNS order.
            waitlist_class_ids: Classes exempt from the length requirement.

        Returns:
            The Registration, or None if the row is not a usable record.
        """
        if not row:
            return None
        cells = [("" if cell is None else str(cell)) for cell in row]
        first = cells[0].strip()
        if not first or first.lower() in _HEADER_IDS or not is_uuid(first):
            return None
        cells += [""] * (len(REGISTRATION_COLUMNS) - len(cells))

        try:
            class_id = _blank_to_none(cells[11])
            intent = _blank_to_none(cells[16])
            return cls(
                id=first,
                student_id=cells[1],
                instructor_id=cells[2],
                day=cells[3],
                start_time=cells[4],
                length=cells[5],
                registration_type=cells[6],
                room_id=_blank_to_none(cells[7]),
                instrument=_blank_to_none(cells[8]),
                transportation_type=_blank_to_none(cells[9]),
                notes=_blank_to_none(cells[10]),
                class_id=class_id,
                class_title=_blank_to_none(cells[12]),
                expected_start_date=parse_date(cells[13]),
                created_at=parse_datetime(cells[14]) or datetime.now(UTC),
                created_by=_blank_to_none(cells[15]),
                reenrollment_intent=ReenrollmentIntent.parse(intent) if intent else None,
                intent_submitted_at=parse_datetime(cells[17]),
                intent_submitted_by=_blank_to_none(cells[18]),
                linked_previous_registration_id=_blank_to_none(cells[19]),
                is_waitlist_class=class_id is not None and class_id in set(waitlist_class_ids),
            )
        except (ValidationError, ValueError) as e:
            logger.debug("Skipping malformed registration row %s: %s", first, e)
            return None

    @classmethod
    def from_api_data(
        cls,
        data: Mapping[str, Any],
        waitlist_class_ids: Iterable[str] = (),
    ) -> Registration:
        """Build a Registration from a request payload.

        Accepts camelCase or snake_case keys and unwraps identifier objects
        such as ``{"value": "..."}``. Reenrollment intent keys are ignored;
        intent is only recorded through ``update_intent``.

        Raises:
            ValidationError: If required data is missing or invalid.
        """

        def pick(camel: str, snake: str) -> Any:
            value = data.get(camel, data.get(snake))
            if isinstance(value, Mapping):
                value = value.get("value", value.get("id"))
            return value

        class_id = _blank_to_none(pick("classId", "class_id"))
        registration_id = _blank_to_none(pick("id", "id"))
        if registration_id is not None:
            try:
                registration_id = RegistrationId(str(registration_id)).value
            except ValueError as e:
                raise ValidationError(str(e)) from e
        try:
            expected = parse_date(pick("expectedStartDate", "expected_start_date"))
            created_at = parse_datetime(pick("createdAt", "created_at"))
        except ValueError as e:
            raise ValidationError(str(e)) from e

        return cls(
            id=registration_id,
            student_id=pick("studentId", "student_id"),
            instructor_id=pick("instructorId", "instructor_id"),
            day=pick("day", "day"),
            start_time=pick("startTime", "start_time"),
            length=pick("length", "length"),
            registration_type=pick("registrationType", "registration_type"),
            room_id=_blank_to_none(pick("roomId", "room_id")),
            instrument=_blank_to_none(pick("instrument", "instrument")),
            transportation_type=_blank_to_none(pick("transportationType", "transportation_type")),
            notes=_blank_to_none(pick("notes", "notes")),
            class_id=class_id,
            class_title=_blank_to_none(pick("classTitle", "class_title")),
            expected_start_date=expected,
            created_at=created_at or datetime.now(UTC),
            created_by=_blank_to_none(pick("createdBy", "created_by")),
            linked_previous_registration_id=_blank_to_none(
                pick("linkedPreviousRegistrationId", "linked_previous_registration_id")
            ),
            is_waitlist_class=class_id is not None and class_id in set(waitlist_class_ids),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation with camelCase keys."""
        return {
            "id": self.id,
            "studentId": self.student_id,
            "instructorId": self.instructor_id,
            "day": self.day,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "formattedTime": self.formatted_time,
            "length": self.length,
            "registrationType": self.registration_type.value,
            "roomId": self.room_id,
            "instrument": self.instrument,
            "transportationType": self.transportation_type,
            "notes": self.notes,
            "classId": self.class_id,
            "classTitle": self.class_title,
            "expectedStartDate": _format(self.expected_start_date) or None,
            "createdAt": _format(self.created_at),
            "createdBy": self.created_by,
            "reenrollmentIntent": (
                self.reenrollment_intent.value if self.reenrollment_intent else None
            ),
            "intentSubmittedAt": _format(self.intent_submitted_at) or None,
            "intentSubmittedBy": self.intent_submitted_by,
            "linkedPreviousRegistrationId": self.linked_previous_registration_id,
            "isWaitlistClass": self.is_waitlist_class,
        }


@dataclass(frozen=True)
class CancellationDecision:
    """Outcome of evaluating a cancellation request.

    Attributes:
        can_cancel: Whether the cancellation may proceed without override.
        requires_managerial_approval: Whether an admin must override.
        refund_eligible: Whether tuition is refunded.
        cancellation_fee: Fee charged for the cancellation.
        reason: Human-readable explanation.
    """

    can_cancel: bool
    requires_managerial_approval: bool
    refund_eligible: bool
    cancellation_fee: Decimal
    reason: str

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation with camelCase keys."""
        return {
            "canCancel": self.can_cancel,
            "requiresManagerialApproval": self.requires_managerial_approval,
            "refundEligible": self.refund_eligible,
            "cancellationFee": str(self.cancellation_fee),
            "reason": self.reason,
        }


class CancellationPolicy:
    """Notice-based cancellation rules.

    Under 24 hours before the first lesson a cancellation needs managerial
    override. Seven or more days out it is refunded with no fee; in
    between a flat fee applies.
    """

    def __init__(
        self,
        flat_fee: Decimal = Decimal("25.00"),
        minimum_notice: timedelta = timedelta(hours=24),
        refund_notice: timedelta = timedelta(days=7),
    ) -> None:
        self.flat_fee = flat_fee
        self.minimum_notice = minimum_notice
        self.refund_notice = refund_notice

    def evaluate(
        self, registration: Registration, now: datetime | None = None
    ) -> CancellationDecision:
        """Decide whether and how a registration may be cancelled.

        Args:
            registration: The registration to cancel.
            now: Evaluation time (defaults to the current UTC time).

        Returns:
            The cancellation decision.
        """
        starts_at = registration.first_lesson_at()
        if starts_at is None:
            return CancellationDecision(
                can_cancel=True,
                requires_managerial_approval=False,
                refund_eligible=True,
                cancellation_fee=Decimal("0"),
                reason="No start date scheduled",
            )

        now = now or datetime.now(UTC)
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        notice = starts_at - now

        if notice < self.minimum_notice:
            return CancellationDecision(
                can_cancel=False,
                requires_managerial_approval=True,
                refund_eligible=False,
                cancellation_fee=self.flat_fee,
                reason="Cancellations within 24 hours of the start date need managerial approval",
            )
        if notice >= self.refund_notice:
            return CancellationDecision(
                can_cancel=True,
                requires_managerial_approval=False,
                refund_eligible=True,
                cancellation_fee=Decimal("0"),
                reason="Cancelled at least 7 days before the start date",
            )
        return CancellationDecision(
            can_cancel=True,
            requires_managerial_approval=False,
            refund_eligible=False,
            cancellation_fee=self.flat_fee,
            reason="Late cancellation fee applies",
        )
