"""Value types shared across the registration domain."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from enum import StrEnum

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([AaPp][Mm])?$")


def is_uuid(value: object) -> bool:
    """Return True if value is a canonical 8-4-4-4-12 hex UUID string."""
    return isinstance(value, str) and bool(_UUID_RE.match(value.strip()))


@dataclass(frozen=True)
class StudentId:
    """Identifier of a student row."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError("StudentId must be a non-empty string")
        object.__setattr__(self, "value", self.value.strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class InstructorId:
    """Identifier of an instructor row."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError("InstructorId must be a non-empty string")
        object.__setattr__(self, "value", self.value.strip())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class RegistrationId:
    """UUID identifier of a registration."""

    value: str

    def __post_init__(self) -> None:
        if not is_uuid(self.value):
            raise ValueError(f"RegistrationId must be a UUID, got {self.value!r}")
        object.__setattr__(self, "value", self.value.strip().lower())

    @classmethod
    def generate(cls) -> RegistrationId:
        """Create a new random registration ID."""
        return cls(str(uuid.uuid4()))

    def __str__(self) -> str:
        return self.value


class Trimester(StrEnum):
    """Academic scheduling unit; registrations are partitioned per trimester."""

    FALL = "fall"
    WINTER = "winter"
    SPRING = "spring"

    @classmethod
    def parse(cls, value: object) -> Trimester:
        """Parse a trimester name case-insensitively.

        Raises:
            ValueError: If value is not fall, winter or spring.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Invalid trimester: {value!r}")

    def next(self) -> Trimester:
        """Trimester that follows this one (spring wraps to fall)."""
        order = list(Trimester)
        return order[(order.index(self) + 1) % len(order)]

    def previous(self) -> Trimester:
        """Trimester that precedes this one (fall wraps to spring)."""
        order = list(Trimester)
        return order[(order.index(self) - 1) % len(order)]


class PeriodType(StrEnum):
    """Enrollment phase within a trimester."""

    INTENT = "intent"
    PRIORITY_ENROLLMENT = "priorityEnrollment"
    OPEN_ENROLLMENT = "openEnrollment"
    REGISTRATION = "registration"

    @classmethod
    def parse(cls, value: object) -> PeriodType:
        """Parse a period type, ignoring case and separators."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = re.sub(r"[\s_-]", "", value).lower()
            for member in cls:
                if member.value.lower() == key:
                    return member
        raise ValueError(f"Invalid period type: {value!r}")


class RegistrationType(StrEnum):
    """Private lesson or group class."""

    PRIVATE = "private"
    GROUP = "group"

    @classmethod
    def normalize(cls, value: object) -> RegistrationType:
        """Map free-text variants onto a registration type.

        "group"/"class" substrings mean group, anything else is private.
        """
        text = str(value or "").strip().lower()
        if "group" in text or "class" in text:
            return cls.GROUP
        return cls.PRIVATE


class ReenrollmentIntent(StrEnum):
    """A family's stated plan for continuing a registration next trimester."""

    KEEP = "keep"
    DROP = "drop"
    CHANGE = "change"

    @classmethod
    def parse(cls, value: object) -> ReenrollmentIntent:
        """Parse an intent value.

        Raises:
            ValueError: If value is not keep, drop or change.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Invalid intent: {value!r}. Must be one of: keep, drop, change")


class Transportation(StrEnum):
    """How a student leaves after the lesson."""

    BUS = "bus"
    PICKUP = "pickup"


class Weekday(StrEnum):
    """School days on which lessons are scheduled."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"

    @property
    def index(self) -> int:
        """Python weekday number (Monday is 0)."""
        return list(Weekday).index(self)

    @classmethod
    def parse(cls, value: object) -> Weekday:
        """Parse a full or three-letter day name case-insensitively.

        Raises:
            ValueError: If value is not a Monday-Friday name.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            for member in cls:
                name = member.value.lower()
                if text == name or (len(text) >= 3 and name.startswith(text)):
                    return member
        raise ValueError(f"Invalid day: {value!r}. Must be Monday through Friday")


def normalize_time(value: object) -> str:
    """Normalize a time of day to 24-hour ``HH:MM``.

    Accepts "14:00", "14:00:00", "9:05" and "2:00 PM".

    Raises:
        ValueError: If the value is not a recognizable time.
    """
    match = _TIME_RE.match(str(value or "").strip())
    if not match:
        raise ValueError(f"Invalid time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    meridiem = (match.group(4) or "").upper()
    if meridiem:
        if not 1 <= hours <= 12:
            raise ValueError(f"Invalid time: {value!r}")
        hours = hours % 12 + (12 if meridiem == "PM" else 0)
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time: {value!r}")
    return f"{hours:02d}:{minutes:02d}"


def time_to_minutes(value: str) -> int:
    """Minutes since midnight for a time string."""
    hours, minutes = normalize_time(value).split(":")
    return int(hours) * 60 + int(minutes)


def minutes_to_time(total: int) -> str:
    """Format minutes since midnight as ``HH:MM``."""
    return f"{total // 60:02d}:{total % 60:02d}"


def format_12_hour(value: str) -> str:
    """Render a time as "2:00 PM"."""
    hours, minutes = divmod(time_to_minutes(value), 60)
    suffix = "PM" if hours >= 12 else "AM"
    display = hours % 12 or 12
    return f"{display}:{minutes:02d} {suffix}"


def grade_ordinal(value: object) -> int | None:
    """Map a grade to a comparable number.

    Pre-K is -1, K/0 is 0, grades 1-12 map to themselves. Blank values
    return None.

    Raises:
        ValueError: If the grade is not recognized.
    """
    if value is None:
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    if "pre" in text:
        return -1
    if text in ("k", "0", "kindergarten"):
        return 0
    digits = re.sub(r"(st|nd|rd|th)$", "", text)
    if digits.isdigit():
        return int(digits)
    raise ValueError(f"Invalid grade: {value!r}")


def format_grade(value: object) -> str:
    """Display form of a grade: "Pre-K", "K" or the number."""
    try:
        ordinal = grade_ordinal(value)
    except ValueError:
        return str(value)
    if ordinal is None:
        return ""
    if ordinal < 0:
        return "Pre-K"
    if ordinal == 0:
        return "K"
    return str(ordinal)
