"""Delivery scheduling rules: dates, hourly slots and bulk-order gating."""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from . import config
from .clock import Clock
from .errors import ValidationError
from .utils import format_instant

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLOT_RE = re.compile(r"^(\d{2}):00$")

TIME_SLOTS = tuple(
    f"{hour:02d}:00" for hour in range(config.FIRST_SLOT_HOUR, config.LAST_SLOT_HOUR + 1)
)
DEFAULT_SLOT = TIME_SLOTS[0]


@dataclass(frozen=True)
class Schedule:
    """The customer's delivery schedule choice. show=False means ASAP."""

    show: bool = False
    date: str = ""
    time: str = DEFAULT_SLOT

    def to_dict(self) -> dict[str, Any]:
        return {"showSchedule": self.show, "scheduleDate": self.date, "scheduleTime": self.time}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Schedule":
        if not data:
            return cls()
        return cls(
            show=bool(data.get("showSchedule", False)),
            date=data.get("scheduleDate") or "",
            time=data.get("scheduleTime") or DEFAULT_SLOT,
        )


ASAP = Schedule()


def parse_date(value: str) -> date | None:
    """Parse a YYYY-MM-DD string; None if malformed or not a real date."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_slot(value: str) -> int | None:
    """Hour of a listed HH:00 slot, or None if the value isn't one."""
    if not isinstance(value, str):
        return None
    match = _SLOT_RE.match(value)
    if not match:
        return None
    hour = int(match.group(1))
    if not config.FIRST_SLOT_HOUR <= hour <= config.LAST_SLOT_HOUR:
        return None
    return hour


def is_today_or_later(value: str, clock: Clock) -> bool:
    """Calendar comparison in local time, not 24 hours elapsed."""
    selected = parse_date(value)
    if selected is None:
        return False
    return selected >= clock.today()


def is_at_least_tomorrow(value: str, clock: Clock) -> bool:
    selected = parse_date(value)
    if selected is None:
        return False
    return selected >= clock.today() + timedelta(days=1)


def is_slot_valid_for_date(date_value: str, slot: str, clock: Clock) -> bool:
    """
    Check a slot against a date.

    On today's date a slot whose start time has already passed is rejected,
    so at 14:30 the 14:00 slot is gone and 15:00 is the first one left. Any
    listed slot is fine on a later date.
    """
    selected = parse_date(date_value)
    hour = parse_slot(slot)
    if selected is None or hour is None:
        return False

    now = clock.now()
    if selected == now.date():
        return datetime.combine(selected, time(hour=hour), tzinfo=now.tzinfo) >= now
    return True


class ScheduleValidator:
    """Validates a Schedule against the clock and the bulk-order rule."""

    def __init__(self, clock: Clock, bulk_requires_next_day: bool | None = None):
        self.clock = clock
        if bulk_requires_next_day is None:
            bulk_requires_next_day = config.bulk_requires_next_day()
        self.bulk_requires_next_day = bulk_requires_next_day

    def errors(self, schedule: Schedule, bulk: bool = False) -> list[ValidationError]:
        """
        All problems with the schedule, in display order.

        A bulk order must carry a shown, valid schedule. A non-bulk order may
        skip it, but a shown schedule is validated either way.
        """
        if not schedule.show:
            if bulk:
                return [
                    ValidationError(
                        "schedule",
                        "Orders with more than 12 of a dish must be scheduled in advance.",
                    )
                ]
            return []

        errors: list[ValidationError] = []
        if parse_date(schedule.date) is None:
            errors.append(ValidationError("scheduleDate", "Choose a delivery date."))
        elif not is_today_or_later(schedule.date, self.clock):
            errors.append(ValidationError("scheduleDate", "Delivery date can't be in the past."))
        elif bulk and self.bulk_requires_next_day and not is_at_least_tomorrow(
            schedule.date, self.clock
        ):
            errors.append(
                ValidationError("scheduleDate", "Bulk orders need at least 1 day advance notice.")
            )

        if parse_slot(schedule.time) is None:
            errors.append(
                ValidationError(
                    "scheduleTime",
                    f"Choose an hourly slot between {TIME_SLOTS[0]} and {TIME_SLOTS[-1]}.",
                )
            )
        elif not errors and not is_slot_valid_for_date(schedule.date, schedule.time, self.clock):
            errors.append(ValidationError("scheduleTime", "That time slot has already passed."))

        return errors

    def is_valid(self, schedule: Schedule, bulk: bool = False) -> bool:
        return not self.errors(schedule, bulk)

    def available_slots(self, date_value: str) -> list[str]:
        """Slots still selectable on the given date."""
        return [s for s in TIME_SLOTS if is_slot_valid_for_date(date_value, s, self.clock)]

    def to_instant(self, schedule: Schedule) -> str | None:
        """
        Absolute UTC instant of the scheduled slot, or None for ASAP.

        The date and hour are read in the shop's local timezone.
        """
        if not schedule.show:
            return None
        selected = parse_date(schedule.date)
        hour = parse_slot(schedule.time)
        if selected is None or hour is None:
            raise ValidationError("schedule", "Schedule is not valid.")
        tz = self.clock.now().tzinfo
        local = datetime.combine(selected, time(hour=hour), tzinfo=tz)
        return format_instant(local)
