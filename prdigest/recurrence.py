"""Digest schedules: the weekday default or a validated crontab expression."""

from dataclasses import dataclass
from typing import Optional, Set

from apscheduler.triggers.cron import CronTrigger

from .errors import ScheduleSyntaxError

WEEKDAYS = "mon-fri"

# Standard cron numbering: 0 and 7 are Sunday
DAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]


def _day_number(token: str) -> int:
    token = token.strip().lower()
    if token in DAY_NAMES:
        return DAY_NAMES.index(token)
    number = int(token)
    if not 0 <= number <= 7:
        raise ValueError(f"day of week {token} is out of range 0-7")
    return number


def translate_day_of_week(field: str) -> str:
    """Rewrite a standard cron day-of-week field as APScheduler day names.

    APScheduler counts weekdays from Monday = 0, so numeric fields are expanded
    into an explicit list of names (``1-5`` becomes ``mon,tue,wed,thu,fri``).
    """
    if field == "*":
        return field

    days: Set[int] = set()
    for part in field.split(","):
        base, has_step, step_text = part.partition("/")
        step = int(step_text) if has_step else 1
        if step < 1:
            raise ValueError(f"step in {part} must be positive")

        if base == "*":
            start, end = 0, 6
        elif "-" in base:
            first, last = base.split("-", 1)
            start, end = _day_number(first), _day_number(last)
        else:
            start = _day_number(base)
            end = 6 if has_step else start

        if start > end:
            raise ValueError(f"range {base} runs backwards")
        days.update(day % 7 for day in range(start, end + 1, step))

    return ",".join(DAY_NAMES[day] for day in sorted(days))


def cron_trigger(expression: str, timezone: Optional[str] = None) -> CronTrigger:
    """Build a trigger from five standard crontab fields."""
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"expected 5 fields, got {len(fields)}")
    minute, hour, day, month, day_of_week = fields
    return CronTrigger(
        minute=minute,
        hour=hour,
        day=day,
        month=month,
        day_of_week=translate_day_of_week(day_of_week),
        timezone=timezone,
    )


@dataclass(frozen=True)
class RecurrenceSpec:
    """When a digest fires.

    ``expression`` is None for the default schedule, which runs on weekdays at
    ``hour``:``minute``. Otherwise it is the crontab text exactly as the user
    typed it, already validated by :meth:`parse`.
    """

    expression: Optional[str] = None
    hour: int = 9
    minute: int = 0

    @classmethod
    def parse(cls, text: str) -> "RecurrenceSpec":
        """Validate a five-field crontab expression."""
        expression = (text or "").strip()
        if not expression:
            raise ScheduleSyntaxError(text, "schedule is empty")
        try:
            cron_trigger(expression)
        except (ValueError, TypeError) as e:
            raise ScheduleSyntaxError(text, str(e)) from e
        return cls(expression=expression)

    @classmethod
    def default(cls, hour: int = 9, minute: int = 0) -> "RecurrenceSpec":
        return cls(expression=None, hour=hour, minute=minute)

    @property
    def is_default(self) -> bool:
        return self.expression is None

    def render(self) -> str:
        """Return the schedule in the form it was given."""
        if self.expression is not None:
            return self.expression
        return f"{self.minute} {self.hour} * * {WEEKDAYS}"

    def describe_default(self) -> str:
        return f"every weekday at {self.hour:02d}:{self.minute:02d}"

    def to_trigger(self, timezone: Optional[str] = None) -> CronTrigger:
        if self.expression is not None:
            return cron_trigger(self.expression, timezone=timezone)
        return CronTrigger(
            day_of_week=WEEKDAYS,
            hour=self.hour,
            minute=self.minute,
            timezone=timezone,
        )

    def __str__(self) -> str:
        return self.render()
