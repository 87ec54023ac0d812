# MDTasks Recurrence
# Evaluator seam for computing the next occurrence of a repeating task

import calendar
from datetime import date, timedelta
from typing import Protocol

from mdtasks.errors import RecurrenceError


class RecurrenceEvaluator(Protocol):
    """Anything that can advance a date by one step of a recurrence rule."""

    def next_occurrence(self, current: date, rule: str) -> date: ...


class IntervalRecurrence:
    """
    Minimal RRULE evaluator.

    Understands ``FREQ=DAILY|WEEKLY|MONTHLY|YEARLY`` with an optional
    ``INTERVAL=n``. Any other rule part raises RecurrenceError so that
    richer rules are never silently approximated. Month and year steps clamp
    to the last day of the target month (Jan 31 + 1 month = Feb 28/29).
    """

    FREQUENCIES = ("DAILY", "WEEKLY", "MONTHLY", "YEARLY")

    def parse(self, rule: str) -> tuple[str, int]:
        """
        Split a rule into (frequency, interval).

        Raises:
            RecurrenceError: If the rule is empty or uses unsupported parts.
        """
        fields: dict[str, str] = {}
        for item in rule.split(";"):
            item = item.strip()
            if not item:
                continue
            key, sep, value = item.partition("=")
            if not sep:
                raise RecurrenceError(f"Malformed recurrence rule part: {item}")
            fields[key.strip().upper()] = value.strip().upper()

        frequency = fields.pop("FREQ", None)
        if frequency not in self.FREQUENCIES:
            raise RecurrenceError(f"Recurrence rule is missing a supported FREQ: {rule}")

        interval_raw = fields.pop("INTERVAL", "1")
        try:
            interval = int(interval_raw)
        except ValueError:
            raise RecurrenceError(f"Invalid INTERVAL in recurrence rule: {interval_raw}") from None
        if interval < 1:
            raise RecurrenceError(f"INTERVAL must be at least 1: {interval}")

        if fields:
            unsupported = ", ".join(sorted(fields))
            raise RecurrenceError(f"Unsupported recurrence rule parts: {unsupported}")

        return frequency, interval

    def next_occurrence(self, current: date, rule: str) -> date:
        frequency, interval = self.parse(rule)

        try:
            if frequency == "DAILY":
                return current + timedelta(days=interval)
            if frequency == "WEEKLY":
                return current + timedelta(weeks=interval)
            if frequency == "MONTHLY":
                return _add_months(current, interval)
            return _add_months(current, 12 * interval)
        except OverflowError:
            raise RecurrenceError(f"Next occurrence of {current} is out of range") from None


def _add_months(current: date, months: int) -> date:
    month_index = current.month - 1 + months
    year = current.year + month_index // 12
    month = month_index % 12 + 1
    if year > date.max.year:
        raise OverflowError("year out of range")
    day = min(current.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
