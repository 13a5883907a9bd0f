"""Cron expression -- five parsed fields and the combined match rule.

Supports standard 5-field cron: minute hour day_of_month month day_of_week

Examples:
    "0 16 * * 1-5"   -> weekdays at 4pm
    "0 9 * * SUN"    -> Sundays at 9am
    "*/5 * * * *"     -> every 5 minutes
    "0 9,17 * * *"    -> 9am and 5pm daily
    "0 0 1,15 * 5"   -> the 1st, the 15th, and every Friday at midnight
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from scheduler.fields import CronField, CronParseError, FieldType


@dataclass(frozen=True)
class CronExpression:
    """A parsed 5-field cron expression."""

    source: str
    minute: CronField
    hour: CronField
    day: CronField
    month: CronField
    weekday: CronField

    @classmethod
    def parse(cls, expression: str) -> CronExpression:
        """Parse a 5-field cron string.

        Raises CronParseError naming the first offending field.
        """
        parts = expression.strip().split()
        if len(parts) != 5:
            raise CronParseError(
                f"Invalid cron expression (need 5 fields, got {len(parts)}): {expression!r}",
                fragment=expression,
            )

        minute, hour, day, month, weekday = parts
        return cls(
            source=" ".join(parts),
            minute=CronField.parse(minute, FieldType.MINUTE),
            hour=CronField.parse(hour, FieldType.HOUR),
            day=CronField.parse(day, FieldType.DAY),
            month=CronField.parse(month, FieldType.MONTH),
            weekday=CronField.parse(weekday, FieldType.WEEKDAY),
        )

    @property
    def fields(self) -> tuple[CronField, ...]:
        return (self.minute, self.hour, self.day, self.month, self.weekday)

    def match(self, dt: datetime) -> bool:
        """Check if a datetime matches this expression.

        Day of month and day of week follow classic cron rules: when both
        are restricted (neither is a literal `*`) either one may match,
        otherwise both must.
        """
        if not (
            self.minute.match(dt.minute)
            and self.hour.match(dt.hour)
            and self.month.match(dt.month)
        ):
            return False

        weekday = dt.isoweekday() % 7  # 0=Sun, 6=Sat
        if not self.day.is_wildcard and not self.weekday.is_wildcard:
            return self.weekday.match(weekday) or self.day.match(dt.day)
        return self.weekday.match(weekday) and self.day.match(dt.day)

    def __str__(self) -> str:
        return self.source


def cron_matches(expression: str, dt: datetime) -> bool:
    """Check if a datetime matches a cron expression.

    Args:
        expression: 5-field cron string (minute hour dom month dow)
        dt: datetime to check against

    Returns:
        True if the datetime matches the expression.
    """
    return CronExpression.parse(expression).match(dt)
