"""Cron field parsing -- turns one field's text into a matcher tree.

Each of the five cron fields accepts the same small grammar:

    list       1,2,7        (terms may be ranges, numbers or wildcards)
    wildcard   * or */3
    range      3-28 or 1-5/2
    number     13
    name       JAN..DEC for month, SUN..SAT for weekday (top level only)

Valid values per field:

    minute         0-59
    hour           0-23
    day of month   0-31
    month          0-12 (or names: JAN, FEB ...)
    day of week    0-7  (0 or 7 is SUN)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class FieldType(Enum):
    """The five cron slots, in expression order."""

    MINUTE = 1
    HOUR = 2
    DAY = 3
    MONTH = 4
    WEEKDAY = 5

    @property
    def label(self) -> str:
        return f"{self.name.lower()} field"

    @property
    def bounds(self) -> tuple[int, int]:
        return VALID_RANGES[self]

    @property
    def allows_names(self) -> bool:
        return self in NAME_TABLES

    def __str__(self) -> str:
        return self.label


VALID_RANGES: dict[FieldType, tuple[int, int]] = {
    FieldType.MINUTE: (0, 59),
    FieldType.HOUR: (0, 23),
    FieldType.DAY: (0, 31),
    FieldType.MONTH: (0, 12),
    FieldType.WEEKDAY: (0, 7),
}

MONTHS = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AUG": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}

WEEKDAYS = {
    "SUN": 0, "MON": 1, "TUE": 2, "WED": 3, "THU": 4, "FRI": 5, "SAT": 6,
}

NAME_TABLES: dict[FieldType, dict[str, int]] = {
    FieldType.MONTH: MONTHS,
    FieldType.WEEKDAY: WEEKDAYS,
}

WILDCARD = "*"

_INT_RE = re.compile(r"[0-9]+")


class CronParseError(ValueError):
    """Raised when schedule text cannot be parsed.

    `field_type` is None for errors that concern the whole expression
    (e.g. the wrong number of fields).
    """

    def __init__(
        self,
        message: str,
        fragment: str = "",
        field_type: FieldType | None = None,
    ) -> None:
        super().__init__(message)
        self.fragment = fragment
        self.field_type = field_type


# ---------------------------------------------------------------------------
# Matchers
# ---------------------------------------------------------------------------

class Matcher(Protocol):
    """Anything that can test a single integer value."""

    def match(self, n: int) -> bool:
        ...


@dataclass(frozen=True)
class NumberMatcher:
    value: int

    def match(self, n: int) -> bool:
        return n == self.value


@dataclass(frozen=True)
class RangeMatcher:
    """Inclusive range with a step anchored at `start`."""

    start: int
    end: int
    step: int = 1

    def match(self, n: int) -> bool:
        return self.start <= n <= self.end and (n - self.start) % self.step == 0


@dataclass(frozen=True)
class ListMatcher:
    """OR of its sub-matchers. An empty list never matches."""

    matchers: tuple[Matcher, ...] = ()

    def match(self, n: int) -> bool:
        return any(m.match(n) for m in self.matchers)


# ---------------------------------------------------------------------------
# Field
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CronField:
    """One parsed cron field. Keeps the raw text to detect the `*` wildcard."""

    raw: str
    field_type: FieldType
    matcher: Matcher

    @classmethod
    def parse(cls, text: str, field_type: FieldType) -> CronField:
        raw = text.strip()
        if not raw:
            raise CronParseError(
                f"parse error: empty {field_type}", fragment=text, field_type=field_type
            )
        matcher = parse_field(raw, field_type, enable_names=field_type.allows_names)
        return cls(raw=raw, field_type=field_type, matcher=matcher)

    @property
    def is_wildcard(self) -> bool:
        return self.raw == WILDCARD

    def match(self, n: int) -> bool:
        return self.matcher.match(n)

    def values(self) -> list[int]:
        """All values in the field's domain this field matches, ascending.

        Weekday 7 is never listed since it is normalized to 0 at parse time.
        """
        low, high = self.field_type.bounds
        if self.field_type is FieldType.WEEKDAY:
            high = 6
        return [n for n in range(low, high + 1) if self.matcher.match(n)]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_field(text: str, field_type: FieldType, enable_names: bool = True) -> Matcher:
    """Parse one field's text into a matcher.

    `enable_names` is forced off for list terms, so "MON" parses on the
    weekday field while "MON,TUE" does not.
    """
    s = text.strip()
    if not s:
        raise CronParseError(
            f"parse error: empty term in {field_type}", fragment=text, field_type=field_type
        )

    if "," in s:
        return _parse_list(s.split(","), field_type)

    if s.startswith(WILDCARD):
        return _parse_any(s, field_type)

    if "-" in s:
        start, end_step = s.split("-", 1)
        return _parse_range(start, end_step, field_type, s)

    if "0" <= s[0] <= "9":
        return _parse_number(s, field_type)

    if not enable_names or not field_type.allows_names:
        raise CronParseError(
            f"parse error: string is not allowed for {field_type}: {s!r}",
            fragment=s,
            field_type=field_type,
        )
    return _parse_name(s, field_type)


def _parse_list(terms: list[str], field_type: FieldType) -> ListMatcher:
    # list: 11,23
    matchers = [parse_field(term, field_type, enable_names=False) for term in terms]
    return ListMatcher(tuple(matchers))


def _parse_any(s: str, field_type: FieldType) -> Matcher:
    # '*' == first-last, '*/13' == first-last/13
    low, high = field_type.bounds
    step = 1
    if s != WILDCARD:
        if not s.startswith("*/"):
            raise CronParseError(
                f"parse error: malformed wildcard in {field_type}: {s!r}",
                fragment=s,
                field_type=field_type,
            )
        step = _parse_int(s[2:], field_type, s)
    return _make_range(low, high, step, field_type, s)


def _parse_range(start_text: str, end_step: str, field_type: FieldType, s: str) -> Matcher:
    # range: 13-31 or 13-31/2
    end_text, _, step_text = end_step.partition("/")
    start = _check_bounds(_parse_int(start_text, field_type, s), field_type, s)
    end = _check_bounds(_parse_int(end_text, field_type, s), field_type, s)
    if start > end:
        raise CronParseError(
            f"parse error: range start exceeds end for {field_type}: {s!r}",
            fragment=s,
            field_type=field_type,
        )

    step = 1
    if "/" in end_step:
        step = _parse_int(step_text, field_type, s)
    return _make_range(start, end, step, field_type, s)


def _make_range(start: int, end: int, step: int, field_type: FieldType, s: str) -> Matcher:
    if step <= 0:
        raise CronParseError(
            f"parse error: invalid step {step} for {field_type}: {s!r}",
            fragment=s,
            field_type=field_type,
        )
    # Sunday is 0 internally; a weekday range ending on 7 must still hit it
    if field_type is FieldType.WEEKDAY and end == 7 and (end - start) % step == 0:
        return ListMatcher((NumberMatcher(0), RangeMatcher(start, end - 1, step)))
    return RangeMatcher(start, end, step)


def _parse_number(s: str, field_type: FieldType) -> NumberMatcher:
    n = _check_bounds(_parse_int(s, field_type, s), field_type, s)
    if field_type is FieldType.WEEKDAY and n == 7:
        n = 0
    return NumberMatcher(n)


def _parse_name(s: str, field_type: FieldType) -> NumberMatcher:
    name = s.upper()
    table = NAME_TABLES[field_type]
    if name not in table:
        raise CronParseError(
            f"parse error: unknown string for {field_type}: {name!r}",
            fragment=s,
            field_type=field_type,
        )
    return NumberMatcher(table[name])


def _parse_int(text: str, field_type: FieldType, fragment: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise CronParseError(
            f"parse error: invalid number for {field_type}: {text!r} in {fragment!r}",
            fragment=fragment,
            field_type=field_type,
        )
    return int(text)


def _check_bounds(n: int, field_type: FieldType, fragment: str) -> int:
    low, high = field_type.bounds
    if n < low or n > high:
        raise CronParseError(
            f"parse error: invalid number for {field_type}: {n} (allowed {low}-{high})",
            fragment=fragment,
            field_type=field_type,
        )
    return n
