"""
Field arithmetic on the proleptic Gregorian calendar in UTC.

Instants are integer milliseconds since 1970-01-01T00:00:00Z. Date conversion
is pure integer arithmetic, so it is not limited to the year range of
``datetime``; results are checked against the signed 64-bit timeline instead.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum

MIN_INSTANT = -(2**63)
MAX_INSTANT = 2**63 - 1

# Years whose every instant fits on the 64-bit timeline.
MIN_CALENDAR_YEAR = -292275054
MAX_CALENDAR_YEAR = 292278993

MILLIS_PER_SECOND = 1000
MILLIS_PER_DAY = 86_400_000

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DAYS_IN_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


class IllegalFieldValueError(ValueError):
    """
    Raised when a calendar field is set to a value it cannot take.
    """

    def __init__(self, field: "Field", value: int, lower: int, upper: int) -> None:
        super().__init__(
            f"Value {value} for {field.name.lower()} must be in the range [{lower},{upper}]"
        )
        self.field = field
        self.value = value


class Field(Enum):
    YEAR = "year"
    MONTH_OF_YEAR = "monthOfYear"
    DAY_OF_MONTH = "dayOfMonth"
    DAY_OF_WEEK = "dayOfWeek"  # ISO: Monday=1 ... Sunday=7
    MILLIS_OF_DAY = "millisOfDay"


def is_leap(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_month(year: int, month: int) -> int:
    if month == 2 and is_leap(year):
        return 29
    return _DAYS_IN_MONTH[month - 1]


def _days_from_civil(year: int, month: int, day: int) -> int:
    # Howard Hinnant's days_from_civil, with Python's floor division
    year -= month <= 2
    era = year // 400
    year_of_era = year - era * 400
    day_of_year = (153 * (month + (-3 if month > 2 else 9)) + 2) // 5 + day - 1
    day_of_era = (
        year_of_era * 365 + year_of_era // 4 - year_of_era // 100 + day_of_year
    )
    return era * 146097 + day_of_era - 719468


def _civil_from_days(days: int) -> tuple[int, int, int]:
    days += 719468
    era = days // 146097
    day_of_era = days - era * 146097
    year_of_era = (
        day_of_era - day_of_era // 1460 + day_of_era // 36524 - day_of_era // 146096
    ) // 365
    day_of_year = day_of_era - (
        365 * year_of_era + year_of_era // 4 - year_of_era // 100
    )
    mp = (5 * day_of_year + 2) // 153
    day = day_of_year - (153 * mp + 2) // 5 + 1
    month = mp + (3 if mp < 10 else -9)
    return year_of_era + era * 400 + (month <= 2), month, day


def check_instant(instant: int) -> int:
    if instant < MIN_INSTANT or instant > MAX_INSTANT:
        raise OverflowError(f"Instant {instant} is outside the supported timeline")
    return instant


def civil_from_millis(instant: int) -> tuple[int, int, int, int]:
    """Split an instant into (year, month, day, millis of day)."""
    days, millis_of_day = divmod(instant, MILLIS_PER_DAY)
    year, month, day = _civil_from_days(days)
    return year, month, day, millis_of_day


def millis_from_civil(year: int, month: int, day: int, millis_of_day: int = 0) -> int:
    return _days_from_civil(year, month, day) * MILLIS_PER_DAY + millis_of_day


def _checked_year(year: int) -> int:
    if not MIN_CALENDAR_YEAR <= year <= MAX_CALENDAR_YEAR:
        raise IllegalFieldValueError(
            Field.YEAR, year, MIN_CALENDAR_YEAR, MAX_CALENDAR_YEAR
        )
    return year


def year_start(year: int) -> int:
    """Instant of January 1st, 00:00 UTC, of ``year``."""
    return check_instant(millis_from_civil(_checked_year(year), 1, 1))


def get_field(instant: int, field: Field) -> int:
    year, month, day, millis_of_day = civil_from_millis(instant)
    match field:
        case Field.YEAR:
            return year
        case Field.MONTH_OF_YEAR:
            return month
        case Field.DAY_OF_MONTH:
            return day
        case Field.DAY_OF_WEEK:
            # 1970-01-01 was a Thursday
            return (instant // MILLIS_PER_DAY + 3) % 7 + 1
        case Field.MILLIS_OF_DAY:
            return millis_of_day
    raise ValueError(f"Unknown field: {field!r}")


def set_field(instant: int, field: Field, value: int) -> int:
    year, month, day, millis_of_day = civil_from_millis(instant)
    match field:
        case Field.YEAR:
            year = _checked_year(value)
            day = min(day, days_in_month(year, month))
        case Field.MONTH_OF_YEAR:
            if not 1 <= value <= 12:
                raise IllegalFieldValueError(field, value, 1, 12)
            month = value
            day = min(day, days_in_month(year, month))
        case Field.DAY_OF_MONTH:
            upper = days_in_month(year, month)
            if not 1 <= value <= upper:
                raise IllegalFieldValueError(field, value, 1, upper)
            day = value
        case Field.DAY_OF_WEEK:
            if not 1 <= value <= 7:
                raise IllegalFieldValueError(field, value, 1, 7)
            current = get_field(instant, Field.DAY_OF_WEEK)
            return add_field(instant, Field.DAY_OF_WEEK, value - current)
        case Field.MILLIS_OF_DAY:
            if not 0 <= value < MILLIS_PER_DAY:
                raise IllegalFieldValueError(field, value, 0, MILLIS_PER_DAY - 1)
            millis_of_day = value
        case _:
            raise ValueError(f"Unknown field: {field!r}")
    return check_instant(millis_from_civil(year, month, day, millis_of_day))


def add_field(instant: int, field: Field, amount: int) -> int:
    if amount == 0:
        return instant
    match field:
        case Field.YEAR | Field.MONTH_OF_YEAR:
            year, month, day, millis_of_day = civil_from_millis(instant)
            months = year * 12 + (month - 1)
            months += amount if field is Field.MONTH_OF_YEAR else amount * 12
            year, month = divmod(months, 12)
            month += 1
            day = min(day, days_in_month(_checked_year(year), month))
            return check_instant(millis_from_civil(year, month, day, millis_of_day))
        case Field.DAY_OF_MONTH | Field.DAY_OF_WEEK:
            return check_instant(instant + amount * MILLIS_PER_DAY)
        case Field.MILLIS_OF_DAY:
            return check_instant(instant + amount)
    raise ValueError(f"Unknown field: {field!r}")


def is_leap_year(instant: int) -> bool:
    return is_leap(get_field(instant, Field.YEAR))


def months_between(start: int, end: int) -> int:
    """Whole months elapsed from ``start`` to ``end`` (``start <= end``)."""
    start_year, start_month, _, _ = civil_from_millis(start)
    end_year, end_month, _, _ = civil_from_millis(end)
    months = (end_year - start_year) * 12 + (end_month - start_month)
    if months > 0 and add_field(start, Field.MONTH_OF_YEAR, months) > end:
        months -= 1
    return months


def millis_from_datetime(dt: datetime) -> int:
    """Naive datetimes are taken to be UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - _EPOCH
    return (delta.days * 86400 + delta.seconds) * MILLIS_PER_SECOND + (
        delta.microseconds // 1000
    )


def datetime_from_millis(instant: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=instant)
