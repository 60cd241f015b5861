from dataclasses import dataclass

from . import chrono
from .chrono import Field, IllegalFieldValueError
from .models import ReferenceMode

MIN_YEAR = -(2**31)
MAX_YEAR = 2**31 - 1

# How far back a rule unbounded in the past is replayed.
UNBOUNDED_PAST_SPAN = 200


@dataclass(frozen=True)
class OfYear:
    """
    A yearly point in time: month, day of month, optional day of week and a
    time of day, measured against UTC, standard time or wall time.

    A negative ``day_of_month`` counts back from the end of the month (-1 is
    the last day). When ``day_of_week`` (ISO, 1..7) is set and the day does not
    fall on it, the date advances to it when ``advance_day_of_week`` is true
    and retreats to it otherwise.
    """

    mode: ReferenceMode
    month_of_year: int
    day_of_month: int
    day_of_week: int = 0
    advance_day_of_week: bool = False
    millis_of_day: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", ReferenceMode.parse(self.mode))

    def set_instant(self, year: int, standard_offset: int, save_millis: int) -> int:
        """UTC instant of the occurrence in ``year``."""
        offset = self.mode.offset(standard_offset, save_millis)
        return chrono.check_instant(self._resolve(year, 1) - offset)

    def next(self, instant: int, standard_offset: int, save_millis: int) -> int:
        """First occurrence strictly after ``instant``."""
        offset = self.mode.offset(standard_offset, save_millis)
        local = instant + offset
        year = chrono.get_field(local, Field.YEAR)
        candidate = self._resolve(year, 1)
        while candidate <= local:
            year += 1
            candidate = self._resolve(year, 1)
        return chrono.check_instant(candidate - offset)

    def previous(self, instant: int, standard_offset: int, save_millis: int) -> int:
        """Last occurrence strictly before ``instant``."""
        offset = self.mode.offset(standard_offset, save_millis)
        local = instant + offset
        year = chrono.get_field(local, Field.YEAR)
        candidate = self._resolve(year, -1)
        while candidate >= local:
            year -= 1
            candidate = self._resolve(year, -1)
        return chrono.check_instant(candidate - offset)

    def _resolve(self, year: int, step: int) -> int:
        # Local (frame) instant of the occurrence in year. A Feb 29 date in a
        # common year moves to the nearest leap year in the direction of step.
        instant = chrono.year_start(year)
        instant = chrono.set_field(instant, Field.MONTH_OF_YEAR, self.month_of_year)
        try:
            instant = self._set_day_of_month(instant)
        except IllegalFieldValueError:
            if self.month_of_year != 2 or self.day_of_month != 29:
                raise
            while not chrono.is_leap_year(instant):
                instant = chrono.add_field(instant, Field.YEAR, step)
            instant = self._set_day_of_month(instant)

        if self.day_of_week != 0:
            instant = self._set_day_of_week(instant)

        # Lenient: times outside a single day roll into the neighbouring days.
        return chrono.add_field(instant, Field.MILLIS_OF_DAY, self.millis_of_day)

    def _set_day_of_month(self, instant: int) -> int:
        if self.day_of_month >= 0:
            return chrono.set_field(instant, Field.DAY_OF_MONTH, self.day_of_month)
        instant = chrono.set_field(instant, Field.DAY_OF_MONTH, 1)
        instant = chrono.add_field(instant, Field.MONTH_OF_YEAR, 1)
        return chrono.add_field(instant, Field.DAY_OF_MONTH, self.day_of_month)

    def _set_day_of_week(self, instant: int) -> int:
        days_to_add = self.day_of_week - chrono.get_field(instant, Field.DAY_OF_WEEK)
        if days_to_add == 0:
            return instant
        if self.advance_day_of_week:
            if days_to_add < 0:
                days_to_add += 7
        elif days_to_add > 0:
            days_to_add -= 7
        return chrono.add_field(instant, Field.DAY_OF_WEEK, days_to_add)


@dataclass(frozen=True)
class Recurrence:
    """
    An OfYear that switches the zone to ``name_key`` with ``save_millis`` of
    daylight saving on top of the standard offset.
    """

    of_year: OfYear
    name_key: str
    save_millis: int

    def next(self, instant: int, standard_offset: int, save_millis: int) -> int:
        return self.of_year.next(instant, standard_offset, save_millis)

    def previous(self, instant: int, standard_offset: int, save_millis: int) -> int:
        return self.of_year.previous(instant, standard_offset, save_millis)

    def rename(self, name_key: str) -> "Recurrence":
        return Recurrence(self.of_year, name_key, self.save_millis)

    def rename_append(self, suffix: str) -> "Recurrence":
        return self.rename(self.name_key + suffix)


@dataclass(frozen=True)
class Rule:
    """
    A Recurrence in effect from ``from_year`` through ``to_year`` inclusive.
    ``MIN_YEAR`` and ``MAX_YEAR`` stand for an unbounded past and future.
    """

    recurrence: Recurrence
    from_year: int
    to_year: int

    @property
    def name_key(self) -> str:
        return self.recurrence.name_key

    @property
    def save_millis(self) -> int:
        return self.recurrence.save_millis

    @property
    def of_year(self) -> OfYear:
        return self.recurrence.of_year

    def next(
        self,
        instant: int,
        standard_offset: int,
        save_millis: int,
        floor_year: int | None = None,
    ) -> int:
        """
        Next occurrence after ``instant`` within the year range, or
        ``instant`` itself once the rule has run out.

        ``floor_year`` replaces an unbounded ``from_year`` when searching from
        the very beginning of time. A rule that ends before ``floor_year``
        starts ``UNBOUNDED_PAST_SPAN`` years before its last year instead.
        """
        wall_offset = standard_offset + save_millis
        test_instant = instant

        if instant == chrono.MIN_INSTANT:
            year = MIN_YEAR
        else:
            year = chrono.get_field(instant + wall_offset, Field.YEAR)

        from_year = self.from_year
        if from_year == MIN_YEAR and instant == chrono.MIN_INSTANT and floor_year is not None:
            if floor_year <= self.to_year:
                from_year = floor_year
            else:
                # Ended before the floor: replay the same span up to its end.
                from_year = self.to_year - UNBOUNDED_PAST_SPAN

        if year < from_year:
            # One millisecond early, in case the recurrence falls exactly at
            # the start of the year.
            test_instant = chrono.year_start(from_year) - wall_offset - 1

        next_millis = self.recurrence.next(test_instant, standard_offset, save_millis)

        if next_millis > instant:
            year = chrono.get_field(next_millis + wall_offset, Field.YEAR)
            if year > self.to_year:
                next_millis = instant

        return next_millis
