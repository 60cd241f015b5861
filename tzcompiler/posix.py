import re
from dataclasses import dataclass
from typing import IO

from . import chrono
from .cached_zone import CachedDateTimeZone
from .models import ReferenceMode
from .recurrence import OfYear, Recurrence
from .zones import DSTZone, FixedZone, PrecalculatedZone

# Cumulative day counts of a common year, for J<n> dates.
_DAYS_BEFORE_MONTH = (0, 31, 59, 90, 120, 151, 181, 212, 243, 273, 304, 334, 365)


@dataclass
class PosixTzJulianDateTime:
    day_of_year: int  # 1..365, Feb 29 never counted
    hour: int
    minute: int
    second: int

    def to_of_year(self) -> OfYear:
        # Jn names the same calendar date every year.
        month = next(
            m for m in range(1, 13) if self.day_of_year <= _DAYS_BEFORE_MONTH[m]
        )
        day = self.day_of_year - _DAYS_BEFORE_MONTH[month - 1]
        return OfYear(ReferenceMode.WALL, month, day, 0, False, _millis_of_day(self))


@dataclass
class PosixTzOrdinalDateTime:
    day_index: int  # 0..365 (includes Feb 29)
    hour: int
    minute: int
    second: int

    def to_of_year(self) -> OfYear:
        raise ValueError(
            f"Zero-based day of year {self.day_index} has no fixed month and day"
        )


@dataclass
class PosixTzDateTime:
    month: int
    week: int  # 1..5 (5 = last)
    weekday: int  # POSIX: Sunday=0 ... Saturday=6
    hour: int
    minute: int
    second: int

    def to_of_year(self) -> OfYear:
        # POSIX Sunday=0 becomes ISO Sunday=7
        iso_weekday = self.weekday or 7
        if self.week < 5:
            # w-th occurrence: the first matching day on or after day 7w-6
            return OfYear(
                ReferenceMode.WALL,
                self.month,
                7 * (self.week - 1) + 1,
                iso_weekday,
                True,
                _millis_of_day(self),
            )
        # Last occurrence: back from the last day of the month
        return OfYear(
            ReferenceMode.WALL, self.month, -1, iso_weekday, False, _millis_of_day(self)
        )


PosixDate = PosixTzDateTime | PosixTzJulianDateTime | PosixTzOrdinalDateTime


def _millis_of_day(date: PosixDate) -> int:
    return (
        date.hour * 3600 + date.minute * 60 + date.second
    ) * chrono.MILLIS_PER_SECOND


@dataclass
class PosixTzInfo:
    posix_string: str
    standard_abbrev: str
    utc_offset_secs: int
    dst_abbrev: str | None
    dst_offset_secs: int | None
    dst_start: PosixDate | None
    dst_end: PosixDate | None

    @property
    def dst_difference_secs(self) -> int | None:
        if self.dst_offset_secs is None:
            return None
        return self.dst_offset_secs - self.utc_offset_secs

    def to_recurrences(self) -> tuple[Recurrence, Recurrence] | None:
        """
        The (start, end) recurrences of daylight saving, measured against the
        wall clock in effect before each change, or None without DST rules.
        """
        if self.dst_start is None or self.dst_end is None or self.dst_abbrev is None:
            return None
        save_millis = (self.dst_difference_secs or 3600) * chrono.MILLIS_PER_SECOND
        return (
            Recurrence(self.dst_start.to_of_year(), self.dst_abbrev, save_millis),
            Recurrence(self.dst_end.to_of_year(), self.standard_abbrev, 0),
        )

    @classmethod
    def read(cls, file: IO[bytes]) -> "PosixTzInfo | None":
        # The footer is the line after the newline that ends the v2 body
        _ = file.readline()
        posix_line = file.readline()
        if posix_line == b"":
            return None

        posix_string = posix_line.rstrip(b"\n\x00")
        if not posix_string:
            return None
        return cls.parse(posix_string.decode("utf-8"))

    @classmethod
    def parse(cls, posix_string: str) -> "PosixTzInfo":
        # Adapted from zoneinfo._zoneinfo._parse_tz_str
        local_tz, dst_start, dst_end = (
            posix_string.split(",") if "," in posix_string else (posix_string, "", "")
        )

        local_tz_parser = re.compile(
            r"""
            (?P<std>[^<0-9:.+-]+|<[a-zA-Z0-9+-]+>)
            (?:
                (?P<stdoff>[+-]?\d{1,3}(?::\d{2}(?::\d{2})?)?)
                (?:
                    (?P<dst>[^0-9:.+-]+|<[a-zA-Z0-9+-]+>)
                    (?P<dstoff>[+-]?\d{1,3}(?::\d{2}(?::\d{2})?)?)?
                )? # dst
            )? # stdoff
            """,
            re.ASCII | re.VERBOSE,
        )
        local_tz_match = local_tz_parser.fullmatch(local_tz)
        if local_tz_match is None:
            raise ValueError(f"{local_tz} is not a valid TZ string")

        standard_abbrev = local_tz_match.group("std").strip("<>")
        utc_offset = local_tz_match.group("stdoff")
        if utc_offset is None:
            raise ValueError(f"{local_tz!r} is missing required standard offset")
        utc_offset_secs = cls._read_offset(utc_offset)
        dst_abbrev = local_tz_match.group("dst")
        if dst_abbrev:
            dst_abbrev = dst_abbrev.strip("<>")
        dst_offset = local_tz_match.group("dstoff")
        if dst_offset:
            dst_offset_secs = cls._read_offset(dst_offset)
        elif dst_abbrev:
            dst_offset_secs = utc_offset_secs + 3600
        else:
            dst_offset_secs = None

        return cls(
            posix_string,
            standard_abbrev,
            utc_offset_secs,
            dst_abbrev,
            dst_offset_secs,
            cls._read_dst_transition_datetime(dst_start),
            cls._read_dst_transition_datetime(dst_end),
        )

    @classmethod
    def _read_offset(cls, posix_offset: str) -> int:
        # Adapted from zoneinfo._zoneinfo._parse_tz_delta
        offset_parser = re.compile(
            r"(?P<sign>[+-])?(?P<h>\d{1,3})(:(?P<m>\d{2})(:(?P<s>\d{2}))?)?",
            re.ASCII,
        )
        offset_match = offset_parser.fullmatch(posix_offset)
        if offset_match is None:
            raise ValueError(f"{posix_offset} is not a valid offset")

        h, m, s = (int(v or 0) for v in offset_match.group("h", "m", "s"))

        # POSIX constraints:
        # - hours 0..24 (not >24)
        # - minutes/seconds 0..59
        # - if hours == 24, then minutes == seconds == 0
        if h > 24:
            raise ValueError(f"Offset hours must be in [0, 24]: {posix_offset}")
        if not (0 <= m < 60 and 0 <= s < 60):
            raise ValueError(
                f"Offset minutes/seconds must be in [0, 59]: {posix_offset}"
            )
        if h == 24 and (m != 0 or s != 0):
            raise ValueError(f"24-hour offsets must be 24:00[:00]: {posix_offset}")

        total = h * 3600 + m * 60 + s
        # POSIX sign convention: positive means WEST of UTC => negative seconds
        if offset_match.group("sign") != "-":
            total = -total

        return total

    @classmethod
    def _read_dst_transition_datetime(cls, posix_datetime: str) -> PosixDate | None:
        date, *time = posix_datetime.split("/", 1)
        t = time[0] if time else None
        trans_time = cls._read_dst_transition_time(t) if t else (2, 0, 0)

        if not date:
            return None

        if date.startswith("M"):
            m = re.fullmatch(r"M(\d{1,2})\.(\d)\.(\d)", date)
            if m is None:
                raise ValueError(f"Invalid dst start/end date: {posix_datetime}")
            month, week, weekday = (int(x) for x in m.groups())
            if not (1 <= month <= 12 and 1 <= week <= 5 and 0 <= weekday <= 6):
                raise ValueError(f"Invalid M<m>.<w>.<d>: {posix_datetime}")
            return PosixTzDateTime(month, week, weekday, *trans_time)

        if date.startswith("J"):
            n = int(date[1:])
            if not (1 <= n <= 365):
                raise ValueError(f"J<n> must be 1..365: {posix_datetime}")
            return PosixTzJulianDateTime(n, *trans_time)

        # Plain numeric day-of-year (0..365), includes Feb 29
        if date.isdigit():
            n = int(date)
            if not (0 <= n <= 365):
                raise ValueError(f"<n> must be 0..365: {posix_datetime}")
            return PosixTzOrdinalDateTime(n, *trans_time)

        return None

    @classmethod
    def _read_dst_transition_time(cls, time_str):
        # Adapted from zoneinfo._zoneinfo._parse_transition_time
        transition_time_parser = re.compile(
            r"(?P<sign>[+-])?(?P<h>\d{1,3})(:(?P<m>\d{2})(:(?P<s>\d{2}))?)?",
            re.ASCII,
        )
        match = transition_time_parser.fullmatch(time_str)
        if match is None:
            raise ValueError(f"Invalid time: {time_str}")

        h, m, s = (int(v or 0) for v in match.group("h", "m", "s"))

        # bounds: hours 0..167, minutes/seconds 0..59
        if h > 167:
            raise ValueError(f"Hour must be in [0, 167]: {time_str}")
        if not (0 <= m < 60 and 0 <= s < 60):
            raise ValueError(f"Minutes/seconds must be in [0, 59]: {time_str}")

        if match.group("sign") == "-":
            h, m, s = -h, -m, -s

        return h, m, s


def _format_abbrev(name_key: str) -> str | None:
    if re.fullmatch(r"[A-Za-z]{3,}", name_key):
        return name_key
    if re.fullmatch(r"[A-Za-z0-9+-]{3,}", name_key):
        return f"<{name_key}>"
    return None


def _format_hms(total_secs: int, omit_zero_fields: bool = True) -> str:
    sign = "-" if total_secs < 0 else ""
    h, rest = divmod(abs(total_secs), 3600)
    m, s = divmod(rest, 60)
    if s:
        return f"{sign}{h}:{m:02d}:{s:02d}"
    if m or not omit_zero_fields:
        return f"{sign}{h}:{m:02d}"
    return f"{sign}{h}"


def _secs(millis: int) -> int | None:
    secs, remainder = divmod(millis, chrono.MILLIS_PER_SECOND)
    return None if remainder else secs


def _format_offset(offset_millis: int) -> str | None:
    secs = _secs(offset_millis)
    if secs is None or abs(secs) > 24 * 3600:
        return None
    # POSIX counts west of UTC as positive
    return _format_hms(-secs)


def _format_date(
    recurrence: Recurrence, standard_offset: int, save_before: int
) -> str | None:
    of_year = recurrence.of_year
    # POSIX times are read off the wall clock in effect before the change.
    if of_year.mode is ReferenceMode.UTC:
        wall_millis = of_year.millis_of_day + standard_offset + save_before
    elif of_year.mode is ReferenceMode.STANDARD:
        wall_millis = of_year.millis_of_day + save_before
    else:
        wall_millis = of_year.millis_of_day
    wall_secs = _secs(wall_millis)
    if wall_secs is None or abs(wall_secs) >= 168 * 3600:
        return None

    if of_year.day_of_week == 0:
        if of_year.day_of_month <= 0 or (
            of_year.month_of_year == 2 and of_year.day_of_month == 29
        ):
            return None
        date = f"J{_DAYS_BEFORE_MONTH[of_year.month_of_year - 1] + of_year.day_of_month}"
    else:
        weekday = of_year.day_of_week % 7
        if of_year.advance_day_of_week and of_year.day_of_month in (1, 8, 15, 22):
            week = (of_year.day_of_month - 1) // 7 + 1
        elif not of_year.advance_day_of_week and of_year.day_of_month == -1:
            week = 5
        else:
            return None
        date = f"M{of_year.month_of_year}.{week}.{weekday}"

    if wall_secs == 7200:
        return date
    return f"{date}/{_format_hms(wall_secs)}"


def format_posix_string(zone) -> str | None:
    """
    POSIX TZ string for the zone's behaviour after its last transition, or
    None when its names, offsets or rules cannot be written that way.
    """
    match zone:
        case CachedDateTimeZone():
            return format_posix_string(zone.uncached_zone)
        case PrecalculatedZone(tail_zone=None):
            last = zone.transitions[-1]
            return _format_fixed(last.name_key, last.wall_offset)
        case PrecalculatedZone():
            return format_posix_string(zone.tail_zone)
        case FixedZone():
            return _format_fixed(zone.name_key, zone.wall_offset)
        case DSTZone():
            return _format_dst(zone)
    return None


def _format_fixed(name_key: str, offset_millis: int) -> str | None:
    abbrev = _format_abbrev(name_key)
    offset = _format_offset(offset_millis)
    if abbrev is None or offset is None:
        return None
    return f"{abbrev}{offset}"


def _format_dst(zone: DSTZone) -> str | None:
    start, end = zone.start_recurrence, zone.end_recurrence
    if start.save_millis == 0:
        start, end = end, start
    if end.save_millis != 0 or start.save_millis == 0:
        return None

    standard = _format_fixed(end.name_key, zone.standard_offset)
    dst_abbrev = _format_abbrev(start.name_key)
    start_date = _format_date(start, zone.standard_offset, end.save_millis)
    end_date = _format_date(end, zone.standard_offset, start.save_millis)
    if standard is None or dst_abbrev is None or start_date is None or end_date is None:
        return None

    dst = dst_abbrev
    if start.save_millis != 3600 * chrono.MILLIS_PER_SECOND:
        dst_offset = _format_offset(zone.standard_offset + start.save_millis)
        if dst_offset is None:
            return None
        dst += dst_offset
    return f"{standard}{dst},{start_date},{end_date}"
