from datetime import datetime, timedelta, tzinfo

from . import chrono
from .cached_zone import DateTimeZone


class ZoneTzInfo(tzinfo):
    """
    Exposes a compiled zone as a ``datetime.tzinfo``.

    Local times in a gap or an overlap are disambiguated with ``fold``: fold=0
    takes the offset in effect before the transition and fold=1 the offset
    after it.
    """

    def __init__(self, zone: DateTimeZone) -> None:
        self.zone = zone

    @property
    def key(self) -> str:
        return self.zone.id

    def _offset_for_local(self, dt: datetime) -> int:
        local = chrono.millis_from_datetime(dt.replace(tzinfo=None, fold=0))
        zone = self.zone
        before = zone.offset_at(local - chrono.MILLIS_PER_DAY)
        after = zone.offset_at(local + chrono.MILLIS_PER_DAY)
        if before == after:
            return zone.offset_at(local - before)

        before_valid = zone.offset_at(local - before) == before
        after_valid = zone.offset_at(local - after) == after
        if before_valid and after_valid:
            # Overlap
            return after if dt.fold else before
        if before_valid:
            return before
        if after_valid:
            return after
        # Gap
        return after if dt.fold else before

    def _instant(self, dt: datetime) -> int:
        local = chrono.millis_from_datetime(dt.replace(tzinfo=None, fold=0))
        return local - self._offset_for_local(dt)

    def utcoffset(self, dt: datetime | None) -> timedelta | None:
        if dt is None:
            return None
        return timedelta(milliseconds=self._offset_for_local(dt))

    def dst(self, dt: datetime | None) -> timedelta | None:
        if dt is None:
            return None
        instant = self._instant(dt)
        return timedelta(
            milliseconds=self.zone.offset_at(instant)
            - self.zone.standard_offset_at(instant)
        )

    def tzname(self, dt: datetime | None) -> str | None:
        if dt is None:
            return None
        return self.zone.name_at(self._instant(dt))

    def fromutc(self, dt: datetime) -> datetime:
        if dt.tzinfo is not self:
            raise ValueError("fromutc: dt.tzinfo is not self")

        instant = chrono.millis_from_datetime(dt.replace(tzinfo=None))
        local = dt + timedelta(milliseconds=self.zone.offset_at(instant))
        if self._instant(local.replace(fold=0)) != instant:
            local = local.replace(fold=1)
        return local

    def __repr__(self) -> str:
        return f"ZoneTzInfo({self.zone.id!r})"
