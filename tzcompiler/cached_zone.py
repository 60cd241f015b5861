import bisect
from collections import namedtuple

from .models import ZoneResolution
from .zones import DSTZone, FixedZone, PrecalculatedZone, ZoneVariant, resolve_zone

DEFAULT_CACHE_SIZE = 512

# Periods are 2**32 milliseconds, roughly 49.7 days.
_PERIOD_SHIFT = 32
_PERIOD_MASK = -1 << _PERIOD_SHIFT

CachedRange = namedtuple(
    "CachedRange", ["range_start", "name_key", "wall_offset", "standard_offset"]
)
PeriodInfo = namedtuple("PeriodInfo", ["period", "range_starts", "ranges"])


class CachedDateTimeZone:
    """
    Memoizes the offsets and name keys of a zone, one period at a time.

    Each slot holds an immutable PeriodInfo for the most recently queried
    period that maps to it. Slots are replaced whole, so concurrent readers
    see either the old info or the new one and at worst compute a period
    twice.
    """

    def __init__(self, zone: ZoneVariant, cache_size: int = DEFAULT_CACHE_SIZE) -> None:
        if cache_size < 1:
            raise ValueError(f"Cache size must be positive: {cache_size}")
        # Round up to a power of two so the period can be masked to a slot.
        cache_size = 1 << (cache_size - 1).bit_length()
        self._zone = zone
        self._slot_mask = cache_size - 1
        self._slots: list[PeriodInfo | None] = [None] * cache_size

    @classmethod
    def for_zone(cls, zone, cache_size: int = DEFAULT_CACHE_SIZE) -> "CachedDateTimeZone":
        if isinstance(zone, CachedDateTimeZone):
            return zone
        return cls(zone, cache_size)

    @property
    def id(self) -> str:
        return self._zone.id

    @property
    def uncached_zone(self) -> ZoneVariant:
        return self._zone

    @property
    def cache_size(self) -> int:
        return self._slot_mask + 1

    @property
    def is_fixed(self) -> bool:
        return self._zone.is_fixed

    def name_at(self, instant: int) -> str:
        return self._range_at(instant).name_key

    def offset_at(self, instant: int) -> int:
        return self._range_at(instant).wall_offset

    def standard_offset_at(self, instant: int) -> int:
        return self._range_at(instant).standard_offset

    def is_standard_offset(self, instant: int) -> bool:
        cached = self._range_at(instant)
        return cached.wall_offset == cached.standard_offset

    def next_transition(self, instant: int) -> int:
        return self._zone.next_transition(instant)

    def previous_transition(self, instant: int) -> int:
        return self._zone.previous_transition(instant)

    def resolve(self, instant: int) -> ZoneResolution:
        return resolve_zone(self, instant)

    def _range_at(self, instant: int) -> CachedRange:
        info = self._period_info(instant)
        index = bisect.bisect_right(info.range_starts, instant) - 1
        return info.ranges[max(index, 0)]

    def _period_info(self, instant: int) -> PeriodInfo:
        period = instant >> _PERIOD_SHIFT
        slot = period & self._slot_mask
        info = self._slots[slot]
        if info is None or info.period != period:
            info = self._create_period_info(instant)
            self._slots[slot] = info
        return info

    def _create_period_info(self, instant: int) -> PeriodInfo:
        zone = self._zone
        range_start = instant & _PERIOD_MASK
        period_end = range_start | ~_PERIOD_MASK
        ranges = []
        while True:
            ranges.append(
                CachedRange(
                    range_start,
                    zone.name_at(range_start),
                    zone.offset_at(range_start),
                    zone.standard_offset_at(range_start),
                )
            )
            next_start = zone.next_transition(range_start)
            if next_start == range_start or next_start > period_end:
                break
            range_start = next_start
        return PeriodInfo(
            instant >> _PERIOD_SHIFT,
            tuple(cached.range_start for cached in ranges),
            tuple(ranges),
        )

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CachedDateTimeZone):
            return self._zone == other._zone
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._zone)

    def __repr__(self) -> str:
        return f"CachedDateTimeZone({self._zone!r})"


DateTimeZone = FixedZone | DSTZone | PrecalculatedZone | CachedDateTimeZone
