from .builder import DateTimeZoneBuilder
from .cached_zone import CachedDateTimeZone, DateTimeZone
from .chrono import MAX_INSTANT, MIN_INSTANT, IllegalFieldValueError
from .clock import FixedClock, OffsetClock, SystemClock
from .models import ReferenceMode, Transition, ZoneBuildError, ZoneResolution
from .recurrence import MAX_YEAR, MIN_YEAR, OfYear, Recurrence, Rule
from .rule_set import RuleSet
from .tzif import ZoneProvider, from_tzif_bytes, load_zone, to_tzif_bytes
from .tzinfo import ZoneTzInfo
from .zones import UTC, DSTZone, FixedZone, PrecalculatedZone

__all__ = [
    "CachedDateTimeZone",
    "DSTZone",
    "DateTimeZone",
    "DateTimeZoneBuilder",
    "FixedClock",
    "FixedZone",
    "IllegalFieldValueError",
    "MAX_INSTANT",
    "MAX_YEAR",
    "MIN_INSTANT",
    "MIN_YEAR",
    "OfYear",
    "OffsetClock",
    "PrecalculatedZone",
    "Recurrence",
    "ReferenceMode",
    "Rule",
    "RuleSet",
    "SystemClock",
    "Transition",
    "UTC",
    "ZoneBuildError",
    "ZoneProvider",
    "ZoneResolution",
    "ZoneTzInfo",
    "from_tzif_bytes",
    "load_zone",
    "to_tzif_bytes",
]
