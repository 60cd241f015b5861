import logging
import sys

from .builder import DateTimeZoneBuilder
from .chrono import datetime_from_millis
from .clock import SystemClock
from .recurrence import MAX_YEAR, MIN_YEAR
from .tzif import to_tzif_bytes

logging.basicConfig(level=logging.INFO)

TIMEZONE_NAME = "America/Los_Angeles"

zone = (
    DateTimeZoneBuilder()
    .add_cutover(MIN_YEAR, "w", 1, 1, 0, False, 0)
    .set_standard_offset(-28378000)
    .set_fixed_savings("LMT", 0)
    .add_cutover(1883, "w", 11, 18, 0, False, 43200000)
    .set_standard_offset(-28800000)
    .add_recurring_savings("PDT", 3600000, 1918, 1919, "w", 3, -1, 7, False, 7200000)
    .add_recurring_savings("PST", 0, 1918, 1919, "w", 10, -1, 7, False, 7200000)
    .add_recurring_savings("PWT", 3600000, 1942, 1942, "w", 2, 9, 0, False, 7200000)
    .add_recurring_savings("PPT", 3600000, 1945, 1945, "u", 8, 14, 0, False, 82800000)
    .add_recurring_savings("PST", 0, 1945, 1945, "w", 9, 30, 0, False, 7200000)
    .add_recurring_savings("PDT", 3600000, 1948, 1948, "w", 3, 14, 0, False, 7200000)
    .add_recurring_savings("PST", 0, 1949, 1949, "w", 1, 1, 0, False, 7200000)
    .add_recurring_savings("PDT", 3600000, 1950, 1966, "w", 4, -1, 7, False, 3600000)
    .add_recurring_savings("PST", 0, 1950, 1961, "w", 9, -1, 7, False, 7200000)
    .add_recurring_savings("PST", 0, 1962, 1966, "w", 10, -1, 7, False, 7200000)
    .add_recurring_savings("PDT", 3600000, 1967, 1973, "w", 4, -1, 7, False, 7200000)
    .add_recurring_savings("PST", 0, 1967, 2006, "w", 10, -1, 7, False, 7200000)
    .add_recurring_savings("PDT", 3600000, 1974, 1974, "w", 1, 6, 0, False, 7200000)
    .add_recurring_savings("PDT", 3600000, 1975, 1975, "w", 2, 23, 0, False, 7200000)
    .add_recurring_savings("PDT", 3600000, 1976, 1986, "w", 4, -1, 7, False, 7200000)
    .add_recurring_savings("PDT", 3600000, 1987, 2006, "w", 4, 1, 7, True, 7200000)
    .add_recurring_savings("PDT", 3600000, 2007, MAX_YEAR, "w", 3, 8, 7, True, 7200000)
    .add_recurring_savings("PST", 0, 2007, MAX_YEAR, "w", 11, 1, 7, True, 7200000)
    .to_date_time_zone(TIMEZONE_NAME)
)

now = SystemClock().current_millis()
resolution = zone.resolve(now)
print(f"{TIMEZONE_NAME}: {zone!r}")
print(f"Now {resolution.name_key}, offset {resolution.wall_offset} ms")
if resolution.next_transition is not None:
    print(f"Next transition at {datetime_from_millis(resolution.next_transition)}")

if len(sys.argv) > 1:
    with open(sys.argv[1], "wb") as file:
        file.write(to_tzif_bytes(zone))
