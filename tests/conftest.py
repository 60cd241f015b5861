from datetime import datetime

import pytest

from tzcompiler import MAX_YEAR, MIN_YEAR, DateTimeZoneBuilder, FixedClock
from tzcompiler.chrono import millis_from_datetime

BUILD_TIME = millis_from_datetime(datetime(2025, 1, 1))


def los_angeles_builder() -> DateTimeZoneBuilder:
    return (
        DateTimeZoneBuilder(clock=FixedClock(BUILD_TIME))
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
        .add_recurring_savings("PDT", 3600000, 1967, 1973, "w", 4, -1, 7, False, 7200000)
        .add_recurring_savings("PST", 0, 1967, 2006, "w", 10, -1, 7, False, 7200000)
        .add_recurring_savings("PDT", 3600000, 1974, 1974, "w", 1, 6, 0, False, 7200000)
        .add_recurring_savings("PDT", 3600000, 1975, 1975, "w", 2, 23, 0, False, 7200000)
        .add_recurring_savings("PDT", 3600000, 1976, 1986, "w", 4, -1, 7, False, 7200000)
        .add_recurring_savings("PDT", 3600000, 1987, 2006, "w", 4, 1, 7, True, 7200000)
        .add_recurring_savings("PDT", 3600000, 2007, MAX_YEAR, "w", 3, 8, 7, True, 7200000)
        .add_recurring_savings("PST", 0, 2007, MAX_YEAR, "w", 11, 1, 7, True, 7200000)
    )


@pytest.fixture(scope="session")
def los_angeles():
    """America/Los_Angeles with its US rules since 1967."""
    return los_angeles_builder().to_date_time_zone("America/Los_Angeles")


@pytest.fixture
def build_time() -> int:
    return BUILD_TIME
