from datetime import datetime, timedelta, timezone

import pytest

from tzcompiler.tzinfo import ZoneTzInfo
from tzcompiler.zones import UTC


@pytest.fixture
def pacific(los_angeles) -> ZoneTzInfo:
    return ZoneTzInfo(los_angeles)


@pytest.mark.parametrize(
    "dt, offset_hours, name, dst_hours",
    [
        (datetime(2025, 1, 15, 12), -8, "PST", 0),
        (datetime(2025, 7, 1, 12), -7, "PDT", 1),
        (datetime(1943, 7, 1), -7, "PWT", 1),
        (datetime(1960, 7, 1), -8, "PST", 0),
        (datetime(2100, 7, 1), -7, "PDT", 1),
    ],
)
def test_offsets(pacific, dt, offset_hours, name, dst_hours):
    aware = dt.replace(tzinfo=pacific)
    assert aware.utcoffset() == timedelta(hours=offset_hours)
    assert aware.tzname() == name
    assert aware.dst() == timedelta(hours=dst_hours)


def test_local_mean_time(pacific):
    aware = datetime(1850, 1, 1, tzinfo=pacific)
    assert aware.utcoffset() == timedelta(seconds=-28378)
    assert aware.tzname() == "LMT"


@pytest.mark.parametrize(
    "dt, fold, offset_hours, name",
    [
        # Spring forward: 02:30 never happens
        (datetime(2025, 3, 9, 2, 30), 0, -8, "PST"),
        (datetime(2025, 3, 9, 2, 30), 1, -7, "PDT"),
        # Fall back: 01:30 happens twice
        (datetime(2025, 11, 2, 1, 30), 0, -7, "PDT"),
        (datetime(2025, 11, 2, 1, 30), 1, -8, "PST"),
        # Unambiguous times ignore fold
        (datetime(2025, 11, 2, 3, 30), 1, -8, "PST"),
        (datetime(2025, 3, 9, 3, 30), 0, -7, "PDT"),
    ],
)
def test_gaps_and_overlaps(pacific, dt, fold, offset_hours, name):
    aware = dt.replace(tzinfo=pacific, fold=fold)
    assert aware.utcoffset() == timedelta(hours=offset_hours)
    assert aware.tzname() == name


@pytest.mark.parametrize(
    "utc, local, fold",
    [
        (datetime(2025, 11, 2, 8, 30), datetime(2025, 11, 2, 1, 30), 0),
        (datetime(2025, 11, 2, 9, 30), datetime(2025, 11, 2, 1, 30), 1),
        (datetime(2025, 3, 9, 10, 30), datetime(2025, 3, 9, 3, 30), 0),
    ],
)
def test_fromutc_sets_fold(pacific, utc, local, fold):
    converted = utc.replace(tzinfo=timezone.utc).astimezone(pacific)
    assert converted.replace(tzinfo=None) == local
    assert converted.fold == fold


def test_fromutc_rejects_foreign_datetimes(pacific):
    with pytest.raises(ValueError):
        pacific.fromutc(datetime(2025, 1, 1, tzinfo=timezone.utc))


def test_astimezone_round_trip(pacific):
    utc = datetime(2024, 10, 1, tzinfo=timezone.utc)
    while utc < datetime(2025, 12, 1, tzinfo=timezone.utc):
        local = utc.astimezone(pacific)
        assert local.astimezone(timezone.utc) == utc
        utc += timedelta(minutes=30)


def test_none_datetime(pacific):
    assert pacific.utcoffset(None) is None
    assert pacific.dst(None) is None
    assert pacific.tzname(None) is None


def test_utc():
    tz = ZoneTzInfo(UTC)
    aware = datetime(2025, 7, 1, tzinfo=tz)
    assert aware.utcoffset() == timedelta(0)
    assert aware.dst() == timedelta(0)
    assert aware.tzname() == "UTC"
    assert tz.key == "UTC"


def test_repr(pacific):
    assert repr(pacific) == "ZoneTzInfo('America/Los_Angeles')"
    assert pacific.key == "America/Los_Angeles"


def test_agrees_with_zoneinfo(pacific):
    zoneinfo = pytest.importorskip("zoneinfo")
    try:
        reference = zoneinfo.ZoneInfo("America/Los_Angeles")
    except zoneinfo.ZoneInfoNotFoundError:
        pytest.skip("No tz database available")

    local = datetime(2025, 3, 8)
    while local < datetime(2025, 11, 4):
        for fold in (0, 1):
            ours = local.replace(tzinfo=pacific, fold=fold)
            theirs = local.replace(tzinfo=reference, fold=fold)
            assert ours.utcoffset() == theirs.utcoffset(), ours
            assert ours.tzname() == theirs.tzname(), ours
        local += timedelta(minutes=30)
