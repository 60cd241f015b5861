import logging
import statistics as stats
import time
from datetime import datetime, timedelta

import pytest

from tzcompiler import chrono
from tzcompiler.tzif import load_zone


def _percentile(values, pct):
    """
    pct in [0,100]. Uses nearest-rank after sorting.
    """
    if not values:
        return float("nan")
    if pct <= 0:
        return values[0]
    if pct >= 100:
        return values[-1]
    k = int(round((pct / 100.0) * (len(values) - 1)))
    return values[k]


def _time_resolve(zones, instants, total_calls):
    timings = []
    start_wall = time.perf_counter()
    idx = 0
    zones_len = len(zones)
    instants_len = len(instants)

    while idx < total_calls:
        zone = zones[idx % zones_len]
        instant = instants[(idx // zones_len) % instants_len]

        t0 = time.perf_counter()
        res = zone.resolve(instant)
        # Access a couple of fields to ensure work isn't optimized away
        _ = res.local_millis, res.wall_offset, res.is_dst
        t1 = time.perf_counter()

        timings.append(t1 - t0)
        idx += 1

    return timings, time.perf_counter() - start_wall


def _log_timings(title, timings, total_time):
    timings.sort()
    total_calls = len(timings)
    ops_per_sec = total_calls / total_time if total_time > 0 else float("inf")

    def us(s):
        return f"{s * 1e6:,.1f} μs"

    logging.debug(f"\n=== {title} ===")
    logging.debug(f"Total calls     : {total_calls:,}")
    logging.debug(f"Total wall time : {total_time:,.3f} s")
    logging.debug(f"Throughput      : {ops_per_sec:,.1f} ops/s")
    logging.debug(f"Mean            : {us(stats.fmean(timings))}")
    logging.debug(f"Median          : {us(timings[len(timings) // 2])}")
    logging.debug(f"p90             : {us(_percentile(timings, 90))}")
    logging.debug(f"p99             : {us(_percentile(timings, 99))}")
    logging.debug(f"Min / Max       : {us(timings[0])} / {us(timings[-1])}")


_DATES = [
    datetime(1900, 1, 1, 0, 0, 0),
    datetime(1950, 6, 1, 12, 0, 0),
    datetime(2000, 3, 26, 1, 59, 59),
    datetime(2024, 11, 3, 6, 59, 59),
    datetime(2025, 3, 9, 6, 59, 59),
    datetime(2039, 6, 2, 0, 0, 0),
    datetime(2060, 1, 1, 0, 0, 0),
]


def test_resolve_performance(los_angeles):
    instants = [chrono.millis_from_datetime(d) for d in _DATES]
    zones = [los_angeles, los_angeles.uncached_zone]

    timings, total_time = _time_resolve(zones, instants, 5000)
    _log_timings("resolve() performance", timings, total_time)
    assert len(timings) == 5000


def test_resolve_range_cache_performance(los_angeles):
    """
    Resolve many instants a few minutes apart, all inside one cached period,
    on the cached and the uncached zone.
    """
    base = datetime(2024, 1, 15, 0, 0, 0)
    instants = [
        chrono.millis_from_datetime(base + timedelta(minutes=5 * i)) for i in range(1000)
    ]

    for zone in (los_angeles, los_angeles.uncached_zone):
        timings, total_time = _time_resolve([zone], instants, len(instants))
        _log_timings(f"resolve() on {zone!r}", timings, total_time)


def test_loaded_zone_performance():
    zones = []
    for key in ("America/New_York", "Europe/London", "Australia/Sydney", "Asia/Kolkata"):
        try:
            zones.append(load_zone(key))
        except FileNotFoundError:
            pass
    if not zones:
        pytest.skip("No tz database available")

    instants = [chrono.millis_from_datetime(d) for d in _DATES]
    timings, total_time = _time_resolve(zones, instants, 5000)
    _log_timings("resolve() on loaded zones", timings, total_time)
