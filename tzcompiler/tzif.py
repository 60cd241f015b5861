import io
import logging
import os
import sysconfig
import threading
from importlib import resources
from typing import IO

from . import chrono
from .builder import assemble_zone, build_fixed_zone
from .cached_zone import CachedDateTimeZone, DateTimeZone
from .models import TimeTypeInfo, Transition
from .posix import PosixTzInfo, format_posix_string
from .tzif_body import TimeZoneInfoBody
from .tzif_header import TimeZoneInfoHeader
from .zones import DSTZone, FixedZone, PrecalculatedZone

logger = logging.getLogger(__name__)

TZIF_VERSION = 2

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def _zone_history(zone: DateTimeZone) -> tuple[list[Transition], DSTZone | None]:
    match zone:
        case CachedDateTimeZone():
            return _zone_history(zone.uncached_zone)
        case PrecalculatedZone():
            return zone.transitions, zone.tail_zone
        case FixedZone():
            return [
                Transition(
                    chrono.MIN_INSTANT,
                    zone.name_key,
                    zone.wall_offset,
                    zone.standard_offset,
                )
            ], None
        case DSTZone():
            standard = (
                zone.end_recurrence
                if zone.end_recurrence.save_millis == 0
                else zone.start_recurrence
            )
            return [
                Transition(
                    chrono.MIN_INSTANT,
                    standard.name_key,
                    zone.standard_offset + standard.save_millis,
                    zone.standard_offset,
                )
            ], zone
    raise TypeError(f"Not a zone: {zone!r}")


def _build_body(
    transitions: list[Transition], version: int
) -> TimeZoneInfoBody:
    # Type 0 describes local time before the first transition.
    initial, history = transitions[0], transitions[1:]
    if initial.millis != chrono.MIN_INSTANT:
        initial, history = Transition(chrono.MIN_INSTANT, "UTC", 0, 0), transitions

    abbrevs: dict[str, int] = {}
    abbrev_bytes = ""
    type_indices: dict[tuple[int, bool, str], int] = {}
    time_type_infos: list[TimeTypeInfo] = []

    def type_index(transition: Transition) -> int:
        nonlocal abbrev_bytes
        key = (
            transition.wall_offset // chrono.MILLIS_PER_SECOND,
            transition.wall_offset != transition.standard_offset,
            transition.name_key,
        )
        if key not in type_indices:
            if transition.name_key not in abbrevs:
                abbrevs[transition.name_key] = len(abbrev_bytes)
                abbrev_bytes += transition.name_key + "\x00"
            type_indices[key] = len(time_type_infos)
            time_type_infos.append(
                TimeTypeInfo(key[0], key[1], abbrevs[transition.name_key])
            )
        return type_indices[key]

    type_index(initial)
    transition_times = []
    time_type_indices = []
    for transition in history:
        secs = transition.millis // chrono.MILLIS_PER_SECOND
        if version < 2 and not _INT32_MIN <= secs <= _INT32_MAX:
            continue
        transition_times.append(secs)
        time_type_indices.append(type_index(transition))

    return TimeZoneInfoBody(
        transition_times, time_type_indices, time_type_infos, abbrev_bytes
    )


def write_tzif(zone: DateTimeZone, file: IO[bytes]) -> None:
    """
    Write the zone as a version 2 TZif file: a 32-bit block for older
    readers, the full 64-bit block, then the POSIX footer.
    """
    transitions, tail_zone = _zone_history(zone)
    footer = format_posix_string(zone)
    if footer is None:
        if tail_zone is not None:
            logger.warning(
                "%s: rules after the last transition cannot be written as a TZ string",
                zone.id,
            )
        footer = ""

    v1_body = _build_body(transitions, 1)
    v1_body.header(TZIF_VERSION).write(file)
    v1_body.write(file, 1)

    v2_body = _build_body(transitions, TZIF_VERSION)
    v2_body.header(TZIF_VERSION).write(file)
    v2_body.write(file, TZIF_VERSION)
    file.write(b"\n" + footer.encode("ascii") + b"\n")


def to_tzif_bytes(zone: DateTimeZone) -> bytes:
    buffer = io.BytesIO()
    write_tzif(zone, buffer)
    return buffer.getvalue()


def _standard_offset_secs(body: TimeZoneInfoBody, position: int) -> int:
    """
    Standard offset of the ttinfo at ``position`` in the transition list. A
    DST type takes the offset of a neighbouring standard type, or one hour
    less than its own.
    """
    ttinfo = body.time_type_infos[body.time_type_indices[position]]
    if not ttinfo.is_dst:
        return ttinfo.utc_offset_secs

    for neighbour in (position - 1, position + 1):
        if 0 <= neighbour < len(body.time_type_indices):
            neighbour_tt = body.time_type_infos[body.time_type_indices[neighbour]]
            if not neighbour_tt.is_dst:
                return neighbour_tt.utc_offset_secs

    # fallback if neighbours are DST or missing
    return ttinfo.utc_offset_secs - 3600


def _initial_transition(body: TimeZoneInfoBody) -> Transition:
    # Prefer a non-DST ttinfo if present, else fall back to index 0
    tt = next((x for x in body.time_type_infos if not x.is_dst), body.time_type_infos[0])
    offset = tt.utc_offset_secs * chrono.MILLIS_PER_SECOND
    standard_offset = offset if not tt.is_dst else offset - 3600 * chrono.MILLIS_PER_SECOND
    return Transition(
        chrono.MIN_INSTANT,
        body.get_abbrev_by_index(tt.abbrev_index),
        offset,
        standard_offset,
    )


def read_tzif(file: IO[bytes], zone_id: str) -> DateTimeZone:
    header_data = TimeZoneInfoHeader.read(file)
    body = TimeZoneInfoBody.read(file, header_data)
    footer = None
    if header_data.version >= 2:
        v2_header_data = TimeZoneInfoHeader.read(file)
        body = TimeZoneInfoBody.read(file, v2_header_data, v2_header_data.version)
        footer = PosixTzInfo.read(file)

    if not body.time_type_infos:
        raise ValueError("Invalid TZif file: no local time types.")

    tail_zone = None
    if footer is not None:
        recurrences = footer.to_recurrences()
        if recurrences is not None:
            start, end = recurrences
            tail_zone = DSTZone(
                zone_id, footer.utc_offset_secs * chrono.MILLIS_PER_SECOND, start, end
            )

    if not body.transition_times:
        if tail_zone is not None:
            return tail_zone
        if footer is not None:
            offset = footer.utc_offset_secs * chrono.MILLIS_PER_SECOND
            return build_fixed_zone(zone_id, footer.standard_abbrev, offset, offset)
        initial = _initial_transition(body)
        return build_fixed_zone(
            zone_id, initial.name_key, initial.wall_offset, initial.standard_offset
        )

    transitions = [_initial_transition(body)]
    for position, secs in enumerate(body.transition_times):
        ttinfo = body.time_type_infos[body.time_type_indices[position]]
        millis = min(
            max(secs * chrono.MILLIS_PER_SECOND, chrono.MIN_INSTANT),
            chrono.MAX_INSTANT,
        )
        transition = Transition(
            millis,
            body.get_abbrev_by_index(ttinfo.abbrev_index),
            ttinfo.utc_offset_secs * chrono.MILLIS_PER_SECOND,
            _standard_offset_secs(body, position) * chrono.MILLIS_PER_SECOND,
        )
        if millis == chrono.MIN_INSTANT:
            # A transition at the dawn of time sets the initial state.
            transitions[0] = transition
        elif transition.is_transition_from(transitions[-1]):
            transitions.append(transition)

    return assemble_zone(zone_id, True, transitions, tail_zone)


def from_tzif_bytes(data: bytes, zone_id: str) -> DateTimeZone:
    return read_tzif(io.BytesIO(data), zone_id)


def load_zone(zone_id: str) -> DateTimeZone:
    """
    Load a zone by IANA key from the TZDIR directory, the zoneinfo search
    path, or the ``tzdata`` package, in that order.
    """
    if os.path.isabs(zone_id):
        raise ValueError(
            "Absolute paths are not allowed in load_zone(); use load_zone_from_path() instead."
        )

    normalized_name = _validate_timezone_key(zone_id)

    search_paths: list[str] = []
    tzdir_override = os.environ.get("TZDIR")
    if tzdir_override:
        search_paths.append(os.path.realpath(tzdir_override))
    search_paths.extend(_compute_default_tzpath())

    for tz_root in search_paths:
        candidate = os.path.join(tz_root, normalized_name)
        if os.path.isfile(candidate):
            real = os.path.realpath(candidate)
            logger.debug("Loading %s from %s", zone_id, real)
            with open(real, "rb") as file:
                return read_tzif(file, zone_id)

    # Fallback to tzdata package if present
    with _load_tzdata_from_package(normalized_name) as file:
        logger.debug("Loading %s from the tzdata package", zone_id)
        return read_tzif(file, zone_id)


def load_zone_from_path(path: str, zone_id: str | None = None) -> DateTimeZone:
    """Read a TZif file directly from a filesystem path."""
    real = os.path.realpath(path)
    with open(real, "rb") as file:
        return read_tzif(file, zone_id or real)


def _compute_default_tzpath() -> tuple[str, ...]:
    env_var = os.environ.get("PYTHONTZPATH") or sysconfig.get_config_var("TZPATH")
    if env_var:
        return tuple(path for path in env_var.split(os.pathsep) if path)

    # Fallback paths align with CPython's defaults
    return (
        "/usr/share/zoneinfo",
        "/usr/share/lib/zoneinfo",
        "/etc/zoneinfo",
    )


def _validate_timezone_key(key: str) -> str:
    if os.path.isabs(key):
        raise ValueError("Absolute paths are not allowed as timezone keys")

    # Normalize and ensure the normalized form does not change length (prevents ../)
    normalized = os.path.normpath(key)
    if len(normalized) != len(key) or normalized in (os.curdir, os.pardir, ""):
        raise ValueError(f"Invalid timezone name: {key!r}")

    # Ensure the path stays within a sentinel base
    _base = os.path.normpath(os.path.join("_", "_"))[:-1]
    resolved = os.path.normpath(os.path.join(_base, normalized))
    if not resolved.startswith(_base):
        raise ValueError(f"Invalid timezone name: {key!r}")

    return normalized


def _load_tzdata_from_package(key: str) -> IO[bytes]:
    components = key.split("/")
    package_name = ".".join(["tzdata.zoneinfo"] + components[:-1])
    resource_name = components[-1]
    try:
        return resources.files(package_name).joinpath(resource_name).open("rb")
    except (ImportError, FileNotFoundError, UnicodeEncodeError) as exc:
        raise FileNotFoundError(f"No time zone found with key {key!r}") from exc


class ZoneProvider:
    """
    Loads zones by id once and hands out the same instance afterwards.
    Zones added with ``register`` take precedence over files on disk.
    """

    def __init__(self) -> None:
        self._zones: dict[str, DateTimeZone] = {}
        self._lock = threading.Lock()

    def get(self, zone_id: str) -> DateTimeZone:
        with self._lock:
            zone = self._zones.get(zone_id)
        if zone is not None:
            return zone
        zone = load_zone(zone_id)
        with self._lock:
            # Another thread may have loaded it first; keep that one.
            return self._zones.setdefault(zone_id, zone)

    def register(self, zone: DateTimeZone, zone_id: str | None = None) -> None:
        with self._lock:
            self._zones[zone_id or zone.id] = zone

    def clear(self) -> None:
        with self._lock:
            self._zones.clear()

    def __contains__(self, zone_id: str) -> bool:
        with self._lock:
            return zone_id in self._zones
