import struct
from dataclasses import dataclass, field
from typing import IO

from .models import LeapSecondTransition, TimeTypeInfo
from .tzif_header import TimeZoneInfoHeader

# 4-byte signed utoff, 1-byte isdst, 1-byte abbreviation index
_TTINFO = struct.Struct(">i?B")


def _time_code(version: int) -> str:
    return "q" if version >= 2 else "i"


def _read_exact(file: IO[bytes], size: int) -> bytes:
    data = file.read(size)
    if len(data) != size:
        raise ValueError("Invalid TZif file: truncated data block.")
    return data


def _unpack(file: IO[bytes], fmt: str) -> tuple:
    return struct.unpack(fmt, _read_exact(file, struct.calcsize(fmt)))


@dataclass
class TimeZoneInfoBody:
    """
    One data block of a TZif file. Transition and leap second times are
    whole seconds since the epoch; ``abbrev_bytes`` holds the NUL-terminated
    designations the ttinfo entries index into.
    """

    transition_times: list[int]
    time_type_indices: list[int]
    time_type_infos: list[TimeTypeInfo]
    abbrev_bytes: str
    leap_second_transitions: list[LeapSecondTransition] = field(default_factory=list)
    wall_standard_flags: list[int] = field(default_factory=list)
    is_utc_flags: list[int] = field(default_factory=list)

    @property
    def timezone_abbrevs(self) -> list[str]:
        return list(
            dict.fromkeys(
                self.get_abbrev_by_index(ttinfo.abbrev_index)
                for ttinfo in self.time_type_infos
            )
        )

    def get_abbrev_by_index(self, index: int) -> str:
        if not 0 <= index < len(self.abbrev_bytes):
            raise IndexError("Index out of range")
        return self.abbrev_bytes[index:].partition("\x00")[0]

    def header(self, version: int) -> TimeZoneInfoHeader:
        return TimeZoneInfoHeader(
            version,
            len(self.is_utc_flags),
            len(self.wall_standard_flags),
            len(self.leap_second_transitions),
            len(self.transition_times),
            len(self.time_type_infos),
            len(self.abbrev_bytes.encode("ascii")),
        )

    @classmethod
    def read(
        cls, file: IO[bytes], header_data: TimeZoneInfoHeader, version: int = 1
    ) -> "TimeZoneInfoBody":
        time_code = _time_code(version)
        count = header_data.transitions_count

        transition_times = list(_unpack(file, f">{count}{time_code}"))
        time_type_indices = list(_read_exact(file, count))
        time_type_infos = [
            TimeTypeInfo(*_TTINFO.unpack(_read_exact(file, _TTINFO.size)))
            for _ in range(header_data.local_time_type_count)
        ]
        abbrev_bytes = _read_exact(
            file, header_data.timezone_abbrev_byte_count
        ).decode("ascii")
        leap_second_transitions = [
            LeapSecondTransition(*_unpack(file, f">{time_code}i"))
            for _ in range(header_data.leap_second_transitions_count)
        ]
        wall_standard_flags = list(
            _read_exact(file, header_data.wall_standard_flag_count)
        )
        is_utc_flags = list(_read_exact(file, header_data.is_utc_flag_count))

        if any(index >= len(time_type_infos) for index in time_type_indices):
            raise ValueError("Invalid TZif file: time type index out of range.")
        if any(ttinfo.abbrev_index >= len(abbrev_bytes) for ttinfo in time_type_infos):
            raise ValueError("Invalid TZif file: abbreviation index out of range.")

        return cls(
            transition_times,
            time_type_indices,
            time_type_infos,
            abbrev_bytes,
            leap_second_transitions,
            wall_standard_flags,
            is_utc_flags,
        )

    def write(self, file: IO[bytes], version: int = 1) -> None:
        time_code = _time_code(version)
        file.write(
            struct.pack(
                f">{len(self.transition_times)}{time_code}", *self.transition_times
            )
        )
        file.write(bytes(self.time_type_indices))
        for ttinfo in self.time_type_infos:
            file.write(
                _TTINFO.pack(ttinfo.utc_offset_secs, ttinfo.is_dst, ttinfo.abbrev_index)
            )
        file.write(self.abbrev_bytes.encode("ascii"))
        for leap in self.leap_second_transitions:
            file.write(
                struct.pack(f">{time_code}i", leap.transition_time, leap.correction)
            )
        file.write(bytes(self.wall_standard_flags))
        file.write(bytes(self.is_utc_flags))
