import struct
from dataclasses import astuple, dataclass
from typing import IO

_MAGIC = b"TZif"
# magic, version, 15 reserved bytes, then the six counts
_HEADER = struct.Struct(">4s1c15x6I")


@dataclass
class TimeZoneInfoHeader:
    version: int
    is_utc_flag_count: int
    wall_standard_flag_count: int
    leap_second_transitions_count: int
    transitions_count: int
    local_time_type_count: int
    timezone_abbrev_byte_count: int

    @classmethod
    def read(cls, file: IO[bytes]) -> "TimeZoneInfoHeader":
        raw = file.read(_HEADER.size)
        if len(raw) != _HEADER.size:
            raise ValueError("Invalid TZif file: truncated header.")
        magic, version_byte, *counts = _HEADER.unpack(raw)
        if magic != _MAGIC:
            raise ValueError("Invalid TZif file: Magic sequence not found.")
        if version_byte == b"\x00":
            return cls(1, *counts)
        if not version_byte.isdigit():
            raise ValueError(f"Invalid TZif file: unknown version {version_byte!r}.")
        return cls(int(version_byte), *counts)

    def write(self, file: IO[bytes]) -> None:
        version, *counts = astuple(self)
        version_byte = b"\x00" if version < 2 else str(version).encode("ascii")
        file.write(_HEADER.pack(_MAGIC, version_byte, *counts))
