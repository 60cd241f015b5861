from dataclasses import dataclass
from enum import Enum


class ZoneBuildError(ValueError):
    """
    Raised when rule data cannot be compiled into a zone.
    """


class ReferenceMode(Enum):
    """
    Clock a rule's date and time of day are measured against.
    """

    UTC = "u"
    STANDARD = "s"
    WALL = "w"

    @classmethod
    def parse(cls, mode: "str | ReferenceMode") -> "ReferenceMode":
        if isinstance(mode, ReferenceMode):
            return mode
        try:
            return cls(mode)
        except ValueError:
            raise ZoneBuildError(f"Unknown mode: {mode!r}") from None

    def offset(self, standard_offset: int, save_millis: int) -> int:
        """Offset to add to a UTC instant to reach this clock."""
        match self:
            case ReferenceMode.WALL:
                return standard_offset + save_millis
            case ReferenceMode.STANDARD:
                return standard_offset
            case _:
                return 0


@dataclass(frozen=True)
class Transition:
    """
    A change of wall offset or name key at an instant.
    """

    millis: int
    name_key: str
    wall_offset: int
    standard_offset: int

    @property
    def save_millis(self) -> int:
        return self.wall_offset - self.standard_offset

    def is_transition_from(self, other: "Transition | None") -> bool:
        # A change of standard offset alone is not a transition.
        if other is None:
            return True
        return self.millis > other.millis and (
            self.wall_offset != other.wall_offset or self.name_key != other.name_key
        )


@dataclass(frozen=True)
class ZoneResolution:
    """
    Resolution of a zone at a specific instant.
    """

    zone_id: str
    instant: int
    wall_offset: int
    standard_offset: int
    name_key: str
    next_transition: int | None = None

    @property
    def save_millis(self) -> int:
        return self.wall_offset - self.standard_offset

    @property
    def is_dst(self) -> bool:
        return self.wall_offset != self.standard_offset

    @property
    def local_millis(self) -> int:
        return self.instant + self.wall_offset


@dataclass
class LeapSecondTransition:
    """
    Represents a leap second entry in a TZif file.
    """

    transition_time: int
    correction: int


@dataclass(frozen=True)
class TimeTypeInfo:
    """
    Represents a ttinfo structure in a TZif file.
    """

    utc_offset_secs: int
    is_dst: bool
    abbrev_index: int
