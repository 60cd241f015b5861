import bisect
import logging
from dataclasses import dataclass

from . import chrono
from .models import Transition, ZoneBuildError, ZoneResolution
from .recurrence import Recurrence

logger = logging.getLogger(__name__)

# Gaps of two years or more are one-off historical changes and are left out of
# the spacing estimate in is_cachable().
_CACHABLE_GAP_LIMIT = (366 + 365) * chrono.MILLIS_PER_DAY
_CACHABLE_MIN_AVERAGE_DAYS = 25

SUMMER_SUFFIX = "-Summer"


def resolve_zone(zone, instant: int) -> ZoneResolution:
    next_transition = zone.next_transition(instant)
    return ZoneResolution(
        zone.id,
        instant,
        zone.offset_at(instant),
        zone.standard_offset_at(instant),
        zone.name_at(instant),
        next_transition=next_transition if next_transition > instant else None,
    )


@dataclass(frozen=True)
class FixedZone:
    """
    A zone whose offset never changes.
    """

    id: str
    name_key: str
    wall_offset: int
    standard_offset: int

    @property
    def is_fixed(self) -> bool:
        return True

    def name_at(self, instant: int) -> str:
        return self.name_key

    def offset_at(self, instant: int) -> int:
        return self.wall_offset

    def standard_offset_at(self, instant: int) -> int:
        return self.standard_offset

    def is_standard_offset(self, instant: int) -> bool:
        return self.wall_offset == self.standard_offset

    def next_transition(self, instant: int) -> int:
        return instant

    def previous_transition(self, instant: int) -> int:
        return instant

    def resolve(self, instant: int) -> ZoneResolution:
        return resolve_zone(self, instant)


UTC = FixedZone("UTC", "UTC", 0, 0)


def _guarded_search(search, instant: int, standard_offset: int, save_millis: int) -> int:
    # Near the ends of the timeline a recurrence search can run off the
    # calendar; the query instant then stands in for "no transition".
    try:
        return search(instant, standard_offset, save_millis)
    except (ValueError, ArithmeticError):
        return instant


@dataclass(frozen=True)
class DSTZone:
    """
    An endless cycle between two recurrences over one standard offset.
    Either recurrence may be the one that starts daylight saving.
    """

    id: str
    standard_offset: int
    start_recurrence: Recurrence
    end_recurrence: Recurrence

    @property
    def is_fixed(self) -> bool:
        return False

    def name_at(self, instant: int) -> str:
        return self._find_matching_recurrence(instant).name_key

    def offset_at(self, instant: int) -> int:
        return self.standard_offset + self._find_matching_recurrence(instant).save_millis

    def standard_offset_at(self, instant: int) -> int:
        return self.standard_offset

    def is_standard_offset(self, instant: int) -> bool:
        return self._find_matching_recurrence(instant).save_millis == 0

    def next_transition(self, instant: int) -> int:
        start = _guarded_search(
            self.start_recurrence.next,
            instant,
            self.standard_offset,
            self.end_recurrence.save_millis,
        )
        end = _guarded_search(
            self.end_recurrence.next,
            instant,
            self.standard_offset,
            self.start_recurrence.save_millis,
        )
        return end if start > end else start

    def previous_transition(self, instant: int) -> int:
        # Start one millisecond later so an instant exactly on a transition
        # reports that transition.
        instant += 1

        start = _guarded_search(
            self.start_recurrence.previous,
            instant,
            self.standard_offset,
            self.end_recurrence.save_millis,
        )
        end = _guarded_search(
            self.end_recurrence.previous,
            instant,
            self.standard_offset,
            self.start_recurrence.save_millis,
        )
        return (start if start > end else end) - 1

    def resolve(self, instant: int) -> ZoneResolution:
        return resolve_zone(self, instant)

    def _find_matching_recurrence(self, instant: int) -> Recurrence:
        # Whichever recurrence comes next ends the current period, so the
        # other one is in effect now. Ties go to the end recurrence.
        start = _guarded_search(
            self.start_recurrence.next,
            instant,
            self.standard_offset,
            self.end_recurrence.save_millis,
        )
        end = _guarded_search(
            self.end_recurrence.next,
            instant,
            self.standard_offset,
            self.start_recurrence.save_millis,
        )
        return self.start_recurrence if start > end else self.end_recurrence


def fix_duplicate_tail_name_keys(tail_zone: DSTZone) -> DSTZone:
    """
    Tell the two recurrences of a DST cycle apart when they share a name key;
    the one with more savings gets the summer suffix.
    """
    start, end = tail_zone.start_recurrence, tail_zone.end_recurrence
    if start.name_key != end.name_key or start.save_millis == end.save_millis:
        return tail_zone
    logger.info("Fixing duplicate recurrent name key %s", start.name_key)
    if start.save_millis > end.save_millis:
        start = start.rename_append(SUMMER_SUFFIX)
    else:
        end = end.rename_append(SUMMER_SUFFIX)
    return DSTZone(tail_zone.id, tail_zone.standard_offset, start, end)


class PrecalculatedZone:
    """
    A zone backed by a table of transitions, optionally continued by a
    DSTZone past the last one.
    """

    def __init__(
        self,
        zone_id: str,
        transitions: tuple[int, ...],
        wall_offsets: tuple[int, ...],
        standard_offsets: tuple[int, ...],
        name_keys: tuple[str, ...],
        tail_zone: DSTZone | None = None,
    ) -> None:
        # All tuples have the same length.
        self.id = zone_id
        self._transitions = transitions
        self._wall_offsets = wall_offsets
        self._standard_offsets = standard_offsets
        self._name_keys = name_keys
        self.tail_zone = tail_zone

    @classmethod
    def create(
        cls,
        zone_id: str,
        output_id: bool,
        transitions: list[Transition],
        tail_zone: DSTZone | None,
    ) -> "PrecalculatedZone":
        if not transitions:
            raise ZoneBuildError(f"{zone_id}: no transitions to precalculate")

        last = None
        for transition in transitions:
            if not transition.is_transition_from(last):
                raise ZoneBuildError(
                    f"{zone_id}: transition {transition!r} does not follow {last!r}"
                )
            last = transition

        millis = [transition.millis for transition in transitions]
        wall_offsets = [transition.wall_offset for transition in transitions]
        standard_offsets = [transition.standard_offset for transition in transitions]
        name_keys = [transition.name_key for transition in transitions]

        cls._fix_duplicate_name_keys(millis, wall_offsets, standard_offsets, name_keys)
        if tail_zone is not None:
            tail_zone = fix_duplicate_tail_name_keys(tail_zone)

        return cls(
            zone_id if output_id else "",
            tuple(millis),
            tuple(wall_offsets),
            tuple(standard_offsets),
            tuple(name_keys),
            tail_zone,
        )

    @staticmethod
    def _fix_duplicate_name_keys(
        millis: list[int],
        wall_offsets: list[int],
        standard_offsets: list[int],
        name_keys: list[str],
    ) -> None:
        # Some zones (Australia) use one name key for summer and winter.
        # The half of a ~6 month pair with more offset gets a suffix.
        i = 0
        while i < len(name_keys) - 1:
            current_offset, next_offset = wall_offsets[i], wall_offsets[i + 1]
            if (
                current_offset != next_offset
                and standard_offsets[i] == standard_offsets[i + 1]
                and name_keys[i] == name_keys[i + 1]
                and 4 < chrono.months_between(millis[i], millis[i + 1]) < 8
            ):
                logger.info(
                    "Fixing duplicate name key %s between %s and %s",
                    name_keys[i],
                    millis[i],
                    millis[i + 1],
                )
                if current_offset > next_offset:
                    name_keys[i] = name_keys[i] + SUMMER_SUFFIX
                else:
                    name_keys[i + 1] = name_keys[i + 1] + SUMMER_SUFFIX
                    i += 1
            i += 1

    @property
    def is_fixed(self) -> bool:
        return False

    @property
    def transitions(self) -> list[Transition]:
        return [
            Transition(millis, name_key, wall_offset, standard_offset)
            for millis, name_key, wall_offset, standard_offset in zip(
                self._transitions,
                self._name_keys,
                self._wall_offsets,
                self._standard_offsets,
            )
        ]

    def _entry_index(self, instant: int) -> int | None:
        """
        Index of the table entry in force at ``instant``: -1 before the first
        transition, None after the last one.
        """
        index = bisect.bisect_right(self._transitions, instant)
        if index > 0 and self._transitions[index - 1] == instant:
            return index - 1
        if index < len(self._transitions):
            return index - 1
        return None

    def name_at(self, instant: int) -> str:
        index = self._entry_index(instant)
        if index is None:
            if self.tail_zone is None:
                return self._name_keys[-1]
            return self.tail_zone.name_at(instant)
        if index < 0:
            return "UTC"
        return self._name_keys[index]

    def offset_at(self, instant: int) -> int:
        index = self._entry_index(instant)
        if index is None:
            if self.tail_zone is None:
                return self._wall_offsets[-1]
            return self.tail_zone.offset_at(instant)
        if index < 0:
            return 0
        return self._wall_offsets[index]

    def standard_offset_at(self, instant: int) -> int:
        index = self._entry_index(instant)
        if index is None:
            if self.tail_zone is None:
                return self._standard_offsets[-1]
            return self.tail_zone.standard_offset_at(instant)
        if index < 0:
            return 0
        return self._standard_offsets[index]

    def is_standard_offset(self, instant: int) -> bool:
        return self.offset_at(instant) == self.standard_offset_at(instant)

    def next_transition(self, instant: int) -> int:
        transitions = self._transitions
        index = bisect.bisect_right(transitions, instant)
        if index < len(transitions):
            return transitions[index]
        if self.tail_zone is None:
            return instant
        return self.tail_zone.next_transition(max(instant, transitions[-1]))

    def previous_transition(self, instant: int) -> int:
        """
        One millisecond before the last transition at or before ``instant``.
        A first entry at the start of time only records the initial state, so
        instants before the second entry answer with ``instant`` itself.
        """
        transitions = self._transitions
        index = bisect.bisect_left(transitions, instant)
        if index < len(transitions) and transitions[index] == instant:
            if instant > chrono.MIN_INSTANT:
                return instant - 1
            return instant
        if index < len(transitions):
            if index > 0:
                previous = transitions[index - 1]
                if previous > chrono.MIN_INSTANT:
                    return previous - 1
            return instant
        if self.tail_zone is not None:
            previous = self.tail_zone.previous_transition(instant)
            if previous < instant:
                return previous
        previous = transitions[index - 1]
        if previous > chrono.MIN_INSTANT:
            return previous - 1
        return instant

    def resolve(self, instant: int) -> ZoneResolution:
        return resolve_zone(self, instant)

    def is_cachable(self) -> bool:
        """
        Caching pays off when transitions are spread out: at an average of 25
        days or more between them, a cache lookup makes about two tests.
        """
        if self.tail_zone is not None:
            return True
        transitions = self._transitions
        if len(transitions) <= 1:
            return False

        gaps = [
            later - earlier
            for earlier, later in zip(transitions, transitions[1:])
            if later - earlier < _CACHABLE_GAP_LIMIT
        ]
        if not gaps:
            return False
        average_days = sum(gaps) / len(gaps) / chrono.MILLIS_PER_DAY
        return average_days >= _CACHABLE_MIN_AVERAGE_DAYS

    def __len__(self) -> int:
        return len(self._transitions)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrecalculatedZone):
            return NotImplemented
        return (
            self.id == other.id
            and self._transitions == other._transitions
            and self._name_keys == other._name_keys
            and self._wall_offsets == other._wall_offsets
            and self._standard_offsets == other._standard_offsets
            and self.tail_zone == other.tail_zone
        )

    def __hash__(self) -> int:
        return hash((self.id, self._transitions, self.tail_zone))

    def __repr__(self) -> str:
        return (
            f"PrecalculatedZone(id={self.id!r}, "
            f"transitions={len(self._transitions)}, "
            f"tail_zone={self.tail_zone!r})"
        )


ZoneVariant = FixedZone | DSTZone | PrecalculatedZone
