import logging

from . import chrono
from .cached_zone import CachedDateTimeZone, DateTimeZone
from .chrono import Field
from .clock import SystemClock
from .models import ReferenceMode, Transition, ZoneBuildError
from .recurrence import MIN_YEAR, OfYear, Recurrence, Rule
from .rule_set import RuleSet
from .zones import (
    UTC,
    DSTZone,
    FixedZone,
    PrecalculatedZone,
    fix_duplicate_tail_name_keys,
)

logger = logging.getLogger(__name__)

# Never precalculate further than this many years past the current year.
# Nearly every zone stops far sooner, either on a simple DST cycle or on a
# final fixed offset.
YEAR_LIMIT_SPAN = 100


def build_fixed_zone(
    zone_id: str, name_key: str, wall_offset: int, standard_offset: int
) -> FixedZone:
    if zone_id == "UTC" and name_key == "UTC" and wall_offset == 0 and standard_offset == 0:
        return UTC
    return FixedZone(zone_id, name_key, wall_offset, standard_offset)


def add_transition(transitions: list[Transition], transition: Transition) -> bool:
    """
    Append ``transition`` if it changes anything. When it lands on the same
    local time as the last entry, it replaces that entry instead; the check
    repeats against the new last entry.

    Returns False when the transition was dropped.
    """
    while transitions:
        last = transitions[-1]
        if not transition.is_transition_from(last):
            return False

        offset_for_last = transitions[-2].wall_offset if len(transitions) >= 2 else 0
        last_local = last.millis + offset_for_last
        new_local = transition.millis + last.wall_offset

        if new_local != last_local:
            break
        transitions.pop()

    transitions.append(transition)
    return True


def assemble_zone(
    zone_id: str,
    output_id: bool,
    transitions: list[Transition],
    tail_zone: DSTZone | None,
) -> DateTimeZone:
    """Pick the simplest zone that represents the transitions and tail."""
    if not transitions:
        if tail_zone is not None:
            return fix_duplicate_tail_name_keys(tail_zone)
        return build_fixed_zone(zone_id, "UTC", 0, 0)
    if len(transitions) == 1 and tail_zone is None:
        transition = transitions[0]
        return build_fixed_zone(
            zone_id,
            transition.name_key,
            transition.wall_offset,
            transition.standard_offset,
        )

    zone = PrecalculatedZone.create(zone_id, output_id, transitions, tail_zone)
    if zone.is_cachable():
        return CachedDateTimeZone.for_zone(zone)
    return zone


class DateTimeZoneBuilder:
    """
    Compiles cutovers and daylight saving rules into a zone.

    The builder is mutable and meant for one thread; the zones it builds are
    immutable. America/Los_Angeles, with its history, reads::

        zone = (
            DateTimeZoneBuilder()
            .add_cutover(MIN_YEAR, "w", 1, 1, 0, False, 0)
            .set_standard_offset(-28378000)
            .set_fixed_savings("LMT", 0)
            .add_cutover(1883, "w", 11, 18, 0, False, 43200000)
            .set_standard_offset(-28800000)
            .add_recurring_savings("PDT", 3600000, 1918, 1919, "w", 3, -1, 7, False, 7200000)
            .add_recurring_savings("PST", 0, 1918, 1919, "w", 10, -1, 7, False, 7200000)
            ...
            .add_recurring_savings("PDT", 3600000, 2007, MAX_YEAR, "w", 3, 8, 7, True, 7200000)
            .add_recurring_savings("PST", 0, 2007, MAX_YEAR, "w", 11, 1, 7, True, 7200000)
            .to_date_time_zone("America/Los_Angeles")
        )
    """

    def __init__(self, clock=None) -> None:
        self._clock = clock if clock is not None else SystemClock()
        self._year_limit = (
            chrono.get_field(self._clock.current_millis(), Field.YEAR) + YEAR_LIMIT_SPAN
        )
        self._rule_sets: list[RuleSet] = []

    @property
    def year_limit(self) -> int:
        return self._year_limit

    def add_cutover(
        self,
        year: int,
        mode: str | ReferenceMode,
        month_of_year: int,
        day_of_month: int,
        day_of_week: int,
        advance_day_of_week: bool,
        millis_of_day: int,
    ) -> "DateTimeZoneBuilder":
        """
        Close the current rules at a cutover and start a new set. The standard
        offset of the new set defaults to 0.

        ``mode`` is "u", "s" or "w": the cutover is measured against UTC,
        standard time or wall time.
        """
        of_year = OfYear(
            ReferenceMode.parse(mode),
            month_of_year,
            day_of_month,
            day_of_week,
            advance_day_of_week,
            millis_of_day,
        )
        if self._rule_sets:
            self._rule_sets[-1].set_upper_limit(year, of_year)
        self._rule_sets.append(RuleSet(self._year_limit))
        return self

    def set_standard_offset(self, standard_offset: int) -> "DateTimeZoneBuilder":
        self._last_rule_set().standard_offset = standard_offset
        return self

    def set_fixed_savings(self, name_key: str, save_millis: int) -> "DateTimeZoneBuilder":
        self._last_rule_set().set_fixed_savings(name_key, save_millis)
        return self

    def add_recurring_savings(
        self,
        name_key: str,
        save_millis: int,
        from_year: int,
        to_year: int,
        mode: str | ReferenceMode,
        month_of_year: int,
        day_of_month: int,
        day_of_week: int,
        advance_day_of_week: bool,
        millis_of_day: int,
    ) -> "DateTimeZoneBuilder":
        """
        Add a daylight saving rule to the current set, in effect from
        ``from_year`` through ``to_year`` (``MIN_YEAR``/``MAX_YEAR`` for no
        bound). Ignored when ``from_year > to_year``.
        """
        if from_year <= to_year:
            of_year = OfYear(
                ReferenceMode.parse(mode),
                month_of_year,
                day_of_month,
                day_of_week,
                advance_day_of_week,
                millis_of_day,
            )
            rule = Rule(Recurrence(of_year, name_key, save_millis), from_year, to_year)
            self._last_rule_set().add_rule(rule)
        return self

    def _last_rule_set(self) -> RuleSet:
        if not self._rule_sets:
            self.add_cutover(MIN_YEAR, ReferenceMode.WALL, 1, 1, 0, False, 0)
        return self._rule_sets[-1]

    def to_date_time_zone(self, zone_id: str, output_id: bool = True) -> DateTimeZone:
        """
        Process all the rules and build the zone.

        ``output_id`` false leaves the id off a precalculated zone.
        """
        if not zone_id:
            raise ZoneBuildError("Zone id must not be empty")

        transitions: list[Transition] = []
        # Picks up the remaining transitions as an endless DST cycle.
        tail_zone: DSTZone | None = None

        rule_sets = self._rule_sets
        if len(rule_sets) == 1 and rule_sets[0].is_perpetual():
            # No history to tabulate.
            return assemble_zone(
                zone_id, output_id, transitions, rule_sets[0].build_tail_zone(zone_id)
            )

        millis = chrono.MIN_INSTANT
        save_millis = 0

        for index, rule_set in enumerate(rule_sets):
            is_last = index == len(rule_sets) - 1
            next_transition = rule_set.first_transition(millis)
            if next_transition is None:
                continue
            add_transition(transitions, next_transition)
            millis = next_transition.millis
            save_millis = next_transition.save_millis

            # Resolution consumes the rules.
            rule_set = rule_set.copy()

            while True:
                next_transition = rule_set.next_transition(millis, save_millis)
                if next_transition is None:
                    break
                if add_transition(transitions, next_transition) and tail_zone is not None:
                    # The transition after the tail's start is in; the seam is clean.
                    break
                millis = next_transition.millis
                save_millis = next_transition.save_millis
                if tail_zone is None and is_last:
                    # Once set, keep going for one more transition.
                    tail_zone = rule_set.build_tail_zone(zone_id)

            logger.debug(
                "%s: rule set %d resolved, %d transitions so far",
                zone_id,
                index,
                len(transitions),
            )
            millis = rule_set.upper_limit(save_millis)

        return assemble_zone(zone_id, output_id, transitions, tail_zone)

    build = to_date_time_zone
