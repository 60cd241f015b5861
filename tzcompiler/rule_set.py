import logging

from . import chrono
from .chrono import Field
from .models import Transition
from .recurrence import MAX_YEAR, MIN_YEAR, UNBOUNDED_PAST_SPAN, OfYear, Rule
from .zones import DSTZone

logger = logging.getLogger(__name__)


class RuleSet:
    """
    The rules of one era of a zone, between two cutovers.

    Resolving transitions consumes rules as they run out, so resolve a
    ``copy()`` whenever the original is needed again.
    """

    def __init__(self, year_limit: int) -> None:
        # Precalculation stops in year_limit; rules with no starting year are
        # taken to start two centuries before it.
        self._year_limit = year_limit
        self.standard_offset = 0
        self._rules: list[Rule] = []
        self._initial_name_key: str | None = None
        self._initial_save_millis = 0
        # Upper limit is exclusive.
        self._upper_year = MAX_YEAR
        self._upper_of_year: OfYear | None = None

    def copy(self) -> "RuleSet":
        rule_set = RuleSet(self._year_limit)
        rule_set.standard_offset = self.standard_offset
        rule_set._rules = list(self._rules)
        rule_set._initial_name_key = self._initial_name_key
        rule_set._initial_save_millis = self._initial_save_millis
        rule_set._upper_year = self._upper_year
        rule_set._upper_of_year = self._upper_of_year
        return rule_set

    @property
    def rules(self) -> tuple[Rule, ...]:
        return tuple(self._rules)

    @property
    def floor_year(self) -> int:
        return self._year_limit - UNBOUNDED_PAST_SPAN

    def set_fixed_savings(self, name_key: str, save_millis: int) -> None:
        self._initial_name_key = name_key
        self._initial_save_millis = save_millis

    def add_rule(self, rule: Rule) -> None:
        if rule not in self._rules:
            self._rules.append(rule)

    def set_upper_limit(self, year: int, of_year: OfYear) -> None:
        self._upper_year = year
        self._upper_of_year = of_year

    def upper_limit(self, save_millis: int) -> int:
        """
        Instant of the closing cutover given the savings in effect just before
        it, or the end of time if this rule set is open-ended.
        """
        if self._upper_of_year is None or self._upper_year == MAX_YEAR:
            return chrono.MAX_INSTANT
        return self._upper_of_year.set_instant(
            self._upper_year, self.standard_offset, save_millis
        )

    def first_transition(self, first_millis: int) -> Transition | None:
        """
        The name key and offsets in effect at ``first_millis``, where this rule
        set takes over, as a transition at that instant.
        """
        if self._initial_name_key is not None:
            # Explicitly set, so the rules are not consulted.
            return Transition(
                first_millis,
                self._initial_name_key,
                self.standard_offset + self._initial_save_millis,
                self.standard_offset,
            )

        rules = list(self._rules)

        # Replay the rules from the beginning of time up to first_millis and
        # keep whatever was in effect there.
        millis = chrono.MIN_INSTANT
        save_millis = 0
        first = None

        while True:
            next_transition = self.next_transition(millis, save_millis)
            if next_transition is None:
                break
            millis = next_transition.millis

            if millis == first_millis:
                first = Transition(
                    first_millis,
                    next_transition.name_key,
                    next_transition.wall_offset,
                    next_transition.standard_offset,
                )
                break

            if millis > first_millis:
                if first is None:
                    # No rule reaches back to first_millis; the first rule
                    # without savings gives the most accurate name key.
                    first = next(
                        (
                            Transition(
                                first_millis,
                                rule.name_key,
                                self.standard_offset + rule.save_millis,
                                self.standard_offset,
                            )
                            for rule in rules
                            if rule.save_millis == 0
                        ),
                        None,
                    )
                if first is None:
                    first = Transition(
                        first_millis,
                        next_transition.name_key,
                        self.standard_offset,
                        self.standard_offset,
                    )
                break

            # Best so far; a later rule may land closer to first_millis.
            first = Transition(
                first_millis,
                next_transition.name_key,
                next_transition.wall_offset,
                next_transition.standard_offset,
            )
            save_millis = next_transition.save_millis

        self._rules = rules
        return first

    def next_transition(self, instant: int, save_millis: int) -> Transition | None:
        """
        The earliest rule occurrence after ``instant``, or None once the rules
        are exhausted, the year limit is reached, or the upper limit is hit.
        Rules that can no longer occur are dropped from this rule set.

        The result may repeat the zone's current state; callers filter with
        ``Transition.is_transition_from``.
        """
        next_rule = None
        next_millis = chrono.MAX_INSTANT
        active: list[Rule] = []

        for rule in self._rules:
            candidate = rule.next(
                instant, self.standard_offset, save_millis, floor_year=self.floor_year
            )
            if candidate <= instant:
                continue
            active.append(rule)
            # On a tie the later rule wins, so newer rules override older ones.
            if candidate <= next_millis:
                next_rule = rule
                next_millis = candidate

        self._rules = active

        if next_rule is None:
            return None

        if chrono.get_field(next_millis, Field.YEAR) >= self._year_limit:
            logger.debug("Year limit %d reached, stopping precalculation", self._year_limit)
            return None

        if next_millis >= self.upper_limit(save_millis):
            return None

        return Transition(
            next_millis,
            next_rule.name_key,
            self.standard_offset + next_rule.save_millis,
            self.standard_offset,
        )

    def build_tail_zone(self, zone_id: str) -> DSTZone | None:
        """
        With exactly two rules left that both run forever, the rest of the
        zone is a simple DST cycle. Which rule is the start and which the end
        does not matter.
        """
        if len(self._rules) != 2:
            return None
        start_rule, end_rule = self._rules
        if start_rule.to_year != MAX_YEAR or end_rule.to_year != MAX_YEAR:
            return None
        return DSTZone(
            zone_id, self.standard_offset, start_rule.recurrence, end_rule.recurrence
        )

    def is_perpetual(self) -> bool:
        """True when two rules without any year bounds are all there is."""
        return (
            self._initial_name_key is None
            and self._upper_of_year is None
            and len(self._rules) == 2
            and all(
                rule.from_year == MIN_YEAR and rule.to_year == MAX_YEAR
                for rule in self._rules
            )
        )

    def __repr__(self) -> str:
        return (
            f"RuleSet(standard_offset={self.standard_offset!r}, "
            f"rules={self._rules!r}, "
            f"initial_name_key={self._initial_name_key!r}, "
            f"initial_save_millis={self._initial_save_millis!r}, "
            f"upper_year={self._upper_year!r}, "
            f"upper_of_year={self._upper_of_year!r})"
        )
