import logging
from datetime import datetime

import pytest

from tzcompiler import chrono
from tzcompiler.chrono import Field
from tzcompiler.models import Transition
from tzcompiler.recurrence import MAX_YEAR, MIN_YEAR, OfYear, Recurrence, Rule
from tzcompiler.rule_set import RuleSet
from tzcompiler.zones import DSTZone

PST = -28_800_000
HOUR = 3_600_000
YEAR_LIMIT = 2125


def _millis(*args) -> int:
    return chrono.millis_from_datetime(datetime(*args))


def _rule(name_key, save_millis, from_year, to_year, of_year) -> Rule:
    return Rule(Recurrence(of_year, name_key, save_millis), from_year, to_year)


def _pacific_1950s(year_limit=YEAR_LIMIT) -> RuleSet:
    rule_set = RuleSet(year_limit)
    rule_set.standard_offset = PST
    rule_set.add_rule(
        _rule("PDT", HOUR, 1950, 1966, OfYear("w", 4, -1, 7, False, 2 * HOUR))
    )
    rule_set.add_rule(
        _rule("PST", 0, 1950, 1966, OfYear("w", 10, -1, 7, False, 2 * HOUR))
    )
    return rule_set


def _all_transitions(rule_set: RuleSet, millis=chrono.MIN_INSTANT, save_millis=0):
    transitions = []
    while (transition := rule_set.next_transition(millis, save_millis)) is not None:
        transitions.append(transition)
        millis = transition.millis
        save_millis = transition.save_millis
    return transitions


def test_duplicate_rules_are_ignored():
    rule_set = _pacific_1950s()
    rule_set.add_rule(
        _rule("PDT", HOUR, 1950, 1966, OfYear("w", 4, -1, 7, False, 2 * HOUR))
    )
    assert len(rule_set.rules) == 2


def test_transitions_alternate_until_rules_run_out():
    rule_set = _pacific_1950s()
    transitions = _all_transitions(rule_set)

    assert len(transitions) == 2 * (1966 - 1950 + 1)
    assert [t.name_key for t in transitions[:4]] == ["PDT", "PST", "PDT", "PST"]
    assert transitions[0].millis == _millis(1950, 4, 30, 10)
    assert transitions[0].wall_offset == PST + HOUR
    assert transitions[0].standard_offset == PST
    assert transitions[1].wall_offset == PST
    assert chrono.get_field(transitions[-1].millis, Field.YEAR) == 1966
    assert all(a.millis < b.millis for a, b in zip(transitions, transitions[1:]))
    # Exhausted rules are dropped
    assert rule_set.rules == ()


def test_copy_is_independent():
    rule_set = _pacific_1950s()
    snapshot = rule_set.copy()
    _all_transitions(snapshot)
    assert snapshot.rules == ()
    assert len(rule_set.rules) == 2
    assert _all_transitions(rule_set.copy()) == _all_transitions(rule_set.copy())


def test_year_limit_stops_precalculation(caplog):
    rule_set = RuleSet(2030)
    rule_set.add_rule(_rule("DST", HOUR, 2020, MAX_YEAR, OfYear("u", 4, 1)))
    rule_set.add_rule(_rule("STD", 0, 2020, MAX_YEAR, OfYear("u", 10, 1)))

    with caplog.at_level(logging.DEBUG, logger="tzcompiler.rule_set"):
        transitions = _all_transitions(rule_set)

    assert len(transitions) == 20
    assert chrono.get_field(transitions[-1].millis, Field.YEAR) == 2029
    assert "Year limit 2030 reached" in caplog.text


def test_tie_goes_to_later_rule():
    rule_set = RuleSet(YEAR_LIMIT)
    rule_set.add_rule(_rule("AAA", 0, 2000, 2000, OfYear("u", 6, 1)))
    rule_set.add_rule(_rule("BBB", HOUR, 2000, 2000, OfYear("u", 6, 1)))

    transition = rule_set.next_transition(_millis(2000, 1, 1), 0)
    assert transition == Transition(_millis(2000, 6, 1), "BBB", HOUR, 0)


def test_upper_limit():
    rule_set = _pacific_1950s()
    assert rule_set.upper_limit(0) == chrono.MAX_INSTANT

    rule_set.set_upper_limit(1960, OfYear("w", 1, 1))
    assert rule_set.upper_limit(0) == _millis(1960, 1, 1, 8)
    assert rule_set.upper_limit(HOUR) == _millis(1960, 1, 1, 7)

    transitions = _all_transitions(rule_set)
    assert chrono.get_field(transitions[-1].millis, Field.YEAR) == 1959


def test_first_transition_with_fixed_savings():
    rule_set = RuleSet(YEAR_LIMIT)
    rule_set.standard_offset = -28_378_000
    rule_set.set_fixed_savings("LMT", 0)
    assert rule_set.first_transition(chrono.MIN_INSTANT) == Transition(
        chrono.MIN_INSTANT, "LMT", -28_378_000, -28_378_000
    )


def test_first_transition_replays_rules():
    rule_set = _pacific_1950s()
    july_1955 = _millis(1955, 7, 1)
    assert rule_set.first_transition(july_1955) == Transition(
        july_1955, "PDT", PST + HOUR, PST
    )
    # Replaying does not consume the rules
    assert len(rule_set.rules) == 2


def test_first_transition_on_exact_hit():
    rule_set = _pacific_1950s()
    start = _millis(1950, 4, 30, 10)
    assert rule_set.first_transition(start) == Transition(start, "PDT", PST + HOUR, PST)


def test_first_transition_before_any_rule_uses_standard_rule():
    rule_set = _pacific_1950s()
    first = _millis(1900, 1, 1)
    assert rule_set.first_transition(first) == Transition(first, "PST", PST, PST)


def test_first_transition_without_standard_rule():
    rule_set = RuleSet(YEAR_LIMIT)
    rule_set.standard_offset = PST
    rule_set.add_rule(_rule("PWT", HOUR, 1942, 1942, OfYear("w", 2, 9, 0, False, 2 * HOUR)))
    first = _millis(1900, 1, 1)
    assert rule_set.first_transition(first) == Transition(first, "PWT", PST, PST)


def test_first_transition_without_rules():
    assert RuleSet(YEAR_LIMIT).first_transition(chrono.MIN_INSTANT) is None


def test_build_tail_zone():
    rule_set = RuleSet(YEAR_LIMIT)
    rule_set.standard_offset = PST
    start = Recurrence(OfYear("w", 3, 8, 7, True, 2 * HOUR), "PDT", HOUR)
    end = Recurrence(OfYear("w", 11, 1, 7, True, 2 * HOUR), "PST", 0)
    rule_set.add_rule(Rule(start, 2007, MAX_YEAR))
    rule_set.add_rule(Rule(end, 2007, MAX_YEAR))

    assert rule_set.build_tail_zone("America/Los_Angeles") == DSTZone(
        "America/Los_Angeles", PST, start, end
    )
    assert not rule_set.is_perpetual()


def test_build_tail_zone_needs_two_endless_rules():
    assert _pacific_1950s().build_tail_zone("Test") is None

    rule_set = _pacific_1950s()
    rule_set.add_rule(_rule("PDT", HOUR, 2007, MAX_YEAR, OfYear("w", 3, 8, 7, True)))
    assert rule_set.build_tail_zone("Test") is None


@pytest.mark.parametrize(
    "fixed_savings, expected",
    [
        (None, True),
        (("PST", 0), False),
    ],
)
def test_is_perpetual(fixed_savings, expected):
    rule_set = RuleSet(YEAR_LIMIT)
    rule_set.add_rule(_rule("DST", HOUR, MIN_YEAR, MAX_YEAR, OfYear("w", 4, 1)))
    rule_set.add_rule(_rule("STD", 0, MIN_YEAR, MAX_YEAR, OfYear("w", 10, 1)))
    if fixed_savings is not None:
        rule_set.set_fixed_savings(*fixed_savings)
    assert rule_set.is_perpetual() is expected


def test_repr_lists_rules():
    assert "PDT" in repr(_pacific_1950s())
