"""Tests for constraints.py: schedule validation."""

from datetime import date, time, timedelta

from seasoncal.constraints import (
    format_validation_report, max_consecutive_games, validate_schedule,
)
from seasoncal.models import (
    DateKind, Field, Game, MatchDay, MatchDayKind, RestEvent, RestKind,
    ScheduleConfig, SpecialDate, Team, Timeslot,
)
from seasoncal.roundrobin import generate_round_robin
from seasoncal.scheduler import schedule_rounds

SAT = date(2026, 9, 5)


def _make_game(home, away, d=SAT, leg=1, field="F1", slot="S1", number=1):
    return Game(
        home_team=home, away_team=away, date=d,
        start_time=time(9, 0), end_time=time(11, 0),
        field_id=field, timeslot_id=slot, leg=leg, round_number=1,
        match_number=number,
    )


def _make_day(number, games, d=None, capacity=4, leg=1, extended=False):
    d = d or SAT + timedelta(weeks=number - 1)
    for g in games:
        g.date = d
    return MatchDay(number=number, date=d, leg=leg, kind=MatchDayKind.REGULAR,
                    capacity=capacity, games=games, extended=extended)


def _make_config(**kwargs):
    return ScheduleConfig(
        start_date=SAT,
        end_date=SAT + timedelta(weeks=12),
        fields=[Field("F1", "F1"), Field("F2", "F2")],
        timeslots=[Timeslot("S1", "S1", time(9, 0), time(11, 0)),
                   Timeslot("S2", "S2", time(12, 0), time(14, 0))],
        **kwargs,
    )


class TestValidateSchedule:
    def test_generated_schedule_is_valid(self):
        teams = [Team(f"T{i}", f"T{i}") for i in range(1, 8)]
        rounds = generate_round_robin(teams, legs=2)
        cfg = _make_config()
        plan = schedule_rounds(rounds, cfg)
        result = validate_schedule(plan.match_days, [t.id for t in teams], 2,
                                   config=cfg, rest_log=plan.rest_log)
        assert result["valid"], result["errors"]
        assert result["warnings"] == []

    def test_simple_valid(self):
        days = [_make_day(1, [_make_game("A", "B")])]
        result = validate_schedule(days, ["A", "B"])
        assert result["valid"]

    def test_capacity_exceeded(self):
        days = [_make_day(1, [_make_game("A", "B"), _make_game("C", "D", field="F2")],
                          capacity=1)]
        result = validate_schedule(days, ["A", "B", "C", "D"])
        assert any("exceed capacity" in e for e in result["errors"])

    def test_duplicate_fixture_in_leg(self):
        days = [_make_day(1, [_make_game("A", "B")]),
                _make_day(2, [_make_game("B", "A")])]
        result = validate_schedule(days, ["A", "B"])
        assert any("Duplicate fixture A vs B in leg 1" in e for e in result["errors"])

    def test_same_pair_different_legs_ok(self):
        days = [_make_day(1, [_make_game("A", "B", leg=1)]),
                _make_day(2, [_make_game("B", "A", leg=2)], leg=2)]
        result = validate_schedule(days, ["A", "B"], legs=2)
        assert result["valid"], result["errors"]

    def test_team_twice_on_date(self):
        days = [_make_day(1, [_make_game("A", "B"), _make_game("A", "C", field="F2")])]
        result = validate_schedule(days, ["A", "B", "C"])
        assert any("A plays 2 games" in e for e in result["errors"])

    def test_missing_pair(self):
        days = [_make_day(1, [_make_game("A", "B")])]
        result = validate_schedule(days, ["A", "B", "C"])
        assert any("A vs C: played 0 times" in e for e in result["errors"])

    def test_home_away_imbalance(self):
        days = [_make_day(1, [_make_game("A", "B", leg=1)]),
                _make_day(2, [_make_game("A", "B", leg=2)], leg=2)]
        result = validate_schedule(days, ["A", "B"], legs=2)
        assert any("imbalance" in e for e in result["errors"])

    def test_date_used_twice(self):
        days = [_make_day(1, [_make_game("A", "B")], d=SAT),
                _make_day(2, [_make_game("C", "D")], d=SAT)]
        result = validate_schedule(days, ["A", "B", "C", "D"])
        assert any("used by match-days 1 and 2" in e for e in result["errors"])

    def test_holiday_and_playoffs(self):
        cfg = _make_config(
            special_dates=[SpecialDate(SAT, DateKind.HOLIDAY)],
            playoffs_start=SAT + timedelta(weeks=1),
        )
        days = [_make_day(1, [_make_game("A", "B", leg=1)]),
                _make_day(2, [_make_game("B", "A", leg=2)], leg=2)]
        result = validate_schedule(days, ["A", "B"], legs=2, config=cfg)
        assert any("holiday" in e for e in result["errors"])
        assert any("playoffs window" in e for e in result["errors"])

    def test_extended_day_allowed_in_playoffs_window(self):
        cfg = _make_config(playoffs_start=SAT)
        days = [_make_day(1, [_make_game("A", "B")], extended=True)]
        result = validate_schedule(days, ["A", "B"], config=cfg)
        assert result["valid"], result["errors"]

    def test_unknown_team(self):
        days = [_make_day(1, [_make_game("A", "Z")])]
        result = validate_schedule(days, ["A", "B"])
        assert any("Unknown away team: Z" in e for e in result["errors"])

    def test_double_booking_is_warning(self):
        days = [_make_day(1, [_make_game("A", "B"), _make_game("C", "D")])]
        result = validate_schedule(days, ["A", "B", "C", "D"])
        assert any("booked 2 times" in w for w in result["warnings"])

    def test_rest_rule_violation(self):
        log = [RestEvent("A", RestKind.GAME, 1, r) for r in range(1, 7)]
        days = [_make_day(1, [_make_game("A", "B")])]
        result = validate_schedule(days, ["A", "B"], rest_log=log)
        assert any("6 consecutive games" in e for e in result["errors"])

    def test_rest_rule_reported(self):
        log = [RestEvent("A", RestKind.GAME, 1, r) for r in range(1, 4)]
        days = [_make_day(1, [_make_game("A", "B")])]
        result = validate_schedule(days, ["A", "B"], rest_log=log)
        assert result["longest_run"] == 3
        assert result["rest_threshold"] == 5
        text = format_validation_report(result)
        assert "Rest rule: longest run 3 games (limit 5)" in text

        result = validate_schedule(days, ["A", "B"])
        assert result["longest_run"] is None
        assert "Rest rule" not in format_validation_report(result)

    def test_idempotent(self):
        days = [_make_day(1, [_make_game("A", "B"), _make_game("A", "C")])]
        first = validate_schedule(days, ["A", "B", "C"])
        second = validate_schedule(days, ["A", "B", "C"])
        assert first == second


class TestMaxConsecutiveGames:
    def test_rests_break_runs(self):
        log = (
            [RestEvent("A", RestKind.GAME, 1, r) for r in range(1, 4)]
            + [RestEvent("A", RestKind.BYE, 1, 4)]
            + [RestEvent("A", RestKind.GAME, 1, r) for r in range(5, 10)]
            + [RestEvent("A", RestKind.DEFERRED, 1, 10),
               RestEvent("A", RestKind.GAME, 1, 11)]
            + [RestEvent("B", RestKind.GAME, 1, 1)]
        )
        assert max_consecutive_games(log) == {"A": 5, "B": 1}


class TestFormatReport:
    def test_valid(self):
        text = format_validation_report({"valid": True, "errors": [], "warnings": []})
        assert "RESULT: VALID" in text

    def test_invalid(self):
        text = format_validation_report(
            {"valid": False, "errors": ["bad"], "warnings": ["meh"]})
        assert "INVALID (1 violations)" in text
        assert "ERROR: bad" in text
        assert "WARN: meh" in text
