"""Tests for models.py: data classes and enums."""

from datetime import date, time

from seasoncal.models import (
    BYE, DateKind, DayOfWeek, Field, Fixture, Game, MatchDay, MatchDayKind,
    RestCounter, Round, ScheduleConfig, SchedulePlan, SeasonConfig,
    SpecialDate, Team, Timeslot,
)


def _make_game(home, away, d=date(2026, 9, 5), overflow=False):
    return Game(
        home_team=home, away_team=away, date=d,
        start_time=time(9, 0), end_time=time(11, 0),
        field_id="F1", timeslot_id="S1", leg=1, round_number=1,
        match_number=1, overflow=overflow,
    )


class TestDayOfWeek:
    def test_from_str_full(self):
        assert DayOfWeek.from_str("Saturday") == DayOfWeek.Sat
        assert DayOfWeek.from_str("Sunday") == DayOfWeek.Sun

    def test_from_str_short(self):
        assert DayOfWeek.from_str("Sat") == DayOfWeek.Sat
        assert DayOfWeek.from_str("wed") == DayOfWeek.Wed

    def test_value_matches_date_weekday(self):
        assert date(2026, 9, 5).weekday() == DayOfWeek.Sat.value

    def test_is_weekend(self):
        assert DayOfWeek.Sat.is_weekend()
        assert not DayOfWeek.Fri.is_weekend()


class TestFixture:
    def test_bye(self):
        f = Fixture("A", None, 1, 1)
        assert f.is_bye
        assert not Fixture("A", "B", 1, 1).is_bye

    def test_pair_key_is_unordered(self):
        assert Fixture("B", "A", 1, 1).pair_key() == ("A", "B")
        assert Fixture("A", "B", 2, 3).pair_key() == ("A", "B")

    def test_swap(self):
        f = Fixture("A", "B", 1, 1)
        f.swap()
        assert (f.home, f.away) == ("B", "A")

    def test_opponent(self):
        f = Fixture("A", "B", 1, 1)
        assert f.opponent("A") == "B"
        assert f.opponent("B") == "A"
        assert f.involves("A")
        assert not f.involves("C")


class TestRound:
    def test_matchups_and_byes(self):
        r = Round(1, 1, [Fixture("A", "B", 1, 1), Fixture("C", None, 1, 1)])
        assert len(r.matchups) == 1
        assert r.bye_teams == ["C"]
        assert sorted(r.teams()) == ["A", "B", "C"]

    def test_bye_constant_is_reserved_name(self):
        assert BYE == "BYE"


class TestRestCounter:
    def test_needs_rest_at_threshold(self):
        c = RestCounter("A", games_played=4)
        assert not c.needs_rest(5)
        c.games_played += 1
        assert c.needs_rest(5)

    def test_rest_resets(self):
        c = RestCounter("A", games_played=5)
        c.rest()
        assert c.games_played == 0


class TestScheduleConfig:
    def _config(self, **kwargs):
        return ScheduleConfig(
            start_date=date(2026, 9, 5),
            end_date=date(2026, 11, 28),
            fields=[
                Field("F2", "Second", order=2),
                Field("F1", "First", order=1),
                Field("FX", "Closed", active=False),
            ],
            timeslots=[
                Timeslot("S1", "Morning", time(9, 0), time(11, 0), order=0),
                Timeslot("S2", "Noon", time(12, 0), time(14, 0), order=1),
                Timeslot("OV", "Evening", time(17, 0), time(19, 0), order=2),
            ],
            **kwargs,
        )

    def test_active_fields_sorted_by_order(self):
        cfg = self._config()
        assert [f.id for f in cfg.active_fields()] == ["F1", "F2"]

    def test_overflow_slot_not_in_rotation(self):
        cfg = self._config(overflow_timeslot="OV")
        assert [t.id for t in cfg.active_timeslots()] == ["S1", "S2"]
        assert cfg.overflow_slot().id == "OV"

    def test_no_overflow_slot(self):
        cfg = self._config()
        assert len(cfg.active_timeslots()) == 3
        assert cfg.overflow_slot() is None

    def test_special_dates(self):
        cfg = self._config(special_dates=[
            SpecialDate(date(2026, 9, 12), DateKind.HOLIDAY, "Fair"),
            SpecialDate(date(2026, 9, 19), DateKind.FLEX),
        ])
        assert cfg.is_holiday(date(2026, 9, 12))
        assert not cfg.is_holiday(date(2026, 9, 19))
        assert cfg.special_date(date(2026, 9, 19)).kind == DateKind.FLEX
        assert cfg.special_date(date(2026, 9, 26)) is None


class TestSeasonConfig:
    def test_active_teams_and_schedule_config(self):
        cfg = SeasonConfig(
            season_id="s1", organization_id="org", name="Fall",
            start_date=date(2026, 9, 5), end_date=date(2026, 11, 28),
            teams=[Team("A", "A"), Team("B", "B", active=False)],
            fields=[Field("F1", "F1")],
            timeslots=[Timeslot("S1", "S1", time(9, 0), time(11, 0))],
            rest_threshold=4,
        )
        assert [t.id for t in cfg.active_teams()] == ["A"]
        sched = cfg.schedule_config()
        assert sched.rest_threshold == 4
        assert sched.match_weekday == DayOfWeek.Sat
        assert sched.start_date == date(2026, 9, 5)


class TestMatchDay:
    def test_uses_overflow(self):
        md = MatchDay(1, date(2026, 9, 5), 1, MatchDayKind.REGULAR, 2,
                      [_make_game("A", "B")])
        assert not md.uses_overflow
        md.games.append(_make_game("C", "D", overflow=True))
        assert md.uses_overflow

    def test_game_pair_key(self):
        assert _make_game("B", "A").pair_key() == ("A", "B")

    def test_plan_games_flattens(self):
        plan = SchedulePlan(match_days=[
            MatchDay(1, date(2026, 9, 5), 1, MatchDayKind.REGULAR, 2,
                     [_make_game("A", "B"), _make_game("C", "D")]),
            MatchDay(2, date(2026, 9, 12), 1, MatchDayKind.FLEX, 2,
                     [_make_game("A", "C")]),
        ])
        assert len(plan.games()) == 3
