"""Tests for roundrobin.py: round-robin generation and verification."""

import pytest

from seasoncal.errors import InvalidConfiguration
from seasoncal.models import Fixture, Round, Team
from seasoncal.roundrobin import (
    balance_home_away,
    generate_round_robin,
    pairing_stats,
    verify_round_robin,
)


def _make_teams(n, prefix="T"):
    return [Team(id=f"{prefix}{i}", name=f"Team {i}") for i in range(1, n + 1)]


def _ids(teams):
    return [t.id for t in teams if t.active]


class TestGenerateRoundRobin:
    def test_even_teams(self):
        rounds = generate_round_robin(_make_teams(4))
        # 4 teams => 3 rounds, 2 games each
        assert len(rounds) == 3
        for r in rounds:
            assert len(r.matchups) == 2
            assert r.bye_teams == []

    def test_odd_teams(self):
        teams = _make_teams(5)
        rounds = generate_round_robin(teams)
        # 5 teams + BYE = 6, N-1 = 5 rounds, 2 games + 1 bye each
        assert len(rounds) == 5
        for r in rounds:
            assert len(r.matchups) == 2
            assert len(r.bye_teams) == 1
        byes = [r.bye_teams[0] for r in rounds]
        assert sorted(byes) == _ids(teams)
        assert sum(len(r.matchups) for r in rounds) == 10

    def test_round_numbers_restart_per_leg(self):
        rounds = generate_round_robin(_make_teams(4), legs=2)
        assert [(r.leg, r.number) for r in rounds] == [
            (1, 1), (1, 2), (1, 3), (2, 1), (2, 2), (2, 3),
        ]
        for r in rounds:
            for f in r.fixtures:
                assert f.leg == r.leg
                assert f.round_number == r.number

    @pytest.mark.parametrize("n", [2, 3, 4, 5, 6, 7, 10, 13, 20])
    @pytest.mark.parametrize("legs", [1, 2, 3])
    def test_valid_for_many_sizes(self, n, legs):
        teams = _make_teams(n)
        rounds = generate_round_robin(teams, legs=legs)
        result = verify_round_robin(rounds, _ids(teams), legs)
        assert result["valid"], result["errors"]
        for t in _ids(teams):
            assert result["games_per_team"][t] == (n - 1) * legs

    @pytest.mark.parametrize("n", [3, 4, 6, 8, 9, 12])
    def test_single_leg_balance_without_alternation(self, n):
        """The fixed circle team would be home every round without balancing."""
        teams = _make_teams(n)
        rounds = generate_round_robin(teams, legs=1, alternate_home_away=False)
        result = verify_round_robin(rounds, _ids(teams))
        for t in _ids(teams):
            assert abs(result["home_counts"][t] - result["away_counts"][t]) <= 1

    def test_legs_mirror_home_away(self):
        teams = _make_teams(8)
        rounds = generate_round_robin(teams, legs=2, alternate_home_away=True)
        first = {}
        second = {}
        for r in rounds:
            for f in r.matchups:
                target = first if r.leg == 1 else second
                target[f.pair_key()] = f.home
        assert first.keys() == second.keys()
        for key, home in first.items():
            assert second[key] != home
        result = verify_round_robin(rounds, _ids(teams), 2)
        for t in _ids(teams):
            assert result["home_counts"][t] == result["away_counts"][t] == 7

    def test_inactive_teams_left_out(self):
        teams = _make_teams(3)
        teams[2].active = False
        rounds = generate_round_robin(teams)
        assert len(rounds) == 1
        assert rounds[0].matchups[0].pair_key() == ("T1", "T2")

    def test_deterministic(self):
        a = generate_round_robin(_make_teams(7), legs=2)
        b = generate_round_robin(_make_teams(7), legs=2)
        assert [[(f.home, f.away) for f in r.fixtures] for r in a] == \
               [[(f.home, f.away) for f in r.fixtures] for r in b]

    def test_seed_is_reproducible(self):
        a = generate_round_robin(_make_teams(6), seed=7)
        b = generate_round_robin(_make_teams(6), seed=7)
        assert [[(f.home, f.away) for f in r.fixtures] for r in a] == \
               [[(f.home, f.away) for f in r.fixtures] for r in b]
        result = verify_round_robin(a, _ids(_make_teams(6)))
        assert result["valid"], result["errors"]

    def test_too_few_teams(self):
        with pytest.raises(InvalidConfiguration):
            generate_round_robin(_make_teams(1))
        teams = _make_teams(2)
        teams[0].active = False
        with pytest.raises(InvalidConfiguration):
            generate_round_robin(teams)

    def test_bad_legs(self):
        with pytest.raises(InvalidConfiguration):
            generate_round_robin(_make_teams(4), legs=0)

    def test_reserved_bye_id(self):
        teams = _make_teams(3) + [Team("BYE", "Bye FC")]
        with pytest.raises(InvalidConfiguration):
            generate_round_robin(teams)


class TestBalanceHomeAway:
    def test_fixes_lopsided_rounds(self):
        # A hosts everything
        rounds = [
            Round(1, 1, [Fixture("A", "B", 1, 1), Fixture("C", "D", 1, 1)]),
            Round(2, 1, [Fixture("A", "C", 1, 2), Fixture("B", "D", 1, 2)]),
            Round(3, 1, [Fixture("A", "D", 1, 3), Fixture("B", "C", 1, 3)]),
        ]
        swaps = balance_home_away(rounds)
        assert swaps > 0
        result = verify_round_robin(rounds, ["A", "B", "C", "D"])
        assert result["valid"], result["errors"]

    def test_balanced_input_untouched(self):
        rounds = [
            Round(1, 1, [Fixture("A", "B", 1, 1)]),
            Round(1, 2, [Fixture("B", "A", 2, 1)]),
        ]
        assert balance_home_away(rounds) == 0
        assert rounds[0].fixtures[0].home == "A"

    def test_pairings_unchanged(self):
        teams = _make_teams(9)
        rounds = generate_round_robin(teams, legs=1, alternate_home_away=False)
        before = [sorted(f.pair_key() for f in r.matchups) for r in rounds]
        balance_home_away(rounds)
        after = [sorted(f.pair_key() for f in r.matchups) for r in rounds]
        assert before == after


class TestVerifyRoundRobin:
    def test_detects_duplicate_in_leg(self):
        rounds = [
            Round(1, 1, [Fixture("A", "B", 1, 1)]),
            Round(2, 1, [Fixture("B", "A", 1, 2)]),
        ]
        result = verify_round_robin(rounds, ["A", "B"])
        assert not result["valid"]
        assert any("Duplicate" in e for e in result["errors"])

    def test_detects_team_twice_in_round(self):
        rounds = [Round(1, 1, [Fixture("A", "B", 1, 1), Fixture("A", "C", 1, 1)])]
        result = verify_round_robin(rounds, ["A", "B", "C"])
        assert any("appears twice" in e for e in result["errors"])

    def test_detects_missing_team(self):
        rounds = [Round(1, 1, [Fixture("A", "B", 1, 1)])]
        result = verify_round_robin(rounds, ["A", "B", "C", "D"])
        assert any("C is missing" in e for e in result["errors"])
        assert any("played 0 times" in e for e in result["errors"])

    def test_detects_unknown_team(self):
        rounds = [Round(1, 1, [Fixture("A", "Z", 1, 1)])]
        result = verify_round_robin(rounds, ["A", "B"])
        assert any("unknown team Z" in e for e in result["errors"])

    def test_detects_missing_bye(self):
        rounds = generate_round_robin(_make_teams(3))
        rounds[0].fixtures = [f for f in rounds[0].fixtures if not f.is_bye]
        result = verify_round_robin(rounds, _ids(_make_teams(3)))
        assert any("byes in leg 1" in e for e in result["errors"])

    def test_pure_and_idempotent(self):
        teams = _make_teams(6)
        rounds = generate_round_robin(teams, legs=2)
        snapshot = [[(f.home, f.away) for f in r.fixtures] for r in rounds]
        first = verify_round_robin(rounds, _ids(teams), 2)
        second = verify_round_robin(rounds, _ids(teams), 2)
        assert first == second
        assert snapshot == [[(f.home, f.away) for f in r.fixtures] for r in rounds]


class TestPairingStats:
    def test_counts(self):
        teams = _make_teams(5)
        rounds = generate_round_robin(teams)
        stats = pairing_stats(rounds, _ids(teams))
        assert stats["total_fixtures"] == 10
        assert stats["total_rounds"] == 5
        assert stats["teams_with_bye"] == _ids(teams)
        for t in _ids(teams):
            assert stats["games_per_team"][t] == 4
            assert stats["bye_counts"][t] == 1
            assert stats["home_counts"][t] + stats["away_counts"][t] == 4
