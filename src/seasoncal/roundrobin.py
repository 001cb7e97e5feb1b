"""Round-robin pairing generation for the season calendar engine."""

import logging
import random
from collections import defaultdict, deque

from seasoncal.errors import InvalidConfiguration
from seasoncal.models import BYE, Fixture, Round, Team

logger = logging.getLogger(__name__)


def _circle_rounds(ring: list[str], leg: int, flip: bool) -> list[Round]:
    """Generate one leg using the circle method.

    Position 0 stays fixed; each round pairs position i with len-1-i, then
    the last team is moved to index 1.
    """
    ring = list(ring)
    n = len(ring)
    rounds = []
    for r in range(n - 1):
        fixtures = []
        for i in range(n // 2):
            t1 = ring[i]
            t2 = ring[n - 1 - i]
            if t1 == BYE or t2 == BYE:
                resting = t2 if t1 == BYE else t1
                fixtures.append(Fixture(resting, None, leg, r + 1))
            elif flip:
                fixtures.append(Fixture(t2, t1, leg, r + 1))
            else:
                fixtures.append(Fixture(t1, t2, leg, r + 1))
        rounds.append(Round(number=r + 1, leg=leg, fixtures=fixtures))

        if n > 2:
            ring.insert(1, ring.pop())
    return rounds


def generate_round_robin(teams: list[Team], legs: int = 1,
                         alternate_home_away: bool = True,
                         seed: int | None = None) -> list[Round]:
    """Generate every leg of a round-robin season.

    Only active teams take part. An odd team count gets a BYE pseudo-team,
    which surfaces as bye fixtures (``away`` is None). With
    ``alternate_home_away`` every even leg mirrors home and away. A
    balancing pass runs last so every team ends within one of an equal
    home/away split.

    Passing ``seed`` shuffles the team order first; without it the result is
    a pure function of the input order.
    """
    active = [t.id for t in teams if t.active]
    if len(active) < 2:
        raise InvalidConfiguration(
            f"At least 2 active teams are required (got {len(active)})"
        )
    if legs < 1:
        raise InvalidConfiguration(f"Number of legs must be at least 1 (got {legs})")
    if BYE in active:
        raise InvalidConfiguration(f"Team id {BYE!r} is reserved")

    if seed is not None:
        random.Random(seed).shuffle(active)

    ring = list(active)
    if len(ring) % 2 == 1:
        ring.append(BYE)

    logger.info("Generating round robin: %d teams, %d legs%s",
                len(active), legs,
                " (odd count, BYE added)" if len(active) % 2 else "")

    rounds: list[Round] = []
    for leg in range(1, legs + 1):
        flip = alternate_home_away and leg % 2 == 0
        leg_rounds = _circle_rounds(ring, leg, flip)
        rounds.extend(leg_rounds)
        logger.debug("Leg %d: %d rounds", leg, len(leg_rounds))

    swaps = balance_home_away(rounds)
    if swaps:
        logger.info("Home/away balancing: %d swaps", swaps)
    return rounds


# ---------------------------------------------------------------------------
# Home/away balancing
# ---------------------------------------------------------------------------

def _home_away_diff(rounds: list[Round]) -> dict[str, int]:
    diff: dict[str, int] = defaultdict(int)
    for rnd in rounds:
        for f in rnd.fixtures:
            if f.is_bye:
                continue
            diff[f.home] += 1
            diff[f.away] -= 1
    return diff


def _find_flip_path(rounds: list[Round], start: str, forward: bool,
                    goal) -> list[Fixture]:
    """BFS over fixtures as directed home->away edges.

    Forward search follows edges out of ``start`` (start is home); backward
    search follows edges into it. Returns the fixtures on the path to the
    first team satisfying ``goal``, or [] if none is reachable.
    """
    edges: dict[str, list[tuple[Fixture, str]]] = defaultdict(list)
    for rnd in rounds:
        for f in rnd.matchups:
            if forward:
                edges[f.home].append((f, f.away))
            else:
                edges[f.away].append((f, f.home))

    parent: dict[str, tuple[Fixture, str] | None] = {start: None}
    queue = deque([start])
    while queue:
        t = queue.popleft()
        if t != start and goal(t):
            path = []
            while parent[t] is not None:
                f, prev = parent[t]
                path.append(f)
                t = prev
            return path
        for f, nxt in edges[t]:
            if nxt not in parent:
                parent[nxt] = (f, t)
                queue.append(nxt)
    return []


def balance_home_away(rounds: list[Round]) -> int:
    """Swap home/away so every team has |home - away| <= 1.

    First a greedy single pass swaps any fixture whose home side is more
    than two games further over balance than its away side. Whatever that
    leaves is repaired by reversing a chain of fixtures from a surplus team
    to a deficit team, which moves only the two end teams. Pairings are
    never changed. Returns the number of fixtures swapped.
    """
    diff = _home_away_diff(rounds)
    swaps = 0

    for rnd in rounds:
        for f in rnd.matchups:
            if diff[f.home] - diff[f.away] > 2:
                diff[f.home] -= 2
                diff[f.away] += 2
                f.swap()
                swaps += 1

    team_order = list(diff.keys())
    while True:
        surplus = [t for t in team_order if diff[t] > 1]
        deficit = [t for t in team_order if diff[t] < -1]
        if surplus:
            start = surplus[0]
            path = _find_flip_path(rounds, start, True, lambda t: diff[t] < 0)
        elif deficit:
            start = deficit[0]
            path = _find_flip_path(rounds, start, False, lambda t: diff[t] > 0)
        else:
            break
        if not path:
            logger.warning("Home/away balancing stalled at team %s", start)
            break
        for f in path:
            diff[f.home] -= 2
            diff[f.away] += 2
            f.swap()
            swaps += 1

    return swaps


# ---------------------------------------------------------------------------
# Verification and statistics
# ---------------------------------------------------------------------------

def verify_round_robin(rounds: list[Round], teams: list[str],
                       legs: int = 1) -> dict:
    """Verify a multi-leg round-robin is valid and complete.

    Pure function: it never mutates ``rounds``. Returns dict with:
    - valid: bool
    - errors: list of violation strings
    - matchup_counts: dict of (team_a, team_b) -> count
    - games_per_team, home_counts, away_counts, bye_counts
    """
    errors = []
    matchup_counts: dict[tuple[str, str], int] = {}
    games_per_team: dict[str, int] = {t: 0 for t in teams}
    home_counts: dict[str, int] = {t: 0 for t in teams}
    away_counts: dict[str, int] = {t: 0 for t in teams}
    bye_counts: dict[str, int] = {t: 0 for t in teams}
    byes_per_leg: dict[tuple[str, int], int] = defaultdict(int)
    seen_in_leg: set[tuple[str, str, int]] = set()
    team_set = set(teams)

    for rnd in rounds:
        teams_in_round = set()
        for f in rnd.fixtures:
            for t in (f.home, f.away):
                if t is None:
                    continue
                if t in teams_in_round:
                    errors.append(
                        f"Leg {rnd.leg} round {rnd.number}: {t} appears twice"
                    )
                teams_in_round.add(t)
                if t not in team_set:
                    errors.append(
                        f"Leg {rnd.leg} round {rnd.number}: unknown team {t}"
                    )

            if f.is_bye:
                bye_counts[f.home] = bye_counts.get(f.home, 0) + 1
                byes_per_leg[(f.home, f.leg)] += 1
                continue

            key = f.pair_key()
            leg_key = (key[0], key[1], f.leg)
            if leg_key in seen_in_leg:
                errors.append(
                    f"Duplicate fixture {key[0]} vs {key[1]} in leg {f.leg}"
                )
            seen_in_leg.add(leg_key)
            matchup_counts[key] = matchup_counts.get(key, 0) + 1
            games_per_team[f.home] = games_per_team.get(f.home, 0) + 1
            games_per_team[f.away] = games_per_team.get(f.away, 0) + 1
            home_counts[f.home] = home_counts.get(f.home, 0) + 1
            away_counts[f.away] = away_counts.get(f.away, 0) + 1

        missing = team_set - teams_in_round
        for t in sorted(missing):
            errors.append(f"Leg {rnd.leg} round {rnd.number}: {t} is missing")

    # Every pair plays exactly `legs` times
    for i, t1 in enumerate(teams):
        for t2 in teams[i + 1:]:
            key = (min(t1, t2), max(t1, t2))
            count = matchup_counts.get(key, 0)
            if count != legs:
                errors.append(
                    f"{t1} vs {t2}: played {count} times (expected {legs})"
                )

    expected_games = (len(teams) - 1) * legs
    for t in teams:
        if games_per_team.get(t, 0) != expected_games:
            errors.append(
                f"{t}: expected {expected_games} games, has {games_per_team.get(t, 0)}"
            )
        h = home_counts.get(t, 0)
        a = away_counts.get(t, 0)
        if abs(h - a) > 1:
            errors.append(f"{t}: home/away imbalance ({h}H/{a}A)")

    if len(teams) % 2 == 1:
        for t in teams:
            for leg in range(1, legs + 1):
                count = byes_per_leg.get((t, leg), 0)
                if count != 1:
                    errors.append(
                        f"{t}: {count} byes in leg {leg} (expected 1)"
                    )

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "matchup_counts": matchup_counts,
        "games_per_team": games_per_team,
        "home_counts": home_counts,
        "away_counts": away_counts,
        "bye_counts": bye_counts,
    }


def pairing_stats(rounds: list[Round], teams: list[str]) -> dict:
    """Per-team counts for a generated round-robin."""
    games = {t: 0 for t in teams}
    home = {t: 0 for t in teams}
    away = {t: 0 for t in teams}
    byes = {t: 0 for t in teams}
    total = 0
    for rnd in rounds:
        for f in rnd.fixtures:
            if f.is_bye:
                byes[f.home] = byes.get(f.home, 0) + 1
                continue
            total += 1
            games[f.home] = games.get(f.home, 0) + 1
            games[f.away] = games.get(f.away, 0) + 1
            home[f.home] = home.get(f.home, 0) + 1
            away[f.away] = away.get(f.away, 0) + 1
    return {
        "total_fixtures": total,
        "total_rounds": len(rounds),
        "teams_with_bye": [t for t in teams if byes.get(t, 0) > 0],
        "games_per_team": games,
        "home_counts": home,
        "away_counts": away,
        "bye_counts": byes,
    }
