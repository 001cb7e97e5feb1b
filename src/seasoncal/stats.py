"""Statistics and balance reporting for generated season schedules."""

from collections import defaultdict

from seasoncal.models import MatchDay, MatchDayKind, RestKind, Round, SchedulePlan


def compute_stats(plan: SchedulePlan, rounds: list[Round],
                  teams: list[str], field_ids: list[str] | None = None,
                  timeslot_ids: list[str] | None = None) -> dict:
    """Compute statistics for a schedule.

    Returns dict with all stats needed for the generation report and for
    fairness auditing of field and timeslot usage.
    """
    match_days: list[MatchDay] = plan.match_days
    total_games = sum(len(md.games) for md in match_days)

    # Load per resource; configured resources are listed even when unused
    field_load: dict[str, int] = {f: 0 for f in field_ids or []}
    timeslot_load: dict[str, int] = {t: 0 for t in timeslot_ids or []}

    games_per_team = {t: 0 for t in teams}
    home_counts = {t: 0 for t in teams}
    away_counts = {t: 0 for t in teams}
    bye_counts = {t: 0 for t in teams}
    makeup_games = 0
    games_per_leg: dict[int, int] = defaultdict(int)

    for md in match_days:
        for g in md.games:
            field_load[g.field_id] = field_load.get(g.field_id, 0) + 1
            timeslot_load[g.timeslot_id] = timeslot_load.get(g.timeslot_id, 0) + 1
            games_per_team[g.home_team] = games_per_team.get(g.home_team, 0) + 1
            games_per_team[g.away_team] = games_per_team.get(g.away_team, 0) + 1
            home_counts[g.home_team] = home_counts.get(g.home_team, 0) + 1
            away_counts[g.away_team] = away_counts.get(g.away_team, 0) + 1
            games_per_leg[g.leg] += 1
            if g.makeup:
                makeup_games += 1

    for rnd in rounds:
        for t in rnd.bye_teams:
            bye_counts[t] = bye_counts.get(t, 0) + 1

    deferrals_per_team: dict[str, int] = defaultdict(int)
    for ev in plan.rest_log:
        if ev.kind == RestKind.DEFERRED:
            deferrals_per_team[ev.team_id] += 1

    used = len(match_days)
    return {
        "match_days_used": used,
        "total_games": total_games,
        "avg_games_per_match_day": round(total_games / used, 2) if used else 0.0,
        "overflow_match_days": sum(1 for md in match_days if md.uses_overflow),
        "flex_match_days": sum(1 for md in match_days
                               if md.kind == MatchDayKind.FLEX),
        "extended_match_days": sum(1 for md in match_days if md.extended),
        "skipped_flex_dates": len(plan.skipped_flex_dates),
        "deferred_fixtures": plan.deferred_count,
        "makeup_games": makeup_games,
        "field_load": field_load,
        "timeslot_load": timeslot_load,
        "games_per_leg": dict(games_per_leg),
        "games_per_team": games_per_team,
        "home_counts": home_counts,
        "away_counts": away_counts,
        "bye_counts": bye_counts,
        "deferrals_per_team": dict(deferrals_per_team),
        "resting_teams": {n: list(ts) for n, ts in plan.resting_teams.items()},
        "first_date": match_days[0].date.isoformat() if match_days else None,
        "last_date": match_days[-1].date.isoformat() if match_days else None,
    }


def format_stats_report(stats: dict, team_names: dict[str, str] | None = None) -> str:
    """Format statistics into a human-readable report."""
    names = team_names or {}
    lines = []
    lines.append("=" * 70)
    lines.append("SCHEDULE STATISTICS")
    lines.append("=" * 70)

    lines.append(f"\nMatch-days used:        {stats['match_days_used']}")
    lines.append(f"Total games:            {stats['total_games']}")
    lines.append(f"Avg games / match-day:  {stats['avg_games_per_match_day']}")
    lines.append(f"Overflow match-days:    {stats['overflow_match_days']}")
    lines.append(f"Flex match-days used:   {stats['flex_match_days']}")
    lines.append(f"Flex dates held back:   {stats['skipped_flex_dates']}")
    lines.append(f"Dates past season end:  {stats['extended_match_days']}")
    lines.append(f"Deferred fixtures:      {stats['deferred_fixtures']}")
    lines.append(f"Make-up games:          {stats['makeup_games']}")
    if stats["first_date"]:
        lines.append(f"Season span:            {stats['first_date']} .. "
                     f"{stats['last_date']}")

    def _z(v, width=5, plus=False):
        """Format an integer, suppressing zeros to blank."""
        if v == 0:
            return " " * width
        if plus:
            return f"{v:>+{width}}"
        return f"{v:>{width}}"

    lines.append("\n--- TEAM BALANCE ---")
    lines.append(f"{'Team':<20} {'Games':>5} {'Home':>5} {'Away':>5} "
                 f"{'Diff':>5} {'Byes':>5} {'Rest':>5}")
    lines.append("-" * 56)
    for t in sorted(stats["games_per_team"]):
        h = stats["home_counts"].get(t, 0)
        a = stats["away_counts"].get(t, 0)
        diff = h - a
        flag = " ***" if abs(diff) > 1 else ""
        label = names.get(t, t)[:20]
        lines.append(
            f"{label:<20} {_z(stats['games_per_team'][t])} {_z(h)} {_z(a)} "
            f"{_z(diff, plus=True)} {_z(stats['bye_counts'].get(t, 0))} "
            f"{_z(stats['deferrals_per_team'].get(t, 0))}{flag}"
        )

    lines.append("\n--- FIELD LOAD ---")
    for fid, count in stats["field_load"].items():
        lines.append(f"  {fid:<16} {count:>5}")

    lines.append("\n--- TIMESLOT LOAD ---")
    for sid, count in stats["timeslot_load"].items():
        lines.append(f"  {sid:<16} {count:>5}")

    return "\n".join(lines)
