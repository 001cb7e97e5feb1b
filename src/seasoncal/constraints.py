"""Constraint validation for generated season schedules.

Can validate either an in-memory plan or match-days re-imported from CSV.
"""

from collections import defaultdict
from datetime import date

from seasoncal.models import MatchDay, RestEvent, RestKind, ScheduleConfig


def max_consecutive_games(rest_log: list[RestEvent]) -> dict[str, int]:
    """Longest run of games per team with no bye or deferral in between."""
    current: dict[str, int] = defaultdict(int)
    longest: dict[str, int] = defaultdict(int)
    for ev in rest_log:
        if ev.kind == RestKind.GAME:
            current[ev.team_id] += 1
            longest[ev.team_id] = max(longest[ev.team_id], current[ev.team_id])
        else:
            current[ev.team_id] = 0
    return dict(longest)


def validate_schedule(match_days: list[MatchDay], teams: list[str],
                      legs: int = 1,
                      config: ScheduleConfig | None = None,
                      rest_log: list[RestEvent] | None = None,
                      ) -> dict:
    """Validate a schedule against all constraints.

    Returns dict with:
    - valid: bool (True if no hard constraint violations)
    - errors: list of hard constraint violations
    - warnings: list of soft constraint issues
    - longest_run: longest run of games without rest, or None without a
      rest trace
    - rest_threshold: the run limit checked against
    """
    errors = []
    warnings = []
    team_set = set(teams)

    home_counts = defaultdict(int)
    away_counts = defaultdict(int)
    pair_counts: dict[tuple[str, str], int] = defaultdict(int)
    pair_legs: set[tuple[str, str, int]] = set()
    team_dates: dict[str, dict[date, int]] = defaultdict(lambda: defaultdict(int))
    dates_seen: dict[date, int] = {}

    for md in match_days:
        if md.date in dates_seen:
            errors.append(
                f"Date {md.date} used by match-days {dates_seen[md.date]} "
                f"and {md.number}"
            )
        dates_seen[md.date] = md.number

        # Capacity
        if len(md.games) > md.capacity:
            errors.append(
                f"Match-day {md.number} ({md.date}): {len(md.games)} games "
                f"exceed capacity {md.capacity}"
            )

        if config is not None:
            if config.is_holiday(md.date):
                errors.append(f"Match-day {md.number} falls on holiday {md.date}")
            if (config.playoffs_start is not None and not md.extended
                    and md.date >= config.playoffs_start):
                errors.append(
                    f"Match-day {md.number} ({md.date}) is inside the "
                    f"playoffs window"
                )

        # Field/timeslot double booking
        used: dict[tuple[str, str], int] = defaultdict(int)
        for g in md.games:
            used[(g.field_id, g.timeslot_id)] += 1
        for (fld, slot), count in used.items():
            if count > 1:
                warnings.append(
                    f"Match-day {md.number} ({md.date}): field {fld} "
                    f"timeslot {slot} booked {count} times"
                )

        for g in md.games:
            h = g.home_team
            a = g.away_team
            if h not in team_set:
                errors.append(f"Unknown home team: {h}")
                continue
            if a not in team_set:
                errors.append(f"Unknown away team: {a}")
                continue
            if g.date != md.date:
                errors.append(
                    f"{h} vs {a} dated {g.date} but listed on match-day "
                    f"{md.number} ({md.date})"
                )

            home_counts[h] += 1
            away_counts[a] += 1
            team_dates[h][md.date] += 1
            team_dates[a][md.date] += 1

            key = g.pair_key()
            pair_counts[key] += 1
            leg_key = (key[0], key[1], g.leg)
            if leg_key in pair_legs:
                errors.append(
                    f"Duplicate fixture {key[0]} vs {key[1]} in leg {g.leg}"
                )
            pair_legs.add(leg_key)

    # No team plays twice on one date
    for t, per_date in team_dates.items():
        for d, count in per_date.items():
            if count > 1:
                errors.append(f"{t} plays {count} games on {d}")

    # Round-robin completeness
    sorted_teams = sorted(teams)
    for i, t1 in enumerate(sorted_teams):
        for t2 in sorted_teams[i + 1:]:
            count = pair_counts.get((t1, t2), 0)
            if count != legs:
                errors.append(
                    f"{t1} vs {t2}: played {count} times (expected {legs})"
                )

    # Home/away balance within 1
    for t in sorted_teams:
        h = home_counts.get(t, 0)
        a = away_counts.get(t, 0)
        if abs(h - a) > 1:
            errors.append(f"{t} home/away imbalance: {h}H/{a}A (diff={h-a})")

    # Rest rule: no run of games longer than the threshold
    threshold = config.rest_threshold if config is not None else 5
    longest_run = None
    if rest_log is not None:
        runs = max_consecutive_games(rest_log)
        longest_run = max(runs.values(), default=0)
        for t, run in sorted(runs.items()):
            if run > threshold:
                errors.append(
                    f"{t} plays {run} consecutive games without rest "
                    f"(limit {threshold})"
                )

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "longest_run": longest_run,
        "rest_threshold": threshold,
    }


def format_validation_report(result: dict) -> str:
    """Format validation results as text."""
    lines = []
    lines.append("=" * 60)
    lines.append("SCHEDULE VALIDATION REPORT")
    lines.append("=" * 60)

    if result["valid"]:
        lines.append("\nRESULT: VALID (no hard constraint violations)")
    else:
        lines.append(f"\nRESULT: INVALID ({len(result['errors'])} violations)")

    if result.get("longest_run") is not None:
        lines.append(
            f"Rest rule: longest run {result['longest_run']} games "
            f"(limit {result['rest_threshold']})"
        )

    if result["errors"]:
        lines.append(f"\n--- ERRORS ({len(result['errors'])}) ---")
        for e in result["errors"]:
            lines.append(f"  ERROR: {e}")

    if result["warnings"]:
        lines.append(f"\n--- WARNINGS ({len(result['warnings'])}) ---")
        for w in result["warnings"]:
            lines.append(f"  WARN: {w}")

    return "\n".join(lines)
