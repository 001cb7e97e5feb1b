"""Output formatters for generated season schedules."""

import csv
from io import StringIO
from pathlib import Path

from seasoncal.models import Game, MatchDay, MatchDayKind


FIXTURE_CSV_HEADER = [
    "Match_Day", "Date", "Leg", "Kind", "Capacity", "Extended", "Note",
    "Match", "Start_Time", "End_Time", "Home_ID", "Home_Name", "Away_ID",
    "Away_Name", "Field_ID", "Timeslot_ID", "Round", "Makeup", "Overflow",
]


def _fmt_time(t) -> str:
    return t.strftime("%-I:%M%p").lower()


def format_schedule(match_days: list[MatchDay],
                    team_names: dict[str, str] | None = None,
                    title: str = "SEASON SCHEDULE",
                    resting: dict[int, list[str]] | None = None) -> str:
    """Format schedule as human-readable text, by match-day then per team.

    ``resting`` maps match-day numbers to the teams without a game there.
    """
    names = team_names or {}
    resting = resting or {}

    def _n(t: str) -> str:
        return names.get(t, t)

    lines = []
    lines.append("=" * 80)
    lines.append(title.upper())
    lines.append("=" * 80)

    current_leg = None
    for md in match_days:
        if md.leg != current_leg:
            current_leg = md.leg
            lines.append(f"\n--- LEG {md.leg} ---")
        tags = []
        if md.kind == MatchDayKind.FLEX:
            tags.append("flex")
        if md.extended:
            tags.append("past season end")
        if md.note:
            tags.append(md.note)
        tag = f"  ({', '.join(tags)})" if tags else ""
        lines.append(
            f"\n  Match-day {md.number}: {md.date.strftime('%A %m/%d/%Y')}"
            f"  [{len(md.games)}/{md.capacity}]{tag}"
        )
        for g in md.games:
            flags = ""
            if g.makeup:
                flags += " [make-up]"
            if g.overflow:
                flags += " [overflow]"
            lines.append(
                f"    {g.match_number:>2}. {_fmt_time(g.start_time):>7}  "
                f"{_n(g.home_team):<20} vs {_n(g.away_team):<20} "
                f"@ {g.field_id}{flags}"
            )
        if resting.get(md.number):
            lines.append(
                "    Resting: " + ", ".join(_n(t) for t in resting[md.number])
            )

    # Per-team schedule
    lines.append("\n" + "=" * 80)
    lines.append("PER-TEAM SCHEDULES")
    lines.append("=" * 80)

    by_team: dict[str, list[Game]] = {}
    for md in match_days:
        for g in md.games:
            by_team.setdefault(g.home_team, []).append(g)
            by_team.setdefault(g.away_team, []).append(g)

    for team_id in sorted(by_team):
        team_games = sorted(by_team[team_id], key=lambda g: (g.date, g.start_time))
        lines.append(f"\n{_n(team_id)}:")
        for i, g in enumerate(team_games, 1):
            is_home = g.home_team == team_id
            opponent = g.away_team if is_home else g.home_team
            h_a = "H" if is_home else "A"
            day = g.date.strftime("%a %m/%d")
            lines.append(
                f"  {i:>2}. {day} {_fmt_time(g.start_time):>7} {h_a} vs "
                f"{_n(opponent):<20} @ {g.field_id}"
            )

    return "\n".join(lines)


def format_fixtures_csv(match_days: list[MatchDay],
                        team_names: dict[str, str] | None = None) -> str:
    """Format every placed fixture as one CSV row, in match-day order."""
    names = team_names or {}
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(FIXTURE_CSV_HEADER)

    for md in match_days:
        for g in md.games:
            writer.writerow([
                md.number, md.date.isoformat(), md.leg, md.kind.value,
                md.capacity, int(md.extended), md.note,
                g.match_number,
                g.start_time.strftime("%H:%M"), g.end_time.strftime("%H:%M"),
                g.home_team, names.get(g.home_team, g.home_team),
                g.away_team, names.get(g.away_team, g.away_team),
                g.field_id, g.timeslot_id, g.round_number,
                int(g.makeup), int(g.overflow),
            ])

    return output.getvalue()


def write_schedule(match_days: list[MatchDay],
                   team_names: dict[str, str] | None = None,
                   output_dir: str = "output",
                   title: str = "SEASON SCHEDULE",
                   resting: dict[int, list[str]] | None = None) -> list[Path]:
    """Write schedule.txt and fixtures.csv into ``output_dir``."""
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    schedule_path = out_dir / "schedule.txt"
    schedule_path.write_text(
        format_schedule(match_days, team_names, title, resting))
    print(f"Written: {schedule_path}")

    csv_path = out_dir / "fixtures.csv"
    csv_path.write_text(format_fixtures_csv(match_days, team_names))
    print(f"Written: {csv_path}")

    return [schedule_path, csv_path]
