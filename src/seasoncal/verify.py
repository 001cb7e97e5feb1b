"""Standalone verifier for exported season schedules.

Validates a fixtures CSV (as written by ``write_schedule``) against a config.
Usage: python -m seasoncal.verify <fixtures.csv> [config.yaml]
"""

import csv
import sys
from pathlib import Path

from seasoncal.config import load_config, parse_date, parse_time
from seasoncal.constraints import validate_schedule, format_validation_report
from seasoncal.models import Game, MatchDay, MatchDayKind


def parse_csv_schedule(csv_path: str | Path) -> list[MatchDay]:
    """Parse a fixtures CSV back into MatchDay objects, in file order."""
    by_number: dict[int, MatchDay] = {}

    with open(csv_path, newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            num_str = (row.get("Match_Day") or "").strip()
            home = (row.get("Home_ID") or "").strip()
            away = (row.get("Away_ID") or "").strip()
            if not num_str or not home or not away:
                continue

            number = int(num_str)
            game_date = parse_date(row["Date"])
            leg = int(row.get("Leg") or 1)
            md = by_number.get(number)
            if md is None:
                md = MatchDay(
                    number=number,
                    date=game_date,
                    leg=leg,
                    kind=MatchDayKind(row.get("Kind") or "regular"),
                    capacity=int(row.get("Capacity") or 0),
                    note=row.get("Note") or "",
                    extended=row.get("Extended", "0").strip() == "1",
                )
                by_number[number] = md

            md.games.append(Game(
                home_team=home,
                away_team=away,
                date=game_date,
                start_time=parse_time(row.get("Start_Time") or "10:00"),
                end_time=parse_time(row.get("End_Time") or "12:00"),
                field_id=(row.get("Field_ID") or "").strip(),
                timeslot_id=(row.get("Timeslot_ID") or "").strip(),
                leg=leg,
                round_number=int(row.get("Round") or 0),
                match_number=int(row.get("Match") or len(md.games) + 1),
                overflow=row.get("Overflow", "0").strip() == "1",
                makeup=row.get("Makeup", "0").strip() == "1",
            ))

    return list(by_number.values())


def verify_csv(csv_path: str | Path, config) -> dict:
    """Re-import a fixtures CSV and validate it against a SeasonConfig."""
    match_days = parse_csv_schedule(csv_path)
    teams = [t.id for t in config.active_teams()]
    return validate_schedule(match_days, teams, config.legs,
                             config=config.schedule_config())


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m seasoncal.verify <fixtures.csv> [config.yaml]")
        print("  Validates a fixtures CSV against constraints in config.")
        sys.exit(1)

    csv_path = sys.argv[1]
    config_path = sys.argv[2] if len(sys.argv) > 2 else "config.yaml"

    if not Path(csv_path).exists():
        print(f"Error: {csv_path} not found")
        sys.exit(1)
    if not Path(config_path).exists():
        print(f"Error: {config_path} not found")
        sys.exit(1)

    print(f"Loading config from {config_path}...")
    config = load_config(config_path)

    print(f"Parsing schedule from {csv_path}...")
    result = verify_csv(csv_path, config)
    print(format_validation_report(result))
    sys.exit(0 if result["valid"] else 1)


if __name__ == "__main__":
    main()
