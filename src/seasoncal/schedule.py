#!/usr/bin/env python3
"""Season calendar generator.

Generate mode (default):
    seasoncal [config.yaml] [--seed N] [-o DIR] [--store DIR]

    Generates a season from the YAML config and writes:
      {DIR}/schedule.txt   - Human-readable match-day + per-team schedule
      {DIR}/fixtures.csv   - One row per fixture, re-importable with --verify
      {DIR}/stats.txt      - Validation report + statistics

    With --store the season is also saved (atomically) to a schedule store
    directory and marked active.

Verify mode:
    seasoncal [config.yaml] --verify <fixtures.csv>

    Re-imports a fixtures CSV and checks all constraints against config.
    Exit code 0 if valid, 1 if violations found.

Examples:
    seasoncal                               # default config.yaml
    seasoncal league.yaml -o fall2026       # custom output directory
    seasoncal league.yaml --store seasons/  # generate and persist
    seasoncal league.yaml --verify fall2026/fixtures.csv
"""

import argparse
import logging
import sys
from pathlib import Path

from seasoncal.config import load_config
from seasoncal.constraints import validate_schedule, format_validation_report
from seasoncal.coordinator import run
from seasoncal.errors import InvalidConfiguration
from seasoncal.output import write_schedule
from seasoncal.persistence import FileScheduleStore
from seasoncal.scheduler import NoFlexPreference, PreferRegularOverFlex
from seasoncal.stats import format_stats_report
from seasoncal.verify import parse_csv_schedule


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Season calendar generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Output files (generate mode):
  {dir}/schedule.txt   Human-readable schedule (match-days + per-team)
  {dir}/fixtures.csv   Fixture export (re-import with --verify)
  {dir}/stats.txt      Validation report + balance statistics

Exit codes:
  0  Schedule generated (or verified) with no hard violations
  1  Configuration errors, constraint violations, or a failed save
""",
    )
    parser.add_argument(
        "config", nargs="?", default="config.yaml",
        help="Path to config YAML file (default: config.yaml)"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Shuffle the team order with this seed before pairing. "
             "Without it the pairing follows the config's team order."
    )
    parser.add_argument(
        "--output-dir", "-o", default="output",
        help="Output directory for generated files (default: output/)"
    )
    parser.add_argument(
        "--store", metavar="DIR",
        help="Persist the generated season into this store directory"
    )
    parser.add_argument(
        "--use-flex", action="store_true",
        help="Fill flex dates in order instead of holding them in reserve"
    )
    parser.add_argument(
        "--verify", metavar="CSV",
        help="Verify an existing fixtures CSV instead of generating"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log scheduling decisions (deferrals, skipped dates)"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config_path = args.config
    if not Path(config_path).exists():
        print(f"Error: config file {config_path} not found")
        sys.exit(1)

    print(f"Loading config from {config_path}...")
    try:
        config = load_config(config_path)
    except InvalidConfiguration as e:
        for err in e.errors:
            print(f"Error: {err}")
        sys.exit(1)
    team_names = {t.id: t.name for t in config.teams}

    if args.verify:
        print(f"Verifying schedule from {args.verify}...")
        match_days = parse_csv_schedule(args.verify)
        print(f"Loaded {sum(len(md.games) for md in match_days)} games "
              f"on {len(match_days)} match-days")
        result = validate_schedule(
            match_days, [t.id for t in config.active_teams()], config.legs,
            config=config.schedule_config(),
        )
        print(format_validation_report(result))
        sys.exit(0 if result["valid"] else 1)

    # Generation mode
    policy = NoFlexPreference() if args.use_flex else PreferRegularOverFlex()
    store = FileScheduleStore(args.store) if args.store else None
    print(f"Generating season {config.name or config.season_id} "
          f"(seed={args.seed}, policy={policy.name})...")
    result = run(config, store=store, policy=policy, seed=args.seed)

    for w in result.warnings:
        print(f"  WARN: {w}")

    if not result.match_days:
        print(f"Error: {result.message}")
        for err in result.errors:
            print(f"  ERROR: {err}")
        sys.exit(1)

    report = format_validation_report(result.validation)
    print("\n" + report)

    stats_text = format_stats_report(result.statistics, team_names)
    print("\n" + stats_text)

    # Write outputs
    print("\nWriting output files...")
    write_schedule(result.match_days, team_names, output_dir=args.output_dir,
                   title=config.name or "Season schedule",
                   resting=result.statistics.get("resting_teams"))

    stats_path = Path(args.output_dir) / "stats.txt"
    stats_path.write_text(report + "\n\n" + stats_text)
    print(f"Written: {stats_path}")

    if store is not None:
        if result.persisted:
            print(f"Saved season {config.season_id} to {args.store}")
        else:
            print(f"Error: {result.message}")
            for err in result.errors:
                print(f"  ERROR: {err}")

    if not result.success:
        sys.exit(1)

    print(f"\n{result.message}")


if __name__ == "__main__":
    main()
