"""Config loading and parsing for the season calendar engine."""

import logging
from datetime import date, time, timedelta
from pathlib import Path

import yaml

from seasoncal.errors import InvalidConfiguration
from seasoncal.models import (
    DateKind, DayOfWeek, Field, SeasonConfig, SpecialDate, Team, Timeslot,
)

logger = logging.getLogger(__name__)


def parse_time(s: str) -> time:
    """Parse time strings like '5:30pm', '10am', '17:00'."""
    s = s.strip()
    s_lower = s.lower()

    is_pm = s_lower.endswith("pm")
    is_am = s_lower.endswith("am")

    # Strip am/pm suffix
    s_clean = s_lower
    if is_pm or is_am:
        s_clean = s_clean[:-2].strip()

    if ":" in s_clean:
        parts = s_clean.split(":")
        h = int(parts[0])
        m = int(parts[1])
    else:
        h = int(s_clean)
        m = 0

    if is_pm and h < 12:
        h += 12
    elif is_am and h == 12:
        h = 0

    return time(h, m)


def parse_date(s: str) -> date:
    """Parse date string YYYY-MM-DD."""
    parts = s.strip().split("-")
    return date(int(parts[0]), int(parts[1]), int(parts[2]))


def parse_date_range(s: str) -> tuple[date, date]:
    """Parse 'YYYY-MM-DD:YYYY-MM-DD' into (start, end) dates."""
    parts = s.split(":")
    return parse_date(parts[0]), parse_date(parts[1])


def _parse_time_value(v) -> time:
    # YAML reads unquoted 17:00 as sexagesimal minutes (1020)
    if isinstance(v, int):
        return time(v // 60, v % 60)
    return parse_time(str(v))


def _parse_special_dates(raw_list: list) -> list[SpecialDate]:
    specials = []
    for entry in raw_list:
        try:
            kind = DateKind(str(entry.get("kind", "holiday")).lower())
        except ValueError:
            raise InvalidConfiguration(
                f"Unknown special date kind {entry.get('kind')!r} "
                f"(expected holiday, flex or maintenance)"
            )
        note = entry.get("note", "")
        s = str(entry["date"])
        if ":" in s:
            # A range marks every day in it; only match weekdays matter later
            start, end = parse_date_range(s)
            d = start
            while d <= end:
                specials.append(SpecialDate(d, kind, note))
                d += timedelta(days=1)
        else:
            specials.append(SpecialDate(parse_date(s), kind, note))
    return specials


def parse_config(raw: dict) -> SeasonConfig:
    """Build a SeasonConfig from an already-loaded mapping."""
    if "season" not in raw:
        raise InvalidConfiguration("Config is missing the 'season' section")
    season = raw["season"]

    missing = [k for k in ("start_date", "end_date") if k not in season]
    if missing:
        raise InvalidConfiguration(
            [f"Season is missing '{k}'" for k in missing]
        )

    # Teams: either a list or a count that auto-generates T1, T2, ...
    teams_val = raw.get("teams", [])
    if isinstance(teams_val, int):
        teams = [Team(id=f"T{i}", name=f"Team {i}")
                 for i in range(1, teams_val + 1)]
    else:
        teams = []
        for td in teams_val:
            if isinstance(td, str):
                teams.append(Team(id=td, name=td))
            else:
                teams.append(Team(
                    id=str(td["id"]),
                    name=td.get("name", str(td["id"])),
                    active=td.get("active", True),
                ))

    seen = set()
    for t in teams:
        if t.id in seen:
            raise InvalidConfiguration(f"Duplicate team id {t.id}")
        seen.add(t.id)

    fields = []
    for i, fd in enumerate(raw.get("fields", [])):
        fields.append(Field(
            id=str(fd["id"]),
            name=fd.get("name", str(fd["id"])),
            active=fd.get("active", True),
            order=fd.get("order", i),
        ))

    timeslots = []
    overflow_timeslot = None
    for i, sd in enumerate(raw.get("timeslots", [])):
        slot = Timeslot(
            id=str(sd["id"]),
            name=sd.get("name", str(sd["id"])),
            start_time=_parse_time_value(sd.get("start", "10am")),
            end_time=_parse_time_value(sd.get("end", "12:30pm")),
            active=sd.get("active", True),
            order=sd.get("order", i),
        )
        if sd.get("overflow", False):
            if overflow_timeslot is not None:
                logger.warning("Several overflow timeslots; using %s",
                               overflow_timeslot)
            else:
                overflow_timeslot = slot.id
        timeslots.append(slot)

    playoffs_start = None
    if season.get("playoffs_start"):
        playoffs_start = parse_date(str(season["playoffs_start"]))

    max_games = season.get("max_games_per_date")

    return SeasonConfig(
        season_id=str(season.get("id", "season")),
        organization_id=str(season.get("organization", "")),
        name=season.get("name", ""),
        start_date=parse_date(str(season["start_date"])),
        end_date=parse_date(str(season["end_date"])),
        teams=teams,
        fields=fields,
        timeslots=timeslots,
        legs=int(season.get("legs", 1)),
        max_games_per_date=int(max_games) if max_games is not None else None,
        alternate_home_away=season.get("alternate_home_away", True),
        special_dates=_parse_special_dates(raw.get("special_dates", [])),
        flex_every=int(season.get("flex_every", 0)),
        match_weekday=DayOfWeek.from_str(str(season.get("match_day", "Sat"))),
        rest_threshold=int(season.get("rest_after", 5)),
        overflow_timeslot=overflow_timeslot,
        playoffs_start=playoffs_start,
    )


def load_config(path: str | Path) -> SeasonConfig:
    """Load a season config YAML file.

    The file has a ``season`` section (id, organization, name, dates, legs,
    max_games_per_date, flex_every, match_day, rest_after, playoffs_start)
    plus ``teams``, ``fields``, ``timeslots`` and ``special_dates`` lists.
    """
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f)
    if not isinstance(raw, dict):
        raise InvalidConfiguration(f"{path}: expected a mapping at top level")
    return parse_config(raw)
