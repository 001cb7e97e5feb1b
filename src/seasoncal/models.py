"""Data models for the season calendar engine."""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Optional


BYE = "BYE"


class DayOfWeek(Enum):
    Mon = 0
    Tue = 1
    Wed = 2
    Thu = 3
    Fri = 4
    Sat = 5
    Sun = 6

    @classmethod
    def from_str(cls, s: str) -> "DayOfWeek":
        return cls[s[:3].capitalize()]

    def is_weekday(self) -> bool:
        return self.value < 5

    def is_weekend(self) -> bool:
        return self.value >= 5


class DateKind(str, Enum):
    """Kind of a special calendar date supplied by the league."""
    HOLIDAY = "holiday"
    FLEX = "flex"
    MAINTENANCE = "maintenance"


class MatchDayKind(str, Enum):
    REGULAR = "regular"
    FLEX = "flex"
    PLAYOFFS = "playoffs"


class RestKind(str, Enum):
    """What a team did in one round of the rest trace."""
    GAME = "game"
    BYE = "bye"
    DEFERRED = "deferred"


@dataclass
class Team:
    """A team in the league."""
    id: str
    name: str
    active: bool = True


@dataclass
class Field:
    """A playing field. Lower ``order`` is used first."""
    id: str
    name: str
    active: bool = True
    order: int = 0


@dataclass
class Timeslot:
    """A time window on a match-day."""
    id: str
    name: str
    start_time: time
    end_time: time
    active: bool = True  # active by default on every match-day
    order: int = 0


@dataclass
class SpecialDate:
    date: date
    kind: DateKind
    note: str = ""


@dataclass
class Fixture:
    """A pairing in the abstract round-robin. ``away`` is None for a bye."""
    home: str
    away: Optional[str]
    leg: int
    round_number: int

    @property
    def is_bye(self) -> bool:
        return self.away is None

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home, self.away)

    def opponent(self, team_id: str) -> Optional[str]:
        if team_id == self.home:
            return self.away
        return self.home

    def pair_key(self) -> tuple[str, str]:
        """Unordered pair key, home/away agnostic."""
        return (min(self.home, self.away), max(self.home, self.away))

    def swap(self):
        self.home, self.away = self.away, self.home


@dataclass
class Round:
    """Fixtures of one leg where each team appears exactly once."""
    number: int
    leg: int
    fixtures: list[Fixture] = field(default_factory=list)

    @property
    def matchups(self) -> list[Fixture]:
        return [f for f in self.fixtures if not f.is_bye]

    @property
    def bye_teams(self) -> list[str]:
        return [f.home for f in self.fixtures if f.is_bye]

    def teams(self) -> list[str]:
        out = []
        for f in self.fixtures:
            out.append(f.home)
            if f.away is not None:
                out.append(f.away)
        return out


@dataclass
class RestCounter:
    """Consecutive games a team has played since its last rest."""
    team_id: str
    games_played: int = 0

    def needs_rest(self, threshold: int) -> bool:
        return self.games_played >= threshold

    def rest(self):
        self.games_played = 0


@dataclass
class RestEvent:
    """One entry of the scheduler's rest trace, in placement order."""
    team_id: str
    kind: RestKind
    leg: int
    round_number: int


@dataclass
class CandidateDate:
    """A calendar date that can host a match-day."""
    date: date
    kind: MatchDayKind
    capacity: int
    note: str = ""
    extended: bool = False  # appended past the season end date


@dataclass
class Game:
    """A fixture placed on a match-day with its field and timeslot."""
    home_team: str
    away_team: str
    date: date
    start_time: time
    end_time: time
    field_id: str
    timeslot_id: str
    leg: int
    round_number: int
    match_number: int
    overflow: bool = False
    makeup: bool = False

    def pair_key(self) -> tuple[str, str]:
        return (min(self.home_team, self.away_team),
                max(self.home_team, self.away_team))


@dataclass
class MatchDay:
    """A concrete date with the games placed on it."""
    number: int
    date: date
    leg: int
    kind: MatchDayKind
    capacity: int
    games: list[Game] = field(default_factory=list)
    note: str = ""
    extended: bool = False

    @property
    def uses_overflow(self) -> bool:
        return any(g.overflow for g in self.games)


@dataclass
class ScheduleConfig:
    """Calendar constraints consumed by the match-day scheduler."""
    start_date: date
    end_date: date
    fields: list[Field]
    timeslots: list[Timeslot]
    max_games_per_date: Optional[int] = None
    special_dates: list[SpecialDate] = field(default_factory=list)
    flex_every: int = 0
    match_weekday: DayOfWeek = DayOfWeek.Sat
    rest_threshold: int = 5
    overflow_timeslot: Optional[str] = None  # timeslot id
    playoffs_start: Optional[date] = None

    def active_fields(self) -> list[Field]:
        return sorted((f for f in self.fields if f.active), key=lambda f: f.order)

    def active_timeslots(self) -> list[Timeslot]:
        """Regular rotation timeslots, never including the overflow slot."""
        return sorted(
            (t for t in self.timeslots
             if t.active and t.id != self.overflow_timeslot),
            key=lambda t: t.order,
        )

    def overflow_slot(self) -> Optional[Timeslot]:
        if self.overflow_timeslot is None:
            return None
        for t in self.timeslots:
            if t.id == self.overflow_timeslot:
                return t
        return None

    def special_date(self, d: date) -> Optional[SpecialDate]:
        for sd in self.special_dates:
            if sd.date == d:
                return sd
        return None

    def is_holiday(self, d: date) -> bool:
        sd = self.special_date(d)
        return sd is not None and sd.kind == DateKind.HOLIDAY


@dataclass
class SeasonConfig:
    """Complete configuration payload for one season generation run."""
    season_id: str
    organization_id: str
    name: str
    start_date: date
    end_date: date
    teams: list[Team]
    fields: list[Field]
    timeslots: list[Timeslot]
    legs: int = 1
    max_games_per_date: Optional[int] = None
    alternate_home_away: bool = True
    special_dates: list[SpecialDate] = field(default_factory=list)
    flex_every: int = 0
    match_weekday: DayOfWeek = DayOfWeek.Sat
    rest_threshold: int = 5
    overflow_timeslot: Optional[str] = None
    playoffs_start: Optional[date] = None

    def active_teams(self) -> list[Team]:
        return [t for t in self.teams if t.active]

    def schedule_config(self) -> ScheduleConfig:
        return ScheduleConfig(
            start_date=self.start_date,
            end_date=self.end_date,
            fields=self.fields,
            timeslots=self.timeslots,
            max_games_per_date=self.max_games_per_date,
            special_dates=self.special_dates,
            flex_every=self.flex_every,
            match_weekday=self.match_weekday,
            rest_threshold=self.rest_threshold,
            overflow_timeslot=self.overflow_timeslot,
            playoffs_start=self.playoffs_start,
        )


@dataclass
class SchedulePlan:
    """Output of the match-day scheduler."""
    match_days: list[MatchDay] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    rest_log: list[RestEvent] = field(default_factory=list)
    deferred_count: int = 0
    skipped_flex_dates: list[date] = field(default_factory=list)
    extended_dates: list[date] = field(default_factory=list)
    overflow_enabled: bool = False
    resting_teams: dict[int, list[str]] = field(default_factory=dict)

    def games(self) -> list[Game]:
        return [g for md in self.match_days for g in md.games]
