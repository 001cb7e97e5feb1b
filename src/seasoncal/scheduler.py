"""Match-day scheduling engine for the season calendar.

Four phases:
1. Calendar: enumerate candidate dates (holidays skipped, flex cadence,
   per-date capacity)
2. Rest rule: defer fixtures whose teams reached the consecutive-games limit
3. Placement: map each round onto the next dates, splitting a round across
   dates when it exceeds capacity
4. Resources: rotate fields and timeslots over the games of each match-day

Core principle: fixtures are never dropped. Capacity pushes games to later
dates (past the season end if it must), and rest-rule deferrals are
replayed as make-up rounds at the end of their leg.
"""

import logging
import math
from dataclasses import replace
from datetime import date, timedelta

from seasoncal.errors import InvalidConfiguration, StructuralViolation
from seasoncal.models import (
    CandidateDate, DateKind, DayOfWeek, Field, Fixture, Game, MatchDay,
    MatchDayKind, RestCounter, RestEvent, RestKind, Round, ScheduleConfig,
    SchedulePlan, SpecialDate, Timeslot,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Phase 1: Candidate dates
# ---------------------------------------------------------------------------

def _first_weekday_on_or_after(d: date, weekday: DayOfWeek) -> date:
    return d + timedelta(days=(weekday.value - d.weekday()) % 7)


def date_capacity(config: ScheduleConfig) -> int:
    """Games a regular date can hold: min(max per date, fields x timeslots)."""
    theoretical = len(config.active_fields()) * len(config.active_timeslots())
    if config.max_games_per_date:
        return min(config.max_games_per_date, theoretical)
    return theoretical


def check_schedule_config(config: ScheduleConfig):
    """Raise InvalidConfiguration listing every structural problem."""
    errors = []
    if not config.active_fields():
        errors.append("At least one active field is required")
    if not config.active_timeslots():
        errors.append("At least one active timeslot is required")
    if config.start_date >= config.end_date:
        errors.append(
            f"Start date {config.start_date} must be before end date "
            f"{config.end_date}"
        )
    if config.overflow_timeslot is not None and config.overflow_slot() is None:
        errors.append(f"Unknown overflow timeslot {config.overflow_timeslot!r}")
    if config.max_games_per_date is not None and config.max_games_per_date < 1:
        errors.append("Max games per date must be at least 1")
    if config.rest_threshold < 1:
        errors.append("Rest threshold must be at least 1")
    if errors:
        raise InvalidConfiguration(errors)


def _candidate(d: date, counter: int, special: SpecialDate | None,
               config: ScheduleConfig, capacity: int,
               extended: bool = False) -> CandidateDate:
    kind = MatchDayKind.REGULAR
    if special is not None and special.kind == DateKind.FLEX:
        kind = MatchDayKind.FLEX
    elif config.flex_every > 0 and counter % config.flex_every == 0:
        kind = MatchDayKind.FLEX
    return CandidateDate(
        date=d,
        kind=kind,
        capacity=capacity,
        note=special.note if special is not None else "",
        extended=extended,
    )


def build_calendar(config: ScheduleConfig) -> list[CandidateDate]:
    """List every recurring match date from start to end date.

    Holidays are left out entirely. Every ``flex_every``-th remaining date,
    and any date explicitly marked flex, is a flex date. Maintenance dates
    stay schedulable and keep their note. Dates on or after
    ``playoffs_start`` are reserved for playoffs.
    """
    capacity = date_capacity(config)
    dates = []
    counter = 0
    current = _first_weekday_on_or_after(config.start_date, config.match_weekday)

    while current <= config.end_date:
        special = config.special_date(current)
        if special is not None and special.kind == DateKind.HOLIDAY:
            logger.debug("Skipping holiday %s", current)
        elif config.playoffs_start is not None and current >= config.playoffs_start:
            dates.append(CandidateDate(
                date=current,
                kind=MatchDayKind.PLAYOFFS,
                capacity=capacity,
                note=special.note if special is not None else "",
            ))
        else:
            counter += 1
            dates.append(_candidate(current, counter, special, config, capacity))
        current += timedelta(days=7)

    return dates


# ---------------------------------------------------------------------------
# Placement policies
# ---------------------------------------------------------------------------

class PlacementPolicy:
    """Decides whether the placement loop passes over a candidate date.

    ``slack`` is how many in-season dates could still be passed over
    without pushing the remaining games past the season end, or None when
    the caller does not track it.
    """
    name = "none"

    def skip(self, candidate: CandidateDate,
             following: CandidateDate | None, pending: int,
             slack: int | None = None) -> bool:
        return False


class NoFlexPreference(PlacementPolicy):
    """Use every date in order, flex or not."""
    name = "no-flex-preference"


class PreferRegularOverFlex(PlacementPolicy):
    """Hold flex dates back as headroom for reschedules.

    A flex date is passed over when the pending games fit on it, the next
    date is a regular date that fits them too, and the season has a spare
    date left. A flex date is never held back if that would run the
    schedule past the season end.
    """
    name = "prefer-regular-over-flex"

    def skip(self, candidate, following, pending, slack=None):
        return (
            candidate.kind == MatchDayKind.FLEX
            and (slack is None or slack > 0)
            and pending <= candidate.capacity
            and following is not None
            and following.kind == MatchDayKind.REGULAR
            and pending <= following.capacity
        )


class DateCursor:
    """Walks candidate dates for one scheduling run.

    Once the candidates run out, further recurring dates past the season
    end are appended, so placement can always continue.
    """

    def __init__(self, config: ScheduleConfig, candidates: list[CandidateDate],
                 policy: PlacementPolicy, capacity: int):
        self.config = config
        self.dates = list(candidates)
        self.policy = policy
        self.capacity = capacity
        self.index = 0
        self.counter = sum(1 for c in candidates
                           if c.kind != MatchDayKind.PLAYOFFS)
        self.skipped: list[date] = []
        self.extended: list[date] = []

    def _extend(self):
        if self.extended:
            current = self.extended[-1] + timedelta(days=7)
        else:
            current = _first_weekday_on_or_after(
                self.config.end_date + timedelta(days=1),
                self.config.match_weekday,
            )
        while self.config.is_holiday(current):
            current += timedelta(days=7)
        self.counter += 1
        self.dates.append(_candidate(
            current, self.counter, self.config.special_date(current),
            self.config, self.capacity, extended=True,
        ))
        self.extended.append(current)
        logger.warning("Out of dates: extending season to %s", current)

    def _peek(self) -> CandidateDate | None:
        for c in self.dates[self.index:]:
            if c.kind != MatchDayKind.PLAYOFFS:
                return c
        return None

    def _in_season_left(self, start: int) -> int:
        return sum(1 for c in self.dates[start:]
                   if c.kind != MatchDayKind.PLAYOFFS and not c.extended)

    def next_date(self, pending: int, ahead: int = 0) -> CandidateDate:
        """Next date to place ``pending`` games on.

        ``ahead`` estimates the dates the games after these will need.
        """
        while True:
            if self.index >= len(self.dates):
                self._extend()
            candidate = self.dates[self.index]
            self.index += 1
            if candidate.kind == MatchDayKind.PLAYOFFS:
                continue
            demand = math.ceil(pending / candidate.capacity) + ahead
            slack = self._in_season_left(self.index - 1) - demand
            if self.policy.skip(candidate, self._peek(), pending, slack):
                logger.debug("Holding flex date %s in reserve", candidate.date)
                self.skipped.append(candidate.date)
                continue
            return candidate


# ---------------------------------------------------------------------------
# Phase 2: Rest rule (5+1)
# ---------------------------------------------------------------------------

class RestTracker:
    """Rest counters for one scheduling run, keyed by team id.

    Also records every game, bye and deferral in placement order so the
    rest rule can be audited after the fact.
    """

    def __init__(self, team_ids: list[str], threshold: int = 5):
        self.threshold = threshold
        self.counters = {t: RestCounter(t) for t in team_ids}
        self.log: list[RestEvent] = []

    def _counter(self, team_id: str) -> RestCounter:
        if team_id not in self.counters:
            self.counters[team_id] = RestCounter(team_id)
        return self.counters[team_id]

    def games_played(self, team_id: str) -> int:
        return self._counter(team_id).games_played

    def needs_rest(self, team_id: str) -> bool:
        return self._counter(team_id).needs_rest(self.threshold)

    def rest(self, team_id: str, kind: RestKind, leg: int, round_number: int):
        self._counter(team_id).rest()
        self.log.append(RestEvent(team_id, kind, leg, round_number))

    def played(self, team_id: str, leg: int, round_number: int):
        self._counter(team_id).games_played += 1
        self.log.append(RestEvent(team_id, RestKind.GAME, leg, round_number))


def apply_rest_rule(fixtures: list[Fixture],
                    tracker: RestTracker) -> tuple[list[Fixture], list[Fixture]]:
    """Split one round's fixtures into (placeable, deferred).

    A bye rests its team. A fixture where either team has reached the
    threshold is deferred, and both of its teams are credited with a rest
    since neither plays in this round.
    """
    placeable = []
    deferred = []
    for f in fixtures:
        if f.is_bye:
            tracker.rest(f.home, RestKind.BYE, f.leg, f.round_number)
            continue
        if tracker.needs_rest(f.home) or tracker.needs_rest(f.away):
            logger.debug("Deferring %s vs %s (leg %d round %d): rest required",
                         f.home, f.away, f.leg, f.round_number)
            deferred.append(f)
            tracker.rest(f.home, RestKind.DEFERRED, f.leg, f.round_number)
            tracker.rest(f.away, RestKind.DEFERRED, f.leg, f.round_number)
        else:
            placeable.append(f)
    return placeable, deferred


def _next_makeup_round(queue: list[Fixture]) -> list[Fixture]:
    """Pop a conflict-free batch of deferred fixtures off the queue."""
    busy: set[str] = set()
    batch = []
    remaining = []
    for f in queue:
        if f.home in busy or f.away in busy:
            remaining.append(f)
            continue
        batch.append(f)
        busy.add(f.home)
        busy.add(f.away)
    queue[:] = remaining
    return batch


# ---------------------------------------------------------------------------
# Phase 4: Field / timeslot assignment
# ---------------------------------------------------------------------------

def assign_resources(fixtures: list[Fixture], day: date,
                     fields: list[Field], slots: list[Timeslot],
                     overflow: Timeslot | None = None,
                     makeup: bool = False) -> list[Game]:
    """Rotate fields and timeslots over the fixtures of one match-day.

    Game i gets ``fields[i % F]`` and ``slots[(i // F) % T]``, so every
    field/timeslot combination is used once before any repeats. Games
    beyond F x T go to the overflow timeslot, or the first timeslot when no
    overflow slot is configured.
    """
    per_day = len(fields) * len(slots)
    games = []
    for i, f in enumerate(fixtures):
        fld = fields[i % len(fields)]
        in_overflow = False
        if i < per_day:
            slot = slots[(i // len(fields)) % len(slots)]
        elif overflow is not None:
            slot = overflow
            in_overflow = True
        else:
            slot = slots[0]
        games.append(Game(
            home_team=f.home,
            away_team=f.away,
            date=day,
            start_time=slot.start_time,
            end_time=slot.end_time,
            field_id=fld.id,
            timeslot_id=slot.id,
            leg=f.leg,
            round_number=f.round_number,
            match_number=i + 1,
            overflow=in_overflow,
            makeup=makeup,
        ))
    return games


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def _estimate_dates_needed(rounds: list[Round], capacity: int) -> int:
    return sum(math.ceil(len(r.matchups) / capacity)
               for r in rounds if r.matchups)


def overflow_capacity(config: ScheduleConfig) -> int:
    """Extra games per date the overflow timeslot can take.

    One game per active field, but never past ``max_games_per_date``.
    """
    if config.overflow_slot() is None:
        return 0
    extra = len(config.active_fields())
    if config.max_games_per_date:
        theoretical = len(config.active_fields()) * len(config.active_timeslots())
        extra = min(extra, max(0, config.max_games_per_date - theoretical))
    return extra


def resting_teams(match_days: list[MatchDay],
                  team_ids: list[str]) -> dict[int, list[str]]:
    """Teams without a game on each match-day, keyed by match-day number."""
    out = {}
    for md in match_days:
        playing = set()
        for g in md.games:
            playing.add(g.home_team)
            playing.add(g.away_team)
        out[md.number] = [t for t in team_ids if t not in playing]
    return out


def schedule_rounds(rounds: list[Round], config: ScheduleConfig,
                    policy: PlacementPolicy | None = None) -> SchedulePlan:
    """Place round-robin rounds onto concrete match-days.

    Returns a SchedulePlan with the match-days in date order, non-fatal
    warnings, and the rest trace. Raises InvalidConfiguration for unusable
    calendar settings.
    """
    check_schedule_config(config)
    if policy is None:
        policy = PreferRegularOverFlex()

    fields = config.active_fields()
    slots = config.active_timeslots()
    overflow = config.overflow_slot()
    base_capacity = date_capacity(config)

    plan = SchedulePlan()
    candidates = build_calendar(config)
    usable = [c for c in candidates if c.kind != MatchDayKind.PLAYOFFS]
    logger.info("Calendar: %d candidate dates (%d flex), capacity %d/date",
                len(usable),
                sum(1 for c in usable if c.kind == MatchDayKind.FLEX),
                base_capacity)

    extra = 0
    needed = _estimate_dates_needed(rounds, base_capacity)
    if needed > len(usable):
        if overflow_capacity(config) > 0:
            extra = overflow_capacity(config)
            plan.overflow_enabled = True
            candidates = [replace(c, capacity=c.capacity + extra)
                          for c in candidates]
            plan.warnings.append(
                f"Estimated {needed} match-days needed but only {len(usable)} "
                f"dates available; overflow timeslot {overflow.name} enabled"
            )
        else:
            plan.warnings.append(
                f"Estimated {needed} match-days needed but only {len(usable)} "
                f"dates available; schedule will run past {config.end_date}"
            )
            if overflow is not None:
                plan.warnings.append(
                    f"Overflow timeslot {overflow.name} left unused: max "
                    f"{config.max_games_per_date} games per date leaves no room"
                )

    capacity = base_capacity + extra
    cursor = DateCursor(config, candidates, policy, capacity)

    # Estimated dates needed from each round to the end of the season
    dates_from = [0] * (len(rounds) + 1)
    for i in range(len(rounds) - 1, -1, -1):
        dates_from[i] = dates_from[i + 1] + math.ceil(
            len(rounds[i].matchups) / capacity)

    team_ids = []
    for rnd in rounds:
        for t in rnd.teams():
            if t not in team_ids:
                team_ids.append(t)
    tracker = RestTracker(team_ids, config.rest_threshold)

    def _place(fixtures: list[Fixture], leg: int, makeup: bool, ahead: int):
        pending = list(fixtures)
        while pending:
            candidate = cursor.next_date(len(pending), ahead)
            take = pending[:candidate.capacity]
            pending = pending[candidate.capacity:]
            plan.match_days.append(MatchDay(
                number=len(plan.match_days) + 1,
                date=candidate.date,
                leg=leg,
                kind=candidate.kind,
                capacity=candidate.capacity,
                games=assign_resources(take, candidate.date, fields, slots,
                                       overflow, makeup=makeup),
                note=candidate.note,
                extended=candidate.extended,
            ))
        for f in fixtures:
            tracker.played(f.home, f.leg, f.round_number)
            tracker.played(f.away, f.leg, f.round_number)

    def _flush_makeups(queue: list[Fixture], leg: int, later: int):
        if not queue:
            return
        logger.info("Leg %d: replaying %d deferred fixtures", leg, len(queue))
        guard = len(queue) * (config.rest_threshold + 2) + 10
        while queue:
            guard -= 1
            if guard < 0:
                raise StructuralViolation(
                    f"Leg {leg}: could not place {len(queue)} deferred fixtures"
                )
            batch = _next_makeup_round(queue)
            placeable, deferred = apply_rest_rule(batch, tracker)
            queue.extend(deferred)
            plan.deferred_count += len(deferred)
            if placeable:
                _place(placeable, leg, makeup=True,
                       ahead=later + math.ceil(len(queue) / capacity))

    current_leg = None
    queue: list[Fixture] = []
    for i, rnd in enumerate(rounds):
        if current_leg is not None and rnd.leg != current_leg:
            _flush_makeups(queue, current_leg, dates_from[i])
        current_leg = rnd.leg

        placeable, deferred = apply_rest_rule(rnd.fixtures, tracker)
        queue.extend(deferred)
        plan.deferred_count += len(deferred)
        if not placeable:
            logger.info("Leg %d round %d: every team resting, nothing to place",
                        rnd.leg, rnd.number)
            continue
        _place(placeable, rnd.leg, makeup=False,
               ahead=dates_from[i + 1] + math.ceil(len(queue) / capacity))

    if current_leg is not None:
        _flush_makeups(queue, current_leg, 0)

    plan.rest_log = tracker.log
    plan.resting_teams = resting_teams(plan.match_days, team_ids)
    plan.skipped_flex_dates = cursor.skipped
    plan.extended_dates = cursor.extended
    if cursor.extended:
        plan.warnings.append(
            f"Schedule extends {len(cursor.extended)} date(s) past "
            f"{config.end_date} (last: {cursor.extended[-1]})"
        )

    total = sum(len(md.games) for md in plan.match_days)
    logger.info("Placed %d games on %d match-days (%d deferrals)",
                total, len(plan.match_days), plan.deferred_count)
    return plan
