"""Season generation coordinator.

Runs the whole pipeline for one season:
1. Validate the configuration (errors abort, warnings are collected)
2. Generate round-robin pairings and verify them
3. Place the rounds onto match-days and validate the placement
4. Compute statistics
5. Persist through a ScheduleStore as a single transaction

Fatal errors never escape ``run``; they come back as a failed
GenerationResult.
"""

import logging
import math
from dataclasses import dataclass, field

from seasoncal.constraints import validate_schedule
from seasoncal.errors import (
    InvalidConfiguration, PersistenceFailure, SeasonCalendarError,
    StructuralViolation,
)
from seasoncal.models import MatchDay, MatchDayKind, Round, SeasonConfig
from seasoncal.persistence import ScheduleStore
from seasoncal.roundrobin import generate_round_robin, verify_round_robin
from seasoncal.scheduler import (
    PlacementPolicy, build_calendar, date_capacity, schedule_rounds,
)
from seasoncal.stats import compute_stats

logger = logging.getLogger(__name__)

MAX_LEGS_WARNING = 4
MAX_TEAMS_WARNING = 50


@dataclass
class GenerationResult:
    """Outcome of one generation run."""
    success: bool
    message: str
    season_id: str = ""
    match_day_count: int = 0
    fixture_count: int = 0
    statistics: dict = field(default_factory=dict)
    validation: dict = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    match_days: list[MatchDay] = field(default_factory=list)
    rounds: list[Round] = field(default_factory=list)
    persisted: bool = False

    def to_dict(self) -> dict:
        """Plain payload with counts, statistics, warnings and errors."""
        out = {
            "success": self.success,
            "message": self.message,
            "season_id": self.season_id,
            "match_days": self.match_day_count,
            "fixtures": self.fixture_count,
            "statistics": self.statistics,
            "warnings": list(self.warnings),
            "persisted": self.persisted,
        }
        if self.errors:
            out["errors"] = list(self.errors)
        return out


def validate_config(config: SeasonConfig) -> tuple[list[str], list[str]]:
    """Check a season config before any generation work.

    Returns (errors, warnings). Any error means the run must not proceed.
    """
    errors = []
    warnings = []
    sched = config.schedule_config()

    n = len(config.active_teams())
    if n < 2:
        errors.append(f"At least 2 active teams are required (got {n})")
    if config.start_date >= config.end_date:
        errors.append(
            f"Start date {config.start_date} must be before end date "
            f"{config.end_date}"
        )
    if not sched.active_fields():
        errors.append("At least one active field is required")
    if not sched.active_timeslots():
        errors.append("At least one active timeslot is required")
    if config.legs < 1:
        errors.append(f"Number of legs must be at least 1 (got {config.legs})")
    if config.overflow_timeslot is not None and sched.overflow_slot() is None:
        errors.append(f"Unknown overflow timeslot {config.overflow_timeslot!r}")
    if config.max_games_per_date is not None and config.max_games_per_date < 1:
        errors.append("Max games per date must be at least 1")
    if config.rest_threshold < 1:
        errors.append("Rest threshold must be at least 1")

    if errors:
        return errors, warnings

    # Feasibility: estimated fixtures vs capacity over the date range
    estimated = n * (n - 1) // 2 * config.legs
    dates = [c for c in build_calendar(sched) if c.kind != MatchDayKind.PLAYOFFS]
    capacity = date_capacity(sched) * len(dates)
    if estimated > capacity:
        warnings.append(
            f"Estimated {estimated} fixtures exceed capacity {capacity} "
            f"({len(dates)} dates x {date_capacity(sched)} games); "
            f"overflow timeslots or extra dates will be needed"
        )
    else:
        rounds_per_leg = n - 1 if n % 2 == 0 else n
        per_round = math.ceil((n // 2) / date_capacity(sched))
        if rounds_per_leg * config.legs * per_round > len(dates):
            warnings.append(
                f"Rounds need about {rounds_per_leg * config.legs * per_round} "
                f"match-days but only {len(dates)} dates are available"
            )

    if config.legs > MAX_LEGS_WARNING:
        warnings.append(f"{config.legs} legs makes for an unusually long season")
    if n > MAX_TEAMS_WARNING:
        warnings.append(f"{n} active teams is unusually many for one season")

    for sd in config.special_dates:
        if sd.date < config.start_date or sd.date > config.end_date:
            warnings.append(
                f"Special date {sd.date} ({sd.kind.value}) is outside the "
                f"season {config.start_date} .. {config.end_date}"
            )

    return errors, warnings


def _persist(store: ScheduleStore, season_id: str, match_days: list[MatchDay]):
    try:
        with store.transaction():
            store.clear_season_schedule(season_id)
            ids = store.insert_match_days(season_id, match_days)
            if len(ids) != len(match_days):
                raise PersistenceFailure(
                    f"Store returned {len(ids)} ids for "
                    f"{len(match_days)} match-days"
                )
            store.insert_fixtures(season_id, ids, match_days)
            store.mark_season_active(season_id)
    except PersistenceFailure:
        raise
    except Exception as e:
        raise PersistenceFailure(f"Saving season {season_id} failed: {e}") from e


def _config_summary(config: SeasonConfig) -> dict:
    return {
        "name": config.name,
        "organization_id": config.organization_id,
        "start_date": config.start_date.isoformat(),
        "end_date": config.end_date.isoformat(),
        "legs": config.legs,
        "teams": len(config.active_teams()),
        "max_games_per_date": config.max_games_per_date,
        "flex_every": config.flex_every,
        "rest_threshold": config.rest_threshold,
    }


def run(config: SeasonConfig, store: ScheduleStore | None = None,
        policy: PlacementPolicy | None = None,
        seed: int | None = None) -> GenerationResult:
    """Generate, validate and (optionally) persist one season schedule.

    Without a ``store`` the schedule is generated and returned only.
    """
    logger.info("Generating season %s (%s)", config.season_id, config.name)
    errors, warnings = validate_config(config)
    for w in warnings:
        logger.warning(w)
    if errors:
        logger.error("Invalid configuration: %s", "; ".join(errors))
        return GenerationResult(
            success=False,
            message="Invalid configuration",
            season_id=config.season_id,
            warnings=warnings,
            errors=errors,
        )

    teams = [t.id for t in config.active_teams()]
    sched = config.schedule_config()
    try:
        rounds = generate_round_robin(
            config.teams, config.legs, config.alternate_home_away, seed=seed,
        )
        check = verify_round_robin(rounds, teams, config.legs)
        if not check["valid"]:
            raise StructuralViolation(check["errors"])

        plan = schedule_rounds(rounds, sched, policy)
        warnings.extend(plan.warnings)

        validation = validate_schedule(plan.match_days, teams, config.legs,
                                       config=sched, rest_log=plan.rest_log)
        if not validation["valid"]:
            raise StructuralViolation(validation["errors"])
        warnings.extend(validation["warnings"])
    except SeasonCalendarError as e:
        kind = "Invalid configuration" if isinstance(e, InvalidConfiguration) \
            else "Schedule violates structural invariants"
        logger.error("%s: %s", kind, e)
        return GenerationResult(
            success=False,
            message=kind,
            season_id=config.season_id,
            warnings=warnings,
            errors=e.errors,
        )

    stats = compute_stats(
        plan, rounds, teams,
        field_ids=[f.id for f in sched.active_fields()],
        timeslot_ids=[t.id for t in sched.active_timeslots()]
        + ([sched.overflow_timeslot] if sched.overflow_timeslot else []),
    )
    out = GenerationResult(
        success=True,
        message=(f"Generated {stats['total_games']} fixtures on "
                 f"{stats['match_days_used']} match-days"),
        season_id=config.season_id,
        match_day_count=stats["match_days_used"],
        fixture_count=stats["total_games"],
        statistics=stats,
        validation=validation,
        warnings=warnings,
        match_days=plan.match_days,
        rounds=rounds,
    )

    if store is None:
        return out

    try:
        _persist(store, config.season_id, plan.match_days)
    except PersistenceFailure as e:
        logger.error("Persistence failed: %s", e)
        out.success = False
        out.message = "Schedule generated but could not be saved"
        out.errors = e.errors
        return out
    out.persisted = True
    logger.info("Season %s saved and marked active", config.season_id)

    try:
        store.record_generation_log(config.season_id, _config_summary(config),
                                    out.to_dict())
    except Exception as e:
        logger.warning("Could not record generation log for %s: %s",
                       config.season_id, e)
    return out
