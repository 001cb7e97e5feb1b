"""Schedule stores that persist generated seasons.

The coordinator always writes inside ``store.transaction()``: clearing the
old schedule, inserting match-days and fixtures, and activating the season
either all land or none do.
"""

import copy
import csv
import logging
import shutil
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import yaml

from seasoncal.models import Game, MatchDay

logger = logging.getLogger(__name__)


MATCH_DAY_COLUMNS = [
    "id", "season_id", "number", "date", "leg", "kind", "capacity",
    "games_scheduled", "note",
]

FIXTURE_COLUMNS = [
    "match_day_id", "season_id", "home_team_id", "away_team_id", "field_id",
    "timeslot_id", "match_number", "leg", "round", "date", "start_time",
    "end_time", "status", "makeup", "overflow",
]


def match_day_row(season_id: str, md: MatchDay, md_id: str = "") -> dict:
    return {
        "id": md_id,
        "season_id": season_id,
        "number": md.number,
        "date": md.date.isoformat(),
        "leg": md.leg,
        "kind": md.kind.value,
        "capacity": md.capacity,
        "games_scheduled": len(md.games),
        "note": md.note,
    }


def fixture_row(season_id: str, md_id: str, g: Game) -> dict:
    return {
        "match_day_id": md_id,
        "season_id": season_id,
        "home_team_id": g.home_team,
        "away_team_id": g.away_team,
        "field_id": g.field_id,
        "timeslot_id": g.timeslot_id,
        "match_number": g.match_number,
        "leg": g.leg,
        "round": g.round_number,
        "date": g.date.isoformat(),
        "start_time": g.start_time.strftime("%H:%M"),
        "end_time": g.end_time.strftime("%H:%M"),
        "status": "scheduled",
        "makeup": g.makeup,
        "overflow": g.overflow,
    }


class ScheduleStore:
    """Interface the coordinator persists through.

    Subclasses implement the five operations; ``transaction`` must make the
    clear/insert/activate sequence atomic.
    """

    @contextmanager
    def transaction(self):
        yield self

    def clear_season_schedule(self, season_id: str):
        raise NotImplementedError

    def insert_match_days(self, season_id: str,
                          match_days: list[MatchDay]) -> list[str]:
        raise NotImplementedError

    def insert_fixtures(self, season_id: str, match_day_ids: list[str],
                        match_days: list[MatchDay]):
        raise NotImplementedError

    def mark_season_active(self, season_id: str):
        raise NotImplementedError

    def record_generation_log(self, season_id: str, config: dict, result: dict):
        raise NotImplementedError


class MemoryScheduleStore(ScheduleStore):
    """Dict-backed store; a transaction snapshots state and restores it on error."""

    def __init__(self):
        self.seasons: dict[str, dict] = {}
        self.logs: list[dict] = []
        self._next_id = 1

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy((self.seasons, self._next_id))
        try:
            yield self
        except Exception:
            self.seasons, self._next_id = snapshot
            logger.info("Rolled back schedule store transaction")
            raise

    def _season(self, season_id: str) -> dict:
        return self.seasons.setdefault(
            season_id, {"status": "draft", "match_days": [], "fixtures": []}
        )

    def clear_season_schedule(self, season_id):
        season = self._season(season_id)
        season["match_days"] = []
        season["fixtures"] = []

    def insert_match_days(self, season_id, match_days):
        season = self._season(season_id)
        ids = []
        for md in match_days:
            md_id = str(self._next_id)
            self._next_id += 1
            season["match_days"].append(match_day_row(season_id, md, md_id))
            ids.append(md_id)
        return ids

    def insert_fixtures(self, season_id, match_day_ids, match_days):
        season = self._season(season_id)
        for md_id, md in zip(match_day_ids, match_days):
            for g in md.games:
                season["fixtures"].append(fixture_row(season_id, md_id, g))

    def mark_season_active(self, season_id):
        self._season(season_id)["status"] = "active"

    def record_generation_log(self, season_id, config, result):
        self.logs.append({
            "season_id": season_id,
            "action": "generate",
            "config": config,
            "result": result,
        })


class FileScheduleStore(ScheduleStore):
    """Directory-backed store: one sub-directory per season.

    Writes are buffered for the transaction, written to a staging directory
    on commit, and swapped into place with renames. A failure before the
    swap leaves the previous season directory untouched.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self._pending: dict[str, dict] | None = None

    def season_dir(self, season_id: str) -> Path:
        if not season_id or "/" in season_id or season_id.startswith("."):
            raise ValueError(f"Unusable season id {season_id!r}")
        return self.root / season_id

    def _buffer(self, season_id: str) -> dict:
        if self._pending is None:
            raise RuntimeError("FileScheduleStore writes need an open transaction")
        if season_id not in self._pending:
            self._pending[season_id] = {
                "status": self.season_status(season_id) or "draft",
                "match_days": [],
                "fixtures": [],
            }
        return self._pending[season_id]

    def season_status(self, season_id: str) -> str | None:
        meta = self.season_dir(season_id) / "season.yaml"
        if not meta.exists():
            return None
        with open(meta) as f:
            return (yaml.safe_load(f) or {}).get("status")

    def read_rows(self, season_id: str, name: str) -> list[dict]:
        """Read back ``matchdays`` or ``fixtures`` rows for a season."""
        path = self.season_dir(season_id) / f"{name}.csv"
        if not path.exists():
            return []
        with open(path, newline="") as f:
            return list(csv.DictReader(f))

    @contextmanager
    def transaction(self):
        if self._pending is not None:
            raise RuntimeError("Nested transactions are not supported")
        self._pending = {}
        try:
            yield self
            for season_id, data in self._pending.items():
                self._commit(season_id, data)
        finally:
            self._pending = None

    def _commit(self, season_id: str, data: dict):
        self.root.mkdir(parents=True, exist_ok=True)
        final = self.season_dir(season_id)
        staging = self.root / f".{season_id}.staging"
        backup = self.root / f".{season_id}.old"
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir()

        try:
            with open(staging / "matchdays.csv", "w", newline="") as f:
                writer = csv.DictWriter(f, fieldnames=MATCH_DAY_COLUMNS)
                writer.writeheader()
                writer.writerows(data["match_days"])
            with open(staging / "fixtures.csv", "w", newline="") as f:
                writer = csv.DictWriter(f, fieldnames=FIXTURE_COLUMNS)
                writer.writeheader()
                writer.writerows(data["fixtures"])
            with open(staging / "season.yaml", "w") as f:
                yaml.safe_dump({
                    "season_id": season_id,
                    "status": data["status"],
                    "updated_at": datetime.now().isoformat(timespec="seconds"),
                    "match_days": len(data["match_days"]),
                    "fixtures": len(data["fixtures"]),
                }, f, sort_keys=False)
        except OSError:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if backup.exists():
            shutil.rmtree(backup)
        if final.exists():
            final.rename(backup)
        staging.rename(final)
        if backup.exists():
            shutil.rmtree(backup)
        logger.info("Wrote season %s to %s", season_id, final)

    def clear_season_schedule(self, season_id):
        buf = self._buffer(season_id)
        buf["match_days"] = []
        buf["fixtures"] = []

    def insert_match_days(self, season_id, match_days):
        buf = self._buffer(season_id)
        ids = []
        for md in match_days:
            md_id = f"{season_id}-{md.number}"
            buf["match_days"].append(match_day_row(season_id, md, md_id))
            ids.append(md_id)
        return ids

    def insert_fixtures(self, season_id, match_day_ids, match_days):
        buf = self._buffer(season_id)
        for md_id, md in zip(match_day_ids, match_days):
            for g in md.games:
                buf["fixtures"].append(fixture_row(season_id, md_id, g))

    def mark_season_active(self, season_id):
        self._buffer(season_id)["status"] = "active"

    def record_generation_log(self, season_id, config, result):
        self.root.mkdir(parents=True, exist_ok=True)
        entry = {
            "season_id": season_id,
            "action": "generate",
            "at": datetime.now().isoformat(timespec="seconds"),
            "config": config,
            "result": result,
        }
        with open(self.root / "generation_log.yaml", "a") as f:
            f.write("---\n")
            yaml.safe_dump(entry, f, sort_keys=False)
