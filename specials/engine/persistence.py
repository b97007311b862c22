"""
SpecialsStore - YAML persistence for specials state.

Layout under the data folder:
    Players/<player-uuid>.yml   one BonusRecord per player
    specials-data.yml           specials consumed server-wide, and who took them

Per-player file:
    speed-bonuses:
      <special-id>: {percent: 800.0, skip-seconds: 10}
    completed-specials: [<special-id>, ...]
    applied-specials: [<special-id>, ...]
    unique-encounters:
      <tracking-key>: [<victim-uuid>, ...]

Loading skips unreadable files and bad entries with a warning. Saving writes
each file atomically and logs failures instead of raising.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping
from uuid import UUID

import yaml

from .host import PlayerId
from .records import BonusRecord, ServerLocks

logger = logging.getLogger(__name__)

PLAYER_FILE_SUFFIX = ".yml"


def record_to_dict(record: BonusRecord) -> dict[str, Any]:
    """Serialize a BonusRecord to plain YAML-safe data."""
    return {
        "speed-bonuses": {
            special_id: {"percent": bonus.percent, "skip-seconds": bonus.skip_seconds}
            for special_id, bonus in sorted(record.bonuses.items())
        },
        "completed-specials": sorted(record.completed),
        "applied-specials": sorted(record.applied),
        "unique-encounters": {
            key: sorted(str(v) for v in victims)
            for key, victims in sorted(record.unique_encounters.items())
        },
    }


def _id_list(data: Mapping[str, Any], key: str, source: str) -> list[str]:
    """Read a list of ids. Anything other than a list is skipped with a warning."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Ignoring %s in %s: expected a list, got %r", key, source, value)
        return []
    return [str(v) for v in value]


def record_from_dict(data: Mapping[str, Any] | None, source: str = "<memory>") -> BonusRecord:
    """
    Rebuild a BonusRecord. Malformed sections and entries are skipped with a warning.

    Files written before applied-specials existed load with nothing applied;
    the join sweep applies their completed specials again.
    """
    record = BonusRecord()
    if not data:
        return record

    bonuses = data.get("speed-bonuses") or {}
    if not isinstance(bonuses, Mapping):
        logger.warning("Ignoring speed-bonuses in %s: expected a mapping", source)
        bonuses = {}
    for special_id, entry in bonuses.items():
        entry = entry or {}
        try:
            record.add_or_update_bonus(
                str(special_id),
                float(entry.get("percent", 0.0)),
                int(entry.get("skip-seconds", 0)),
            )
        except (AttributeError, TypeError, ValueError):
            logger.warning("Invalid speed bonus %s in %s", special_id, source)

    for special_id in _id_list(data, "completed-specials", source):
        record.mark_completed(special_id)

    for special_id in _id_list(data, "applied-specials", source):
        # Applied always implies completed
        record.mark_completed(special_id)
        record.mark_applied(special_id)

    encounters = data.get("unique-encounters") or {}
    if not isinstance(encounters, Mapping):
        logger.warning("Ignoring unique-encounters in %s: expected a mapping", source)
        encounters = {}
    for key, victims in encounters.items():
        if not isinstance(victims, list):
            logger.warning("Ignoring encounters under %s in %s: expected a list", key, source)
            continue
        seen = record.unique_encounters.setdefault(str(key), set())
        for victim in victims:
            try:
                seen.add(UUID(str(victim)))
            except ValueError:
                logger.warning("Invalid victim id %r under %s in %s", victim, key, source)

    return record


def _atomic_write_yaml(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, default_flow_style=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _read_yaml(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


class SpecialsStore:
    """
    Reads and writes specials state under a data folder.

    Usage:
        store = SpecialsStore(Path("data"))
        records = store.load_players()
        locks = store.load_server_locks()
        ...
        store.save_players(records)
        store.save_server_locks(locks)
    """

    def __init__(
        self,
        data_folder: Path | str,
        players_folder: str = "Players",
        global_file: str = "specials-data.yml",
    ) -> None:
        self.data_folder = Path(data_folder)
        self.players_folder = self.data_folder / players_folder
        self.global_file = self.data_folder / global_file

    def player_path(self, player_id: PlayerId) -> Path:
        return self.players_folder / f"{player_id}{PLAYER_FILE_SUFFIX}"

    # ---------- Players ----------

    def load_players(self) -> dict[PlayerId, BonusRecord]:
        records: dict[PlayerId, BonusRecord] = {}
        if not self.players_folder.is_dir():
            return records

        for path in sorted(self.players_folder.iterdir()):
            if path.suffix.lower() != PLAYER_FILE_SUFFIX or not path.is_file():
                continue
            try:
                player_id = UUID(path.stem)
            except ValueError:
                logger.warning("Invalid player UUID in players folder: %s", path.name)
                continue
            try:
                data = _read_yaml(path)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning("Could not read specials data %s: %s", path.name, exc)
                continue
            if data is not None and not isinstance(data, Mapping):
                logger.warning("Specials data %s is not a mapping, skipping", path.name)
                continue
            try:
                records[player_id] = record_from_dict(data, source=path.name)
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed specials data %s: %s", path.name, exc)

        logger.info("Loaded specials data for %d players", len(records))
        return records

    def load_player(self, player_id: PlayerId) -> BonusRecord | None:
        path = self.player_path(player_id)
        if not path.is_file():
            return None
        try:
            data = _read_yaml(path)
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Could not read specials data %s: %s", path.name, exc)
            return None
        if data is not None and not isinstance(data, Mapping):
            return None
        return record_from_dict(data, source=path.name)

    def save_player(self, player_id: PlayerId, record: BonusRecord) -> bool:
        path = self.player_path(player_id)
        try:
            _atomic_write_yaml(path, record_to_dict(record))
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Could not save specials data for %s: %s", player_id, exc)
            return False
        return True

    def save_players(self, records: Mapping[PlayerId, BonusRecord]) -> int:
        """Save every record. Returns how many were written successfully."""
        saved = sum(1 for player_id, record in records.items() if self.save_player(player_id, record))
        logger.info("Saved specials data for %d/%d players", saved, len(records))
        return saved

    # ---------- Server-wide ----------

    def load_server_locks(self) -> ServerLocks:
        if not self.global_file.is_file():
            return ServerLocks()
        try:
            data = _read_yaml(self.global_file) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Could not read %s: %s", self.global_file.name, exc)
            return ServerLocks()
        if not isinstance(data, Mapping):
            logger.warning("%s is not a mapping, ignoring", self.global_file.name)
            return ServerLocks()
        source = self.global_file.name
        holders: dict[str, UUID] = {}
        raw_holders = data.get("server-lock-holders") or {}
        if not isinstance(raw_holders, Mapping):
            logger.warning("Ignoring server-lock-holders in %s: expected a mapping", source)
            raw_holders = {}
        for special_id, holder in raw_holders.items():
            try:
                holders[str(special_id)] = UUID(str(holder))
            except ValueError:
                logger.warning("Invalid lock holder %r for %s in %s", holder, special_id, source)
        return ServerLocks(_id_list(data, "completed-specials-server", source), holders)

    def save_server_locks(self, locks: ServerLocks) -> bool:
        data: dict[str, Any] = {"completed-specials-server": list(locks)}
        holders = locks.holders()
        if holders:
            data["server-lock-holders"] = {k: str(v) for k, v in holders.items()}
        try:
            _atomic_write_yaml(self.global_file, data)
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Could not save %s: %s", self.global_file.name, exc)
            return False
        return True
