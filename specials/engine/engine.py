"""
SpecialsEngine - lifecycle wiring for the specials subsystem.

Builds the catalog, store, trigger engine, activity tracker and command
router from one config document, and owns enable/disable/reload/save.

Usage:
    engine = SpecialsEngine.from_config_file(host, "specials.yml")
    engine.enable()

    # host event hooks
    engine.triggers.on_item_pickup(player_id, "EMERALD")
    engine.on_player_join(player_id)

    # chat
    for line in engine.handle_command(player_id, "activate emerald_boost"):
        host.send_message(player_id, line)

    engine.disable()
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Mapping

from ..commands.router import CommandRouter
from ..commands.specials import SpecialsCommand
from ..config import SpecialsSettings, load_config_file, parse_settings
from .activity import SectionActivityTracker
from .catalog import NameRegistry, SpecialCatalog, ValidationWarning
from .events import SpecialEventBus
from .host import PlayerId, ProgressionHost
from .persistence import SpecialsStore
from .records import BonusRecord
from .speed import SpeedStackingService
from .triggers import TriggerConfig, TriggerEngine

logger = logging.getLogger(__name__)


class SpecialsEngine:
    def __init__(
        self,
        host: ProgressionHost,
        settings: SpecialsSettings | None = None,
        document: Mapping[str, Any] | None = None,
        registry: NameRegistry | None = None,
        base_dir: Path | str | None = None,
    ) -> None:
        self.host = host
        self.settings = settings or SpecialsSettings()
        self.registry = registry
        self.enabled = False

        data_folder = Path(self.settings.data_folder)
        if base_dir is not None and not data_folder.is_absolute():
            data_folder = Path(base_dir) / data_folder
        self.store = SpecialsStore(
            data_folder,
            players_folder=self.settings.players_folder,
            global_file=self.settings.global_data_file,
        )

        catalog, self.warnings = SpecialCatalog.load(document or {}, registry)

        self.events = SpecialEventBus()
        self.speed = SpeedStackingService(host.apply_external_time_skip)
        self.triggers = TriggerEngine(
            host,
            catalog,
            speed=self.speed,
            events=self.events,
            config=TriggerConfig(
                server_lock_on_requirement_miss=self.settings.server_lock_on_requirement_miss,
                reason_prefix=self.settings.default_skip_reason_prefix,
            ),
        )
        self.activity = SectionActivityTracker(host, catalog)

        self.commands = CommandRouter(host)
        SpecialsCommand(self.triggers).register(self.commands, self.settings.permissions)

        self.config_path: Path | None = None
        self._last_save: float | None = None

    @classmethod
    def from_config_file(
        cls,
        host: ProgressionHost,
        path: Path | str,
        registry: NameRegistry | None = None,
    ) -> "SpecialsEngine":
        """
        Build an engine from a YAML config file. A relative data folder is
        resolved against the config file's directory.

        Raises:
            ConfigError: If the file or its settings section is invalid
        """
        path = Path(path)
        document = load_config_file(path)
        settings = parse_settings(document)
        engine = cls(host, settings, document, registry, base_dir=path.parent)
        engine.config_path = path
        return engine

    @property
    def catalog(self) -> SpecialCatalog:
        return self.triggers.catalog

    # ---------- Lifecycle ----------

    def enable(self, now: float | None = None) -> None:
        """Load persisted state. Anything held in memory is replaced."""
        self.triggers.records.clear()
        self.triggers.records.update(self.store.load_players())
        self.triggers.locks = self.store.load_server_locks()
        self._last_save = time.monotonic() if now is None else now
        self.enabled = True
        logger.info(
            "Specials enabled: %d specials, %d players, %d server locks",
            len(self.catalog),
            len(self.triggers.records),
            len(self.triggers.locks),
        )

    def disable(self) -> None:
        """Save everything and stop."""
        self.save()
        self.enabled = False
        logger.info("Specials disabled")

    def reload(self, document: Mapping[str, Any] | None = None) -> list[ValidationWarning]:
        """
        Rebuild the catalog and publish it in one swap.

        Without a document the config file is read again. If it cannot be
        read, ConfigError propagates and the current catalog stays in place.
        Player records and server locks are untouched.
        """
        if document is None:
            if self.config_path is None:
                raise ValueError("No document given and engine has no config file")
            document = load_config_file(self.config_path)

        catalog, warnings = SpecialCatalog.load(document, self.registry)
        self.triggers.swap_catalog(catalog)
        self.activity.catalog = catalog
        self.warnings = warnings
        logger.info("Reloaded specials: %d loaded, %d warnings", len(catalog), len(warnings))
        return warnings

    # ---------- Persistence ----------

    def save(self, now: float | None = None) -> bool:
        """Write every player record and the server locks. Returns True if all writes succeeded."""
        records = self.triggers.records
        saved = self.store.save_players(records)
        locks_saved = self.store.save_server_locks(self.triggers.locks)
        self._last_save = time.monotonic() if now is None else now
        return saved == len(records) and locks_saved

    def maybe_autosave(self, now: float | None = None) -> bool:
        """Save if the autosave interval has elapsed. Returns True if a save ran."""
        interval = self.settings.autosave_interval_seconds
        if not self.enabled or interval <= 0:
            return False
        now = time.monotonic() if now is None else now
        if self._last_save is not None and now - self._last_save < interval:
            return False
        self.save(now)
        return True

    # ---------- Host hooks ----------

    def record(self, player_id: PlayerId) -> BonusRecord | None:
        return self.triggers.records.get(player_id)

    def on_player_join(self, player_id: PlayerId) -> list[str]:
        return self.triggers.on_session_start(player_id)

    def on_player_quit(self, player_id: PlayerId) -> None:
        record = self.triggers.records.get(player_id)
        if record is not None:
            self.store.save_player(player_id, record)
        # The host timer starts from scratch on the next join
        self.speed.forget(player_id)
        self.activity.forget(player_id)

    def handle_command(self, player_id: PlayerId, raw_command: str) -> list[str]:
        return self.commands.dispatch(player_id, raw_command)
