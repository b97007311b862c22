"""
Section activity hooks.

Some sections progress through what the player does in the world rather
than through pickups (building in a housing section, harvesting in a farming
section). The host decides which interactions count; this tracker only
enforces the section match, a per-player cooldown and, optionally, that
consecutive ticks come from different locations.
"""

from __future__ import annotations

import logging
import time
from typing import Hashable

from .catalog import SpecialCatalog
from .host import PlayerId, ProgressionHost

logger = logging.getLogger(__name__)


class SectionActivityTracker:
    def __init__(self, host: ProgressionHost, catalog: SpecialCatalog) -> None:
        self.host = host
        self.catalog = catalog
        # (hook_id, player_id) -> last tick timestamp / location
        self._last_tick: dict[tuple[str, PlayerId], float] = {}
        self._last_location: dict[tuple[str, PlayerId], Hashable] = {}

    def record(
        self,
        player_id: PlayerId,
        hook_id: str,
        location: Hashable | None = None,
        now: float | None = None,
    ) -> bool:
        """
        Count one qualifying interaction toward a section hook.

        Returns:
            True if a progress tick was sent to the host timer
        """
        hook = self.catalog.activity_hook(hook_id)
        if hook is None:
            logger.debug("Unknown activity hook %s", hook_id)
            return False

        stage = self.host.get_current_stage(player_id)
        if stage is None or stage.stage_id.lower() != hook.section.lower():
            return False

        now = time.monotonic() if now is None else now
        key = (hook_id, player_id)

        last = self._last_tick.get(key)
        if last is not None and now - last < hook.cooldown_seconds:
            return False

        if hook.distinct_location and location is not None:
            if self._last_location.get(key) == location:
                return False
            self._last_location[key] = location

        self._last_tick[key] = now
        reason = hook.reason or f"{hook.id} activity"
        self.host.apply_external_time_skip(player_id, hook.skip_seconds, hook.speed_percent, reason)
        return True

    def forget(self, player_id: PlayerId) -> None:
        """Drop cooldown state for a player who left."""
        for key in [k for k in self._last_tick if k[1] == player_id]:
            del self._last_tick[key]
        for key in [k for k in self._last_location if k[1] == player_id]:
            del self._last_location[key]
