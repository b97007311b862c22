"""
SpeedStackingService: computes and publishes progress-speed modifiers.

Stacking rule: speed bonuses add on their percentages and the multiplier is
1 + (sum_percent / 100). Skip seconds are summed across applied specials.

The host timer API is cumulative, so the service remembers what it last
pushed for each player and only ever sends the difference.
"""

from __future__ import annotations

import logging
import math

from .host import PlayerId, TimeModifier
from .records import BonusRecord

logger = logging.getLogger(__name__)


class SpeedStackingService:
    def __init__(self, time_modifier: TimeModifier) -> None:
        self.time_modifier = time_modifier
        self._last_multiplier: dict[PlayerId, float] = {}
        self._last_skip: dict[PlayerId, int] = {}

    def multiplier(self, record: BonusRecord) -> float:
        return 1.0 + record.total_percent() / 100.0

    def aggregate_skip(self, record: BonusRecord) -> int:
        return record.total_skip_seconds()

    def adjusted_duration(self, base_seconds: int, record: BonusRecord) -> int:
        """Duration of a stage once skips and the multiplier are applied."""
        reduced = max(0, base_seconds - self.aggregate_skip(record))
        return math.ceil(reduced / self.multiplier(record))

    def last_published(self, player_id: PlayerId) -> tuple[float, int]:
        return (
            self._last_multiplier.get(player_id, 1.0),
            self._last_skip.get(player_id, 0),
        )

    def forget(self, player_id: PlayerId) -> None:
        """Drop a player's baseline so the next publish pushes the full bonus."""
        self._last_multiplier.pop(player_id, None)
        self._last_skip.pop(player_id, None)

    def publish(self, player_id: PlayerId, record: BonusRecord, reason: str) -> bool:
        """
        Push the change in a player's aggregate bonus to the host timer.

        Returns:
            True if a push happened, False when nothing changed
        """
        multiplier = self.multiplier(record)
        skip = self.aggregate_skip(record)
        previous_multiplier, previous_skip = self.last_published(player_id)

        multiplier_delta = multiplier / previous_multiplier
        skip_delta = skip - previous_skip
        percent_delta = (multiplier_delta - 1.0) * 100.0

        if multiplier_delta == 1.0 and skip_delta == 0:
            logger.debug("No speed change for %s (%s)", player_id, reason)
            return False

        self.time_modifier(player_id, skip_delta, percent_delta, reason)
        self._last_multiplier[player_id] = multiplier
        self._last_skip[player_id] = skip
        logger.debug(
            "Pushed speed delta for %s: skip %+d, percent %+.2f (%s)",
            player_id,
            skip_delta,
            percent_delta,
            reason,
        )
        return True

    def apply_session_skip(self, player_id: PlayerId, skip_seconds: int, reason: str) -> bool:
        """One-off skip outside the aggregate. Non-positive values are ignored."""
        if skip_seconds <= 0:
            return False
        self.time_modifier(player_id, skip_seconds, 0.0, reason)
        return True
