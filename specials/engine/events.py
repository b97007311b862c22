"""
SpecialEventBus - "special triggered" notifications for other systems.

Handlers run synchronously, in registration order, after a reward has been
fully applied. A failing handler is logged and skipped; it never stops the
remaining handlers or undoes the reward.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from .definitions import RuleDefinition
from .host import PlayerId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpecialTriggered:
    """Fired whenever a special is successfully applied to a player."""

    special: RuleDefinition
    player_id: PlayerId
    context: Any = None  # entity that died, item picked up, ... (may be None)

    @property
    def special_id(self) -> str:
        return self.special.id


SpecialHandler = Callable[[SpecialTriggered], None]


class SpecialEventBus:
    """
    Routes SpecialTriggered notifications to subscribers.

    Usage:
        bus = SpecialEventBus()
        bus.subscribe(on_any_special)
        bus.subscribe(on_emerald_boost, special_id="emerald_boost")
        bus.publish(SpecialTriggered(rule, player_id))
    """

    def __init__(self) -> None:
        self._global: list[SpecialHandler] = []
        self._by_special: dict[str, list[SpecialHandler]] = {}

    def subscribe(self, handler: SpecialHandler, special_id: str | None = None) -> None:
        """Register a handler for one special, or for all of them when special_id is None."""
        if special_id is None:
            self._global.append(handler)
        else:
            self._by_special.setdefault(special_id, []).append(handler)

    def unsubscribe(self, handler: SpecialHandler, special_id: str | None = None) -> bool:
        handlers = self._global if special_id is None else self._by_special.get(special_id, [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def publish(self, event: SpecialTriggered) -> int:
        """
        Deliver an event to every matching handler.

        Returns:
            Number of handlers that completed without raising
        """
        handlers = list(self._global) + list(self._by_special.get(event.special_id, ()))
        delivered = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Error in special handler %r for %s", handler, event.special_id
                )
                continue
            delivered += 1
        return delivered
