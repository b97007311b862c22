"""
Host collaborator boundary.

The specials engine never talks to the progression host directly. Everything
it needs (stage lookups, the external timer, messaging, permissions) goes
through the ProgressionHost protocol, which the embedding application
implements and injects at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, runtime_checkable
from uuid import UUID

# Simple type aliases for clarity
PlayerId = UUID
SpecialId = str
StageId = str

# (player_id, skip_seconds, percent_speed_increase, reason)
TimeModifier = Callable[[PlayerId, int, float, str], None]


@dataclass(frozen=True)
class StageSnapshot:
    """
    A player's current progression stage at evaluation time.

    index is None when the host cannot place the stage in its sequence.
    """

    stage_id: StageId
    stage_type: str | None = None
    index: int | None = None


@dataclass(frozen=True)
class ActiveEffect:
    """A status effect currently held by a player."""

    effect_id: str
    intensity: int = 0


@runtime_checkable
class ProgressionHost(Protocol):
    """
    Interface the host progression system exposes to the specials engine.

    All calls are local and synchronous; the engine does not retry them.
    """

    def apply_external_time_skip(
        self,
        player_id: PlayerId,
        skip_seconds: int,
        percent_delta: float,
        reason: str,
    ) -> None:
        """Adjust the player's stage timer. Adjustments are cumulative."""
        ...

    def apply_default_time_skip(self, player_id: PlayerId, reason: str) -> None:
        """Run the host's own generic skip for the player's current stage."""
        ...

    def get_current_stage(self, player_id: PlayerId) -> StageSnapshot | None:
        ...

    def get_stage_index(self, stage_id: StageId) -> int:
        """Ordinal of a stage, or a negative value when unknown."""
        ...

    def complete_current_stage(self, player_id: PlayerId) -> None:
        ...

    def get_active_status_effect(
        self, player_id: PlayerId, effect_id: str
    ) -> ActiveEffect | None:
        ...

    def get_player_name(self, player_id: PlayerId) -> str:
        ...

    def send_message(self, player_id: PlayerId, text: str) -> None:
        ...

    def broadcast(self, text: str) -> None:
        ...

    def has_permission(self, player_id: PlayerId, node: str) -> bool:
        ...


def resolve_stage(host: ProgressionHost, player_id: PlayerId) -> StageSnapshot | None:
    """
    Build a complete StageSnapshot for a player.

    Hosts may report a stage without its index; the index is then looked up
    separately and negative (unknown) indices become None.
    """
    snapshot = host.get_current_stage(player_id)
    if snapshot is None or snapshot.index is not None:
        return snapshot

    index = host.get_stage_index(snapshot.stage_id)
    return StageSnapshot(
        stage_id=snapshot.stage_id,
        stage_type=snapshot.stage_type,
        index=index if index >= 0 else None,
    )


def render_template(template: str, player_name: str, special_id: str, **extra: Any) -> str:
    """Substitute {player} and {special} (plus any extra keys) in a message template."""
    text = template.replace("{player}", player_name).replace("{special}", special_id)
    for key, value in extra.items():
        text = text.replace("{" + key + "}", str(value))
    return text
