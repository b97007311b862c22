"""
Per-player and server-wide specials state.

BonusRecord tracks, for one player:
- which specials are completed (trigger seen, possibly still pending)
- which specials are applied (reward granted)
- the speed bonus each special contributed
- distinct victims seen per tracking key

Aggregates only count bonuses whose special is also applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping
from uuid import UUID


@dataclass(frozen=True)
class SpeedBonus:
    percent: float = 0.0
    skip_seconds: int = 0


@dataclass
class BonusRecord:
    completed: set[str] = field(default_factory=set)
    applied: set[str] = field(default_factory=set)
    bonuses: dict[str, SpeedBonus] = field(default_factory=dict)
    unique_encounters: dict[str, set[UUID]] = field(default_factory=dict)

    # ---------- Completion / application ----------

    def mark_completed(self, special_id: str) -> None:
        self.completed.add(special_id)

    def mark_applied(self, special_id: str) -> None:
        self.applied.add(special_id)

    def is_completed(self, special_id: str) -> bool:
        return special_id in self.completed

    def is_applied(self, special_id: str) -> bool:
        return special_id in self.applied

    def pending(self) -> list[str]:
        """Completed specials whose reward has not been granted yet, in stable order."""
        return sorted(self.completed - self.applied)

    # ---------- Bonuses ----------

    def add_or_update_bonus(self, special_id: str, percent: float, skip_seconds: int) -> None:
        """Store a special's bonus, replacing any earlier entry for the same id."""
        self.bonuses[special_id] = SpeedBonus(float(percent), int(skip_seconds))

    def applied_bonuses(self) -> Iterator[SpeedBonus]:
        for special_id, bonus in self.bonuses.items():
            if special_id in self.applied:
                yield bonus

    def total_percent(self) -> float:
        return sum(b.percent for b in self.applied_bonuses())

    def total_skip_seconds(self) -> int:
        return sum(b.skip_seconds for b in self.applied_bonuses())

    # ---------- Distinct encounters ----------

    def record_unique_encounter(self, key: str, victim_id: UUID) -> bool:
        """Remember a victim under a key. True only the first time it is seen."""
        seen = self.unique_encounters.setdefault(key, set())
        if victim_id in seen:
            return False
        seen.add(victim_id)
        return True

    def encounter_count(self, key: str) -> int:
        return len(self.unique_encounters.get(key, ()))

    # ---------- Removal ----------

    def remove_special(self, special_id: str, also_clear_completion: bool) -> bool:
        """
        Drop a special's applied marker and bonus, and optionally its completion.

        Returns:
            True if anything changed
        """
        changed = False
        if special_id in self.applied:
            self.applied.discard(special_id)
            changed = True
        if self.bonuses.pop(special_id, None) is not None:
            changed = True
        if also_clear_completion and special_id in self.completed:
            self.completed.discard(special_id)
            changed = True
        return changed

    def is_empty(self) -> bool:
        return not (self.completed or self.applied or self.bonuses or self.unique_encounters)


class ServerLocks:
    """
    Specials consumed under a once-per-server scope.

    The set only grows during normal play. The player that took each lock is
    remembered when known so a deferred claimant can still collect its reward.
    """

    def __init__(
        self,
        special_ids: Iterable[str] = (),
        holders: Mapping[str, UUID] | None = None,
    ) -> None:
        self._locked: set[str] = set(special_ids)
        self._holders: dict[str, UUID] = dict(holders or {})
        self._locked.update(self._holders)

    def is_locked(self, special_id: str) -> bool:
        return special_id in self._locked

    def acquire(self, special_id: str, holder: UUID | None = None) -> bool:
        """Lock a special. Returns False if it was already locked."""
        if special_id in self._locked:
            return False
        self._locked.add(special_id)
        if holder is not None:
            self._holders[special_id] = holder
        return True

    def holder(self, special_id: str) -> UUID | None:
        return self._holders.get(special_id)

    def claimable_by(self, special_id: str, player_id: UUID) -> bool:
        """
        True if the special is unlocked, or locked by this player.

        Locks loaded without a holder count as claimable by anyone who is
        already pending on them.
        """
        if special_id not in self._locked:
            return True
        holder = self._holders.get(special_id)
        return holder is None or holder == player_id

    def holders(self) -> dict[str, UUID]:
        return dict(sorted(self._holders.items()))

    def __contains__(self, special_id: object) -> bool:
        return special_id in self._locked

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._locked))

    def __len__(self) -> int:
        return len(self._locked)
