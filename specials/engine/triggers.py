"""
TriggerEngine - decides when a special fires, defers, or is ignored.

Per (player, special) the state moves Unseen -> Pending -> Applied:
- Pending: the trigger was seen but the stage (or status-effect requirement)
  did not match, so the special is recorded as completed and waits.
- Applied: the reward was granted. Terminal until an admin removes it.

Once-per-server specials are additionally gated by ServerLocks.

Pending specials are re-checked by sweep() whenever the player's context
may have changed (join, stage change, status-effect change, command use).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any

from .catalog import SpecialCatalog
from .definitions import EncounterRule, RuleDefinition, TriggerKind, normalize_name
from .eligibility import EligibilityResult, evaluate, requirement_met
from .events import SpecialEventBus, SpecialTriggered
from .host import PlayerId, ProgressionHost, render_template, resolve_stage
from .records import BonusRecord, ServerLocks
from .speed import SpeedStackingService

logger = logging.getLogger(__name__)


class TriggerOutcome(Enum):
    """What a single trigger evaluation did."""

    SERVER_LOCKED = "server_locked"
    ALREADY_APPLIED = "already_applied"
    DEFERRED_STAGE = "deferred_stage"
    DEFERRED_REQUIREMENT = "deferred_requirement"
    REPEAT_GUARDED = "repeat_guarded"
    APPLIED = "applied"

    @property
    def deferred(self) -> bool:
        return self in (TriggerOutcome.DEFERRED_STAGE, TriggerOutcome.DEFERRED_REQUIREMENT)


@dataclass
class TriggerConfig:
    """Tunable trigger policy."""

    # When a stage-matched special fails its status-effect requirement, still
    # consume its once-per-server lock.
    server_lock_on_requirement_miss: bool = True
    reason_prefix: str = "Special"


@dataclass(frozen=True)
class CommandOutcome:
    """Result of a command-initiated activation or removal."""

    success: bool
    message: str


class TriggerEngine:
    """
    Orchestrates triggers, deferral, reward application and the pending sweep.

    Uses:
    - SpecialCatalog: rule lookups and trigger indices (swapped on reload)
    - BonusRecord per player: completion/application state
    - ServerLocks: once-per-server consumption
    - SpeedStackingService: aggregate speed publication
    - SpecialEventBus: "special triggered" notifications
    """

    def __init__(
        self,
        host: ProgressionHost,
        catalog: SpecialCatalog,
        records: dict[PlayerId, BonusRecord] | None = None,
        locks: ServerLocks | None = None,
        speed: SpeedStackingService | None = None,
        events: SpecialEventBus | None = None,
        config: TriggerConfig | None = None,
    ) -> None:
        self.host = host
        self._catalog = catalog
        self.records: dict[PlayerId, BonusRecord] = records if records is not None else {}
        self.locks = locks if locks is not None else ServerLocks()
        self.speed = speed or SpeedStackingService(host.apply_external_time_skip)
        self.events = events or SpecialEventBus()
        self.config = config or TriggerConfig()

    # ---------- Catalog ----------

    @property
    def catalog(self) -> SpecialCatalog:
        return self._catalog

    def swap_catalog(self, catalog: SpecialCatalog) -> SpecialCatalog:
        """Publish a new catalog in one step and return the previous one."""
        previous, self._catalog = self._catalog, catalog
        return previous

    # ---------- Records ----------

    def record_for(self, player_id: PlayerId) -> BonusRecord:
        record = self.records.get(player_id)
        if record is None:
            record = self.records[player_id] = BonusRecord()
        return record

    def _reason(self, special_id: str) -> str:
        return f"{self.config.reason_prefix}: {special_id}"

    # ---------- State machine ----------

    def trigger(
        self,
        rule: RuleDefinition,
        player_id: PlayerId,
        context: Any = None,
    ) -> TriggerOutcome:
        """Run one trigger event for a special and player."""
        special_id = rule.id

        if rule.scope.once_per_server and self.locks.is_locked(special_id):
            return TriggerOutcome.SERVER_LOCKED

        record = self.record_for(player_id)
        if record.is_applied(special_id):
            return TriggerOutcome.ALREADY_APPLIED

        return self._evaluate(rule, player_id, record, context)

    def _evaluate(
        self,
        rule: RuleDefinition,
        player_id: PlayerId,
        record: BonusRecord,
        context: Any,
    ) -> TriggerOutcome:
        special_id = rule.id
        server_scoped = rule.scope.once_per_server

        eligibility = evaluate(rule.section, resolve_stage(self.host, player_id))
        if not eligibility:
            self._defer(rule, player_id, record, eligibility.reason, lock=server_scoped)
            return TriggerOutcome.DEFERRED_STAGE

        # Unreachable from trigger(), which already stops on applied specials
        if (
            rule.scope.once_per_player
            and record.is_completed(special_id)
            and record.is_applied(special_id)
        ):
            return TriggerOutcome.REPEAT_GUARDED

        lookup = partial(self.host.get_active_status_effect, player_id)
        if not requirement_met(rule.potion_requirement, lookup):
            self._defer(
                rule,
                player_id,
                record,
                "status-effect requirement not met",
                lock=server_scoped and self.config.server_lock_on_requirement_miss,
            )
            return TriggerOutcome.DEFERRED_REQUIREMENT

        if server_scoped and not self._claim_lock(special_id, player_id):
            return TriggerOutcome.SERVER_LOCKED
        self.apply_reward(rule, player_id, context)
        return TriggerOutcome.APPLIED

    def _claim_lock(self, special_id: str, player_id: PlayerId) -> bool:
        """Take a once-per-server lock, or confirm this player already holds it."""
        if self.locks.acquire(special_id, player_id):
            return True
        return self.locks.claimable_by(special_id, player_id)

    def _defer(
        self,
        rule: RuleDefinition,
        player_id: PlayerId,
        record: BonusRecord,
        reason: str,
        lock: bool,
    ) -> None:
        record.mark_completed(rule.id)
        if lock:
            self.locks.acquire(rule.id, player_id)
        logger.debug("Deferred special %s for %s: %s", rule.id, player_id, reason)

    def apply_reward(
        self,
        rule: RuleDefinition,
        player_id: PlayerId,
        context: Any = None,
    ) -> None:
        """
        Grant a special's reward, mark it applied and notify subscribers.

        Scope and eligibility checks are the caller's responsibility.
        """
        special_id = rule.id
        record = self.record_for(player_id)
        record.mark_completed(special_id)
        record.mark_applied(special_id)

        reward = rule.reward
        reason = self._reason(special_id)

        if reward.default_time_skip:
            self.host.apply_default_time_skip(player_id, reason)
        elif reward.has_speed_bonus:
            record.add_or_update_bonus(
                special_id, reward.speed_bonus_percent, reward.speed_bonus_skip_seconds
            )

        self.speed.publish(player_id, record, reason)
        self.speed.apply_session_skip(player_id, reward.session_time_skip_seconds, reason)

        if reward.auto_complete_section:
            self.host.complete_current_stage(player_id)

        self._send_messages(rule.messages.player, rule.messages.broadcast, player_id, special_id)

        logger.info("Applied special %s to %s", special_id, player_id)
        self.events.publish(SpecialTriggered(rule, player_id, context))

    def _send_messages(
        self,
        player_template: str,
        broadcast_template: str,
        player_id: PlayerId,
        special_id: str,
        **extra: Any,
    ) -> None:
        if not player_template and not broadcast_template:
            return
        name = self.host.get_player_name(player_id)
        if player_template:
            self.host.send_message(
                player_id, render_template(player_template, name, special_id, **extra)
            )
        if broadcast_template:
            self.host.broadcast(render_template(broadcast_template, name, special_id, **extra))

    # ---------- Pending sweep ----------

    def sweep(self, player_id: PlayerId, changed_effect: str | None = None) -> list[str]:
        """
        Re-evaluate a player's pending specials against their current context.

        Args:
            player_id: Player whose pending specials to re-check
            changed_effect: When given, skip specials that require a different effect

        Returns:
            Ids of specials applied by this sweep
        """
        return self._sweep(self.catalog, player_id, changed_effect)

    def _sweep(
        self,
        catalog: SpecialCatalog,
        player_id: PlayerId,
        changed_effect: str | None,
    ) -> list[str]:
        record = self.records.get(player_id)
        if record is None:
            return []

        effect_filter = normalize_name(changed_effect) if changed_effect else None
        applied: list[str] = []
        for special_id in record.pending():
            rule = catalog.lookup(special_id)
            if rule is None:
                continue
            required = rule.requirement_effect
            if effect_filter is not None and required is not None and required != effect_filter:
                continue
            if self._evaluate(rule, player_id, record, None) is TriggerOutcome.APPLIED:
                applied.append(special_id)

        if applied:
            logger.debug("Sweep applied %s for %s", applied, player_id)
        return applied

    # ---------- Domain event entry points ----------

    def on_entity_death(
        self,
        victim_type: str,
        killer_id: PlayerId | None,
        *,
        victim_id: PlayerId | None = None,
        victim_is_player: bool = False,
        killer_is_player: bool = True,
        context: Any = None,
    ) -> list[TriggerOutcome]:
        """
        A victim died. The killer (if any) is credited with death specials and
        distinct-encounter rewards.
        """
        if killer_id is None:
            return []

        catalog = self.catalog
        self._sweep(catalog, killer_id, None)

        outcomes = []
        for rule in catalog.death_specials(victim_type, victim_is_player):
            if rule.trigger.killer_must_be_player and not killer_is_player:
                continue
            outcomes.append(self.trigger(rule, killer_id, context))

        for encounter in catalog.encounters:
            self._record_encounter(
                encounter,
                killer_id,
                victim_type,
                victim_id,
                victim_is_player,
                killer_is_player,
            )
        return outcomes

    def on_item_pickup(
        self,
        player_id: PlayerId,
        item_type: str,
        context: Any = None,
    ) -> list[TriggerOutcome]:
        catalog = self.catalog
        rules = catalog.pickup_specials(item_type)
        if not rules:
            return []
        self._sweep(catalog, player_id, None)
        return [self.trigger(rule, player_id, context) for rule in rules]

    def on_unlock_entry(
        self,
        player_id: PlayerId,
        entry_id: str,
        context: Any = None,
    ) -> list[TriggerOutcome]:
        catalog = self.catalog
        rules = catalog.unlock_specials(entry_id)
        if not rules:
            return []
        self._sweep(catalog, player_id, None)
        return [self.trigger(rule, player_id, context) for rule in rules]

    def on_status_effect_changed(
        self,
        player_id: PlayerId,
        effect_id: str,
        context: Any = None,
    ) -> list[TriggerOutcome]:
        """A tracked status effect was gained, lost or changed strength."""
        catalog = self.catalog
        self._sweep(catalog, player_id, effect_id)

        outcomes = []
        for rule in catalog.status_effect_triggers(effect_id):
            trigger = rule.trigger
            active = self.host.get_active_status_effect(player_id, trigger.effect)
            if active is None or active.intensity < trigger.min_amplifier:
                continue
            outcomes.append(self.trigger(rule, player_id, context))
        return outcomes

    def on_session_start(self, player_id: PlayerId) -> list[str]:
        """Player joined: apply anything that became eligible and restore their timer bonus."""
        applied = self.sweep(player_id)
        record = self.records.get(player_id)
        if record is not None:
            self.speed.publish(player_id, record, f"{self.config.reason_prefix}: session start")
        return applied

    def on_stage_changed(self, player_id: PlayerId) -> list[str]:
        return self.sweep(player_id)

    # ---------- Distinct encounters ----------

    def _record_encounter(
        self,
        encounter: EncounterRule,
        killer_id: PlayerId,
        victim_type: str,
        victim_id: PlayerId | None,
        victim_is_player: bool,
        killer_is_player: bool,
    ) -> bool:
        if encounter.targets_players:
            if not victim_is_player:
                return False
        elif victim_is_player or normalize_name(victim_type) != encounter.victim:
            return False

        if encounter.killer_must_be_player and not killer_is_player:
            return False
        if victim_id is None or victim_id == killer_id:
            return False

        record = self.record_for(killer_id)
        key = encounter.tracking_key
        if not record.record_unique_encounter(key, victim_id):
            return False

        count = record.encounter_count(key)
        if count > encounter.max_count:
            return False

        reason = self._reason(encounter.id)
        self.speed.apply_session_skip(killer_id, encounter.session_time_skip_seconds, reason)
        self._send_messages(
            encounter.messages.player,
            encounter.messages.broadcast,
            killer_id,
            encounter.id,
            count=count,
        )
        logger.info(
            "Encounter %s: %s reached %d/%d", encounter.id, killer_id, count, encounter.max_count
        )
        return True

    # ---------- Command entry points ----------

    def activate(self, player_id: PlayerId, special_id: str) -> CommandOutcome:
        """
        Activate a command-activatable special for a player.

        Applies the same scope, stage and requirement checks as a trigger but
        never records a pending completion when they fail.
        """
        catalog = self.catalog
        self._sweep(catalog, player_id, None)

        rule = catalog.lookup(special_id)
        if rule is None:
            return CommandOutcome(False, f"Unknown special '{special_id}'.")
        if not rule.command_activatable and rule.kind is not TriggerKind.COMMAND:
            return CommandOutcome(False, f"Special '{special_id}' cannot be activated by command.")
        if rule.scope.once_per_server and self.locks.is_locked(special_id):
            return CommandOutcome(False, f"Special '{special_id}' has already been claimed on this server.")

        record = self.record_for(player_id)
        if record.is_applied(special_id):
            return CommandOutcome(False, f"Special '{special_id}' is already active.")

        eligibility: EligibilityResult = evaluate(rule.section, resolve_stage(self.host, player_id))
        if not eligibility:
            return CommandOutcome(
                False, f"Special '{special_id}' cannot apply here: {eligibility.reason}."
            )

        lookup = partial(self.host.get_active_status_effect, player_id)
        if not requirement_met(rule.potion_requirement, lookup):
            requirement = rule.potion_requirement
            return CommandOutcome(
                False,
                f"Special '{special_id}' requires {requirement.effect} "
                f"(level {requirement.min_amplifier} or higher).",
            )

        if rule.scope.once_per_server:
            self.locks.acquire(special_id, player_id)
        self.apply_reward(rule, player_id)
        return CommandOutcome(True, f"Special '{special_id}' activated.")

    def remove(self, player_id: PlayerId, special_id: str) -> CommandOutcome:
        """
        Remove a special's reward from a player and republish their bonus.

        Once-per-player specials also lose their completion marker so the
        sweep cannot quietly grant them again. Server locks are left as is.
        """
        rule = self.catalog.lookup(special_id)
        record = self.records.get(player_id)

        # Specials dropped from config lose everything
        also_clear_completion = rule.scope.once_per_player if rule is not None else True
        changed = record is not None and record.remove_special(special_id, also_clear_completion)
        if not changed:
            if rule is None:
                return CommandOutcome(False, f"Unknown special '{special_id}'.")
            return CommandOutcome(False, f"Special '{special_id}' is not active.")

        self.speed.publish(player_id, record, f"{self.config.reason_prefix} removed: {special_id}")
        logger.info("Removed special %s from %s", special_id, player_id)
        return CommandOutcome(True, f"Special '{special_id}' removed.")
