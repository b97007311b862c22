"""
Rule definitions for specials, distinct-encounter rules and activity hooks.

Definitions are parsed from the YAML config with pydantic and frozen after
construction. A RuleDefinition's trigger is a tagged union keyed on `type`,
so each trigger kind only carries the fields that matter to it.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _hyphenate(name: str) -> str:
    return name.replace("_", "-")


def normalize_name(name: str) -> str:
    """
    Canonical form for entity, item and status-effect names.

    "minecraft:glowing_obsidian", "Glowing Obsidian" and "glowing-obsidian"
    all become "GLOWING_OBSIDIAN".
    """
    key = name.strip()
    if ":" in key:
        namespace, _, rest = key.partition(":")
        if namespace.lower() == "minecraft":
            key = rest
    return key.upper().replace("-", "_").replace(" ", "_")


class ConfigModel(BaseModel):
    """Base for config-backed models: hyphenated keys, immutable instances."""

    model_config = ConfigDict(
        alias_generator=_hyphenate,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class TriggerKind(str, Enum):
    """What kind of domain event fires a special."""

    ENTITY_DEATH = "entity-death"
    ITEM_PICKUP = "item-pickup"
    UNLOCK_ENTRY = "unlock-entry"
    STATUS_EFFECT = "status-effect"
    COMMAND = "command"


# Older configs spell the pickup trigger after the event it listens to
TRIGGER_KIND_ALIASES: dict[str, TriggerKind] = {
    "entity-pickup": TriggerKind.ITEM_PICKUP,
}


def parse_trigger_kind(raw: object) -> TriggerKind | None:
    """Map a config trigger type ("ENTITY_DEATH", "entity-death", ...) to a kind."""
    if not isinstance(raw, str):
        return None
    key = raw.strip().lower().replace("_", "-")
    if key in TRIGGER_KIND_ALIASES:
        return TRIGGER_KIND_ALIASES[key]
    try:
        return TriggerKind(key)
    except ValueError:
        return None


# =============================================================================
# Triggers
# =============================================================================


class _TriggerBase(ConfigModel):
    command_activatable: bool = False

    @property
    def kind(self) -> TriggerKind:
        return TriggerKind(self.type)  # type: ignore[attr-defined]


class EntityDeathTrigger(_TriggerBase):
    type: Literal["entity-death"] = "entity-death"
    entity_type: str | None = None  # None = any non-player victim
    killer_must_be_player: bool = True

    @field_validator("entity_type")
    @classmethod
    def _normalize_entity(cls, value: str | None) -> str | None:
        return normalize_name(value) if value else None


class ItemPickupTrigger(_TriggerBase):
    type: Literal["item-pickup"] = "item-pickup"
    item_type: str

    @field_validator("item_type")
    @classmethod
    def _normalize_item(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("item-type must not be empty")
        return normalize_name(value)


class UnlockEntryTrigger(_TriggerBase):
    type: Literal["unlock-entry"] = "unlock-entry"
    entry_id: str

    @field_validator("entry_id")
    @classmethod
    def _require_entry(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("entry-id must not be empty")
        return value.strip()


class StatusEffectTrigger(_TriggerBase):
    type: Literal["status-effect"] = "status-effect"
    effect: str
    min_amplifier: int = 0

    @field_validator("effect")
    @classmethod
    def _normalize_effect(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("effect must not be empty")
        return normalize_name(value)


class CommandTrigger(_TriggerBase):
    type: Literal["command"] = "command"
    command_activatable: bool = True


TriggerDefinition = Annotated[
    Union[
        EntityDeathTrigger,
        ItemPickupTrigger,
        UnlockEntryTrigger,
        StatusEffectTrigger,
        CommandTrigger,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# Conditions, rewards, scope
# =============================================================================


class SectionCondition(ConfigModel):
    """Which progression stages a special may be applied in."""

    require_type: str | None = None
    min_index: int | None = None
    max_index: int | None = None
    applies_to_all_sections: bool = False
    allowed_sections: tuple[str, ...] = ()

    @property
    def has_target(self) -> bool:
        return self.applies_to_all_sections or bool(self.allowed_sections)


class RewardDefinition(ConfigModel):
    speed_bonus_percent: float = Field(default=0.0, ge=0.0)
    speed_bonus_skip_seconds: int = 0
    session_time_skip_seconds: int = 0
    auto_complete_section: bool = False
    default_time_skip: bool = False

    @property
    def has_speed_bonus(self) -> bool:
        return self.speed_bonus_percent != 0 or self.speed_bonus_skip_seconds != 0


class ScopeDefinition(ConfigModel):
    once_per_player: bool = True
    once_per_server: bool = False


class MessagesDefinition(ConfigModel):
    player: str = ""
    broadcast: str = ""


class EffectRequirement(ConfigModel):
    """Player must hold `effect` at `min_amplifier` or stronger."""

    effect: str
    min_amplifier: int = 0

    @field_validator("effect")
    @classmethod
    def _normalize_effect(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("effect must not be empty")
        return normalize_name(value)


class RuleDefinition(ConfigModel):
    """Immutable description of a single special, as loaded from config."""

    id: str
    trigger: TriggerDefinition
    section: SectionCondition | None = None
    reward: RewardDefinition = Field(default_factory=RewardDefinition)
    scope: ScopeDefinition = Field(default_factory=ScopeDefinition)
    messages: MessagesDefinition = Field(default_factory=MessagesDefinition)
    potion_requirement: EffectRequirement | None = None

    @property
    def kind(self) -> TriggerKind:
        return self.trigger.kind

    @property
    def requirement_effect(self) -> str | None:
        return self.potion_requirement.effect if self.potion_requirement else None

    @property
    def command_activatable(self) -> bool:
        return self.trigger.command_activatable


# =============================================================================
# Distinct-encounter rules and activity hooks
# =============================================================================


class EncounterRule(ConfigModel):
    """
    Grants a session skip for each distinct victim, up to max_count.

    victim is either "PLAYER" or an entity type name.
    """

    id: str
    victim: str = "PLAYER"
    key: str | None = None
    max_count: int = Field(default=1, ge=0)
    session_time_skip_seconds: int = 0
    killer_must_be_player: bool = True
    messages: MessagesDefinition = Field(default_factory=MessagesDefinition)

    @field_validator("victim")
    @classmethod
    def _normalize_victim(cls, value: str) -> str:
        return normalize_name(value)

    @property
    def tracking_key(self) -> str:
        return self.key or self.id

    @property
    def targets_players(self) -> bool:
        return self.victim == "PLAYER"


class ActivityHook(ConfigModel):
    """A section that progresses faster through host-classified activity."""

    id: str
    section: str
    skip_seconds: int = 1
    speed_percent: float = 5.0
    cooldown_seconds: float = 1.0
    distinct_location: bool = False
    reason: str = ""
