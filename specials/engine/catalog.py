"""
SpecialCatalog - validated rule definitions plus trigger indices.

A catalog is built once from a config document and never mutated. Reloading
builds a fresh catalog off to the side; the engine then swaps its single
reference, so any evaluation sees either the old catalog or the new one.

Indices:
- death specials by victim entity type (specials with no entity filter sit in
  a wildcard bucket that player-victim deaths do not consult)
- pickup specials by item type
- unlock specials by entry id
- specials by status effect (trigger effect or requirement effect)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from .definitions import (
    ActivityHook,
    EncounterRule,
    RuleDefinition,
    TriggerKind,
    normalize_name,
    parse_trigger_kind,
)

logger = logging.getLogger(__name__)

PLAYER_ENTITY_TYPE = "PLAYER"


@dataclass(frozen=True)
class ValidationWarning:
    """A config entry that was skipped (or loaded with a caveat)."""

    special_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.special_id}: {self.message}"


class NameRegistry:
    """
    Known entity, item and status-effect names supplied by the host.

    A category left as None accepts any name.
    """

    def __init__(
        self,
        entity_types: Iterable[str] | None = None,
        item_types: Iterable[str] | None = None,
        status_effects: Iterable[str] | None = None,
    ) -> None:
        self.entity_types = self._normalize(entity_types)
        self.item_types = self._normalize(item_types)
        self.status_effects = self._normalize(status_effects)

    @staticmethod
    def _normalize(names: Iterable[str] | None) -> frozenset[str] | None:
        if names is None:
            return None
        return frozenset(normalize_name(n) for n in names)

    def knows_entity(self, name: str) -> bool:
        # The player entity type always resolves
        if name == PLAYER_ENTITY_TYPE:
            return True
        return self.entity_types is None or name in self.entity_types

    def knows_item(self, name: str) -> bool:
        return self.item_types is None or name in self.item_types

    def knows_effect(self, name: str) -> bool:
        return self.status_effects is None or name in self.status_effects


def _summarize(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts)


class SpecialCatalog:
    """Immutable set of specials, encounter rules and activity hooks."""

    def __init__(
        self,
        specials: Iterable[RuleDefinition] = (),
        encounters: Iterable[EncounterRule] = (),
        activity_hooks: Iterable[ActivityHook] = (),
    ) -> None:
        by_id: dict[str, RuleDefinition] = {}
        death: dict[str, list[RuleDefinition]] = {}
        death_wildcard: list[RuleDefinition] = []
        pickup: dict[str, list[RuleDefinition]] = {}
        unlock: dict[str, list[RuleDefinition]] = {}
        by_effect: dict[str, list[RuleDefinition]] = {}

        for rule in specials:
            if rule.id in by_id:
                raise ValueError(f"Duplicate special id: {rule.id}")
            by_id[rule.id] = rule

            trigger = rule.trigger
            match trigger.kind:
                case TriggerKind.ENTITY_DEATH:
                    if trigger.entity_type is None:
                        death_wildcard.append(rule)
                    else:
                        death.setdefault(trigger.entity_type, []).append(rule)
                case TriggerKind.ITEM_PICKUP:
                    pickup.setdefault(trigger.item_type, []).append(rule)
                case TriggerKind.UNLOCK_ENTRY:
                    unlock.setdefault(trigger.entry_id, []).append(rule)
                case TriggerKind.STATUS_EFFECT:
                    by_effect.setdefault(trigger.effect, []).append(rule)
                case TriggerKind.COMMAND:
                    # Reachable only through the activate command
                    pass

            effect = rule.requirement_effect
            if effect is not None:
                bucket = by_effect.setdefault(effect, [])
                if rule not in bucket:
                    bucket.append(rule)

        self._by_id = MappingProxyType(by_id)
        self._death = MappingProxyType({k: tuple(v) for k, v in death.items()})
        self._death_wildcard = tuple(death_wildcard)
        self._pickup = MappingProxyType({k: tuple(v) for k, v in pickup.items()})
        self._unlock = MappingProxyType({k: tuple(v) for k, v in unlock.items()})
        self._by_effect = MappingProxyType({k: tuple(v) for k, v in by_effect.items()})
        self._encounters = tuple(encounters)
        self._activity = MappingProxyType({h.id: h for h in activity_hooks})

    # ---------- Lookups ----------

    def lookup(self, special_id: str) -> RuleDefinition | None:
        return self._by_id.get(special_id)

    def __contains__(self, special_id: object) -> bool:
        return special_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(self._by_id.values())

    @property
    def ids(self) -> list[str]:
        return sorted(self._by_id)

    def death_specials(self, entity_type: str, victim_is_player: bool = False) -> tuple[RuleDefinition, ...]:
        """Death specials for a victim; wildcard specials only apply to non-player victims."""
        key = normalize_name(entity_type)
        specific = self._death.get(key, ())
        if victim_is_player or key == PLAYER_ENTITY_TYPE:
            return specific
        return specific + self._death_wildcard

    def pickup_specials(self, item_type: str) -> tuple[RuleDefinition, ...]:
        return self._pickup.get(normalize_name(item_type), ())

    def unlock_specials(self, entry_id: str) -> tuple[RuleDefinition, ...]:
        return self._unlock.get(entry_id, ())

    def effect_specials(self, effect_id: str) -> tuple[RuleDefinition, ...]:
        return self._by_effect.get(normalize_name(effect_id), ())

    def status_effect_triggers(self, effect_id: str) -> tuple[RuleDefinition, ...]:
        return tuple(r for r in self.effect_specials(effect_id) if r.kind is TriggerKind.STATUS_EFFECT)

    @property
    def encounters(self) -> tuple[EncounterRule, ...]:
        return self._encounters

    def activity_hook(self, hook_id: str) -> ActivityHook | None:
        return self._activity.get(hook_id)

    @property
    def activity_hooks(self) -> tuple[ActivityHook, ...]:
        return tuple(self._activity.values())

    # ---------- Loading ----------

    @classmethod
    def load(
        cls,
        document: Mapping[str, Any] | None,
        registry: NameRegistry | None = None,
    ) -> tuple["SpecialCatalog", list[ValidationWarning]]:
        """
        Build a catalog from a parsed config document.

        Bad entries are skipped with a warning; the rest load normally.

        Args:
            document: Mapping with optional "specials", "encounters" and "activity" sections
            registry: Known names to resolve entity/item/effect names against

        Returns:
            (catalog, warnings)
        """
        registry = registry or NameRegistry()
        document = document or {}
        warnings: list[ValidationWarning] = []

        specials_section = document.get("specials")
        if specials_section is None:
            warnings.append(
                ValidationWarning("*", "No specials defined (specials section is missing)")
            )
            specials_section = {}
        elif not isinstance(specials_section, Mapping):
            warnings.append(ValidationWarning("*", "specials section must be a mapping"))
            specials_section = {}

        specials: list[RuleDefinition] = []
        for special_id, entry in specials_section.items():
            rule = _parse_special(str(special_id), entry, registry, warnings)
            if rule is not None:
                specials.append(rule)

        encounters = _parse_section(
            document.get("encounters"), EncounterRule, "encounters", warnings
        )
        for rule in list(encounters):
            if not registry.knows_entity(rule.victim):
                warnings.append(
                    ValidationWarning(rule.id, f"has invalid victim entity type: {rule.victim}")
                )
                encounters.remove(rule)

        hooks = _parse_section(document.get("activity"), ActivityHook, "activity", warnings)

        for warning in warnings:
            logger.warning("Skipping config entry %s", warning)

        catalog = cls(specials, encounters, hooks)
        logger.info(
            "Loaded %d specials, %d encounter rules, %d activity hooks from config",
            len(catalog),
            len(catalog.encounters),
            len(catalog.activity_hooks),
        )
        return catalog, warnings


def _parse_special(
    special_id: str,
    entry: Any,
    registry: NameRegistry,
    warnings: list[ValidationWarning],
) -> RuleDefinition | None:
    if not isinstance(entry, Mapping):
        warnings.append(ValidationWarning(special_id, "entry must be a mapping"))
        return None

    trigger = entry.get("trigger")
    if not isinstance(trigger, Mapping):
        warnings.append(ValidationWarning(special_id, "is missing trigger section"))
        return None

    kind = parse_trigger_kind(trigger.get("type"))
    if kind is None:
        warnings.append(
            ValidationWarning(special_id, f"has invalid trigger type: {trigger.get('type')}")
        )
        return None

    data = dict(entry)
    data["id"] = special_id
    data["trigger"] = {**trigger, "type": kind.value}

    try:
        rule = RuleDefinition.model_validate(data)
    except ValidationError as exc:
        warnings.append(ValidationWarning(special_id, f"is invalid: {_summarize(exc)}"))
        return None

    if rule.section is None or not rule.section.has_target:
        warnings.append(
            ValidationWarning(
                special_id,
                "has no section target (set applies-to-all-sections or allowed-sections)",
            )
        )
        return None

    problem = _unresolved_trigger_name(rule, registry)
    if problem is not None:
        warnings.append(ValidationWarning(special_id, problem))
        return None

    effect = rule.requirement_effect
    if effect is not None and not registry.knows_effect(effect):
        warnings.append(
            ValidationWarning(special_id, f"has unknown potion-requirement effect: {effect}")
        )
        return None

    return rule


def _unresolved_trigger_name(rule: RuleDefinition, registry: NameRegistry) -> str | None:
    trigger = rule.trigger
    match rule.kind:
        case TriggerKind.ENTITY_DEATH:
            if trigger.entity_type is not None and not registry.knows_entity(trigger.entity_type):
                return f"has invalid entity-type: {trigger.entity_type}"
        case TriggerKind.ITEM_PICKUP:
            if not registry.knows_item(trigger.item_type):
                return f"has invalid item-type: {trigger.item_type}"
        case TriggerKind.STATUS_EFFECT:
            if not registry.knows_effect(trigger.effect):
                return f"has unknown status effect: {trigger.effect}"
    return None


def _parse_section(section: Any, model: type, name: str, warnings: list[ValidationWarning]) -> list:
    if section is None:
        return []
    if not isinstance(section, Mapping):
        warnings.append(ValidationWarning("*", f"{name} section must be a mapping"))
        return []

    parsed = []
    for entry_id, entry in section.items():
        if not isinstance(entry, Mapping):
            warnings.append(ValidationWarning(str(entry_id), "entry must be a mapping"))
            continue
        try:
            parsed.append(model.model_validate({**entry, "id": str(entry_id)}))
        except ValidationError as exc:
            warnings.append(ValidationWarning(str(entry_id), f"is invalid: {_summarize(exc)}"))
    return parsed
