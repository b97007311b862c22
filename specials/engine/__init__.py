"""
Specials rule engine.

Catalog (config), eligibility, per-player records, speed stacking,
the trigger state machine, persistence and lifecycle wiring.
"""

from .activity import SectionActivityTracker
from .catalog import NameRegistry, SpecialCatalog, ValidationWarning
from .definitions import (
    ActivityHook,
    EncounterRule,
    RuleDefinition,
    SectionCondition,
    TriggerKind,
    normalize_name,
)
from .eligibility import EligibilityResult, evaluate, requirement_met
from .engine import SpecialsEngine
from .events import SpecialEventBus, SpecialTriggered
from .host import ActiveEffect, PlayerId, ProgressionHost, StageSnapshot
from .persistence import SpecialsStore, record_from_dict, record_to_dict
from .records import BonusRecord, ServerLocks, SpeedBonus
from .speed import SpeedStackingService
from .triggers import CommandOutcome, TriggerConfig, TriggerEngine, TriggerOutcome

__all__ = [
    "ActiveEffect",
    "ActivityHook",
    "BonusRecord",
    "CommandOutcome",
    "EligibilityResult",
    "EncounterRule",
    "NameRegistry",
    "PlayerId",
    "ProgressionHost",
    "RuleDefinition",
    "SectionActivityTracker",
    "SectionCondition",
    "ServerLocks",
    "SpecialCatalog",
    "SpecialEventBus",
    "SpecialTriggered",
    "SpecialsEngine",
    "SpecialsStore",
    "SpeedBonus",
    "SpeedStackingService",
    "StageSnapshot",
    "TriggerConfig",
    "TriggerEngine",
    "TriggerKind",
    "TriggerOutcome",
    "ValidationWarning",
    "evaluate",
    "normalize_name",
    "record_from_dict",
    "record_to_dict",
    "requirement_met",
]
