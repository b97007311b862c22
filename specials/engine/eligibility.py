"""
Stage eligibility and status-effect requirement checks.

Both checks are pure: the caller supplies the stage snapshot and a way to
look up the player's active effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .definitions import EffectRequirement, SectionCondition
from .host import ActiveEffect, StageSnapshot


@dataclass(frozen=True)
class EligibilityResult:
    """Result of evaluating a section condition, with a reason for diagnostics."""

    allowed: bool
    reason: str

    @classmethod
    def allow(cls, reason: str) -> "EligibilityResult":
        return cls(True, reason)

    @classmethod
    def deny(cls, reason: str) -> "EligibilityResult":
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.allowed


def evaluate(
    condition: SectionCondition | None,
    snapshot: StageSnapshot | None,
) -> EligibilityResult:
    """
    Decide whether a special may apply in the player's current stage.

    Order matters: a misconfigured condition is denied before the
    applies-to-all flag is consulted, and the whitelist is checked before
    type and index bounds.
    """
    if condition is None:
        return EligibilityResult.allow("No section condition provided")

    if not condition.has_target:
        return EligibilityResult.deny("Misconfigured: no allowed sections configured")

    if condition.applies_to_all_sections:
        return EligibilityResult.allow("Applies to all sections")

    if snapshot is None:
        return EligibilityResult.deny("No active section available")

    current = snapshot.stage_id
    allowed = {s.lower() for s in condition.allowed_sections}
    if current is None or current.lower() not in allowed:
        return EligibilityResult.deny(f"Section '{current}' is not allowed for this special")

    if condition.require_type is not None:
        stage_type = snapshot.stage_type
        if stage_type is None or stage_type.lower() != condition.require_type.lower():
            return EligibilityResult.deny(
                f"Section type '{stage_type}' does not match required "
                f"'{condition.require_type}'"
            )

    index = snapshot.index
    if index is None:
        return EligibilityResult.deny(f"No section index available for section '{current}'")

    if condition.min_index is not None and index < condition.min_index:
        return EligibilityResult.deny(
            f"Section index {index} is below minimum required {condition.min_index}"
        )
    if condition.max_index is not None and index > condition.max_index:
        return EligibilityResult.deny(
            f"Section index {index} is above maximum allowed {condition.max_index}"
        )

    return EligibilityResult.allow("Section matches configured constraints")


def requirement_met(
    requirement: EffectRequirement | None,
    lookup: Callable[[str], ActiveEffect | None],
) -> bool:
    """True when there is no requirement or the player holds the effect strongly enough."""
    if requirement is None:
        return True
    active = lookup(requirement.effect)
    return active is not None and active.intensity >= requirement.min_amplifier
