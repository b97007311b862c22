"""
Specials admin commands

Commands:
- activate <special-id> - Grant a command-activatable special to yourself
- remove <special-id>   - Remove a special's reward from yourself
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import PermissionSettings
    from ..engine.host import PlayerId
    from ..engine.triggers import TriggerEngine
    from .router import CommandRouter


class SpecialsCommand:
    """Handler for the activate/remove commands."""

    def __init__(self, triggers: "TriggerEngine"):
        self.triggers = triggers

    def handle_activate(self, player_id: "PlayerId", args: str) -> list[str]:
        special_id = args.strip()
        if not special_id:
            return ["Usage: activate <special-id>"]
        return [self.triggers.activate(player_id, special_id).message]

    def handle_remove(self, player_id: "PlayerId", args: str) -> list[str]:
        special_id = args.strip()
        if not special_id:
            return ["Usage: remove <special-id>"]
        return [self.triggers.remove(player_id, special_id).message]

    def register(self, router: "CommandRouter", permissions: "PermissionSettings") -> None:
        router.register_handler(
            "activate",
            self.handle_activate,
            permission=permissions.activate,
            description="Activate a special for yourself",
            usage="<special-id>",
        )
        router.register_handler(
            "remove",
            self.handle_remove,
            permission=permissions.remove,
            description="Remove a special from yourself",
            usage="<special-id>",
        )
