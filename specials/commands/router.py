"""
CommandRouter: Decorator-based routing for specials chat commands.

Provides:
- @router.register() decorator for handler registration
- Permission gating per command (looked up through the host)
- Alias support and a generated help listing

Handlers take (player_id, args) and return the lines to send back to the
player. Results are always in-band messages; nothing is raised to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from ..engine.host import PlayerId, ProgressionHost

logger = logging.getLogger(__name__)

CommandHandler = Callable[["PlayerId", str], List[str]]


@dataclass
class CommandMeta:
    """Metadata for a registered command."""

    name: str  # Primary command name
    handler: CommandHandler
    permission: Optional[str] = None  # Permission node, None = everyone
    description: str = ""
    usage: str = ""  # e.g. "<special-id>"
    aliases: List[str] = field(default_factory=list)


class CommandRouter:
    """
    Routes `<command> <args>` text to registered handlers.

    Usage:
        router = CommandRouter(host)

        @router.register("activate", permission="specials.activate", usage="<special-id>")
        def activate(player_id, args):
            ...

        lines = router.dispatch(player_id, "activate emerald_boost")
    """

    def __init__(self, host: "ProgressionHost") -> None:
        self.host = host
        self.commands: Dict[str, CommandMeta] = {}  # name or alias -> meta

    def register(
        self,
        name: str,
        permission: Optional[str] = None,
        description: str = "",
        usage: str = "",
        aliases: Optional[List[str]] = None,
    ) -> Callable[[CommandHandler], CommandHandler]:
        """Decorator form of register_handler."""

        def decorator(handler: CommandHandler) -> CommandHandler:
            self.register_handler(name, handler, permission, description, usage, aliases)
            return handler

        return decorator

    def register_handler(
        self,
        name: str,
        handler: CommandHandler,
        permission: Optional[str] = None,
        description: str = "",
        usage: str = "",
        aliases: Optional[List[str]] = None,
    ) -> None:
        meta = CommandMeta(
            name=name,
            handler=handler,
            permission=permission,
            description=description,
            usage=usage,
            aliases=list(aliases or []),
        )
        self.commands[name.lower()] = meta
        for alias in meta.aliases:
            self.commands[alias.lower()] = meta

    def dispatch(self, player_id: "PlayerId", raw_command: str) -> List[str]:
        """
        Parse and dispatch a command.

        Args:
            player_id: The player executing the command
            raw_command: Command text without the root command, e.g. "activate foo"

        Returns:
            Lines to send back to the player
        """
        raw = raw_command.strip()
        if not raw:
            return [self.get_help()]

        parts = raw.split(maxsplit=1)
        cmd_name = parts[0].lower()
        args = parts[1] if len(parts) > 1 else ""

        meta = self.commands.get(cmd_name)
        if meta is None:
            return [f"Unknown command '{cmd_name}'.", self.get_help()]

        if meta.permission and not self.host.has_permission(player_id, meta.permission):
            return ["You do not have permission to do that."]

        try:
            return meta.handler(player_id, args)
        except Exception:
            logger.exception("Command %s failed for %s", meta.name, player_id)
            return ["Something went wrong executing that command."]

    def get_help(self) -> str:
        lines = ["Specials commands:"]
        seen = set()
        for meta in self.commands.values():
            if meta.name in seen:
                continue
            seen.add(meta.name)
            usage = f"{meta.name} {meta.usage}".strip()
            line = f"  {usage}"
            if meta.description:
                line += f" - {meta.description}"
            lines.append(line)
        return "\n".join(lines)
