"""Chat command surface for specials."""

from .router import CommandMeta, CommandRouter
from .specials import SpecialsCommand

__all__ = ["CommandMeta", "CommandRouter", "SpecialsCommand"]
