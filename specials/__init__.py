"""
Progress Specials - config-driven bonus rules for progression hosts.

Specials grant speed multipliers, time skips or stage auto-completion when a
player satisfies a trigger while in an eligible progression stage.
"""

__version__ = "0.4.0"
