"""
Systems tests for the activate/remove chat commands and the CommandRouter.
"""

import pytest

from specials.commands.router import CommandRouter
from specials.engine.catalog import SpecialCatalog
from specials.engine.definitions import (
    CommandTrigger,
    RewardDefinition,
    RuleDefinition,
    SectionCondition,
)
from specials.engine.triggers import TriggerEngine

ALL_NODES = ("specials.activate", "specials.remove")


@pytest.fixture
def engine(engine_factory):
    return engine_factory()


@pytest.fixture
def admin(host, player_factory):
    player_id = player_factory("Admin")
    host.grant(player_id, *ALL_NODES)
    return player_id


# ============================================================================
# Router
# ============================================================================


@pytest.mark.systems
class TestRouter:
    def test_permission_denied(self, engine, player_factory):
        steve = player_factory()
        assert engine.handle_command(steve, "activate admin_grant") == [
            "You do not have permission to do that."
        ]
        assert steve not in engine.triggers.records

    def test_unknown_command(self, engine, admin):
        lines = engine.handle_command(admin, "grant admin_grant")
        assert lines[0] == "Unknown command 'grant'."
        assert "activate <special-id>" in lines[1]

    def test_empty_command_shows_help(self, engine, admin):
        (help_text,) = engine.handle_command(admin, "   ")
        assert "activate <special-id>" in help_text
        assert "remove <special-id>" in help_text

    def test_missing_argument(self, engine, admin):
        assert engine.handle_command(admin, "activate") == ["Usage: activate <special-id>"]
        assert engine.handle_command(admin, "remove ") == ["Usage: remove <special-id>"]

    def test_command_names_are_case_insensitive(self, engine, admin):
        assert engine.handle_command(admin, "ACTIVATE admin_grant") == [
            "Special 'admin_grant' activated."
        ]

    def test_handler_failure_is_reported_in_band(self, host, player_factory):
        router = CommandRouter(host)

        @router.register("explode", aliases=["boom"])
        def explode(player_id, args):
            raise RuntimeError("kaboom")

        assert router.dispatch(player_factory(), "boom now") == [
            "Something went wrong executing that command."
        ]

    def test_open_command_needs_no_permission(self, host, player_factory):
        router = CommandRouter(host)
        router.register_handler("ping", lambda player_id, args: [f"pong {args}"])
        assert router.dispatch(player_factory(), "ping 1") == ["pong 1"]


# ============================================================================
# activate
# ============================================================================


@pytest.mark.systems
class TestActivate:
    def test_activate_applies_reward(self, engine, host, admin):
        assert engine.handle_command(admin, "activate admin_grant") == [
            "Special 'admin_grant' activated."
        ]
        call = host.skips_for(admin)[-1]
        assert (call.skip_seconds, call.percent_delta) == (5, pytest.approx(150.0))
        assert engine.record(admin).is_applied("admin_grant")

    def test_activate_twice(self, engine, admin):
        engine.handle_command(admin, "activate admin_grant")
        assert engine.handle_command(admin, "activate admin_grant") == [
            "Special 'admin_grant' is already active."
        ]

    def test_unknown_special(self, engine, admin):
        assert engine.handle_command(admin, "activate nope") == ["Unknown special 'nope'."]

    def test_not_command_activatable(self, engine, admin):
        assert engine.handle_command(admin, "activate emerald_boost") == [
            "Special 'emerald_boost' cannot be activated by command."
        ]

    def test_once_per_server(self, engine, host, admin, player_factory):
        other = player_factory("Other")
        host.grant(other, *ALL_NODES)

        assert engine.handle_command(admin, "activate first_claim") == [
            "Special 'first_claim' activated."
        ]
        assert engine.handle_command(other, "activate first_claim") == [
            "Special 'first_claim' has already been claimed on this server."
        ]

    def test_ineligible_activation_is_not_recorded(self, host, player_factory):
        rule = RuleDefinition(
            id="vault_pass",
            trigger=CommandTrigger(),
            section=SectionCondition(allowed_sections=("vault",)),
            reward=RewardDefinition(speed_bonus_percent=10),
        )
        triggers = TriggerEngine(host, SpecialCatalog([rule]))
        steve = player_factory()
        host.put_in_stage(steve, "lobby", index=0)

        outcome = triggers.activate(steve, "vault_pass")

        assert not outcome.success
        assert "cannot apply here" in outcome.message
        assert triggers.record_for(steve).completed == set()

    def test_activation_checks_requirement(self, host, player_factory):
        rule = RuleDefinition(
            id="lucky_pass",
            trigger=CommandTrigger(),
            section=SectionCondition(applies_to_all_sections=True),
            potion_requirement={"effect": "luck", "min-amplifier": 1},
        )
        triggers = TriggerEngine(host, SpecialCatalog([rule]))
        steve = player_factory()

        outcome = triggers.activate(steve, "lucky_pass")
        assert outcome.message == "Special 'lucky_pass' requires LUCK (level 1 or higher)."

        host.give_effect(steve, "LUCK", 1)
        assert triggers.activate(steve, "lucky_pass").success

    def test_activation_sweeps_first(self, engine, host, admin):
        host.put_in_stage(admin, "farming", index=1)
        engine.triggers.on_item_pickup(admin, "emerald")
        host.put_in_stage(admin, "mining", stage_type="underground", index=3)

        engine.handle_command(admin, "activate admin_grant")
        assert engine.record(admin).is_applied("emerald_boost")


# ============================================================================
# remove
# ============================================================================


@pytest.mark.systems
class TestRemove:
    def test_remove_republishes_reduced_bonus(self, engine, host, admin):
        engine.handle_command(admin, "activate admin_grant")

        assert engine.handle_command(admin, "remove admin_grant") == [
            "Special 'admin_grant' removed."
        ]
        call = host.skips_for(admin)[-1]
        assert call.skip_seconds == -5
        assert call.percent_delta == pytest.approx(-60.0)
        assert call.reason == "Special removed: admin_grant"

    def test_once_per_player_removal_clears_completion(self, engine, admin):
        engine.handle_command(admin, "activate admin_grant")
        engine.handle_command(admin, "remove admin_grant")

        record = engine.record(admin)
        assert not record.is_completed("admin_grant")
        assert engine.triggers.sweep(admin) == []

    def test_remove_not_active(self, engine, admin):
        assert engine.handle_command(admin, "remove admin_grant") == [
            "Special 'admin_grant' is not active."
        ]

    def test_remove_unknown(self, engine, admin):
        assert engine.handle_command(admin, "remove nope") == ["Unknown special 'nope'."]

    def test_remove_keeps_server_lock(self, engine, admin, host, player_factory):
        engine.handle_command(admin, "activate first_claim")
        engine.handle_command(admin, "remove first_claim")

        assert engine.triggers.locks.is_locked("first_claim")
        assert engine.handle_command(admin, "activate first_claim") == [
            "Special 'first_claim' has already been claimed on this server."
        ]

    def test_remove_special_dropped_from_config(self, engine, admin):
        engine.handle_command(admin, "activate admin_grant")
        engine.reload({"specials": {}})

        assert engine.handle_command(admin, "remove admin_grant") == [
            "Special 'admin_grant' removed."
        ]
        assert engine.record(admin).is_empty()
