"""
Systems tests for SpecialsEngine: enable/disable, reload, save and autosave.
"""

import pytest
import yaml

from specials.config import ConfigError
from specials.engine.engine import SpecialsEngine
from tests.fixtures.specials_samples import BROKEN_YAML


@pytest.mark.systems
class TestLifecycle:
    def test_state_survives_restart(self, host, engine_factory, player_factory):
        steve = player_factory()
        engine = engine_factory()
        engine.enable(now=0.0)
        engine.triggers.on_entity_death("ender_dragon", steve)
        engine.disable()

        restarted = engine_factory()
        restarted.enable(now=0.0)

        assert restarted.record(steve) == engine.record(steve)
        assert restarted.triggers.locks.is_locked("dragon_slayer")

    def test_join_republishes_saved_bonus(self, host, engine_factory, player_factory):
        steve = player_factory()
        engine = engine_factory()
        engine.enable(now=0.0)
        engine.triggers.on_entity_death("zombie", steve)
        engine.disable()

        restarted = engine_factory()
        restarted.enable(now=0.0)
        host.time_skips.clear()
        restarted.on_player_join(steve)

        (call,) = host.skips_for(steve)
        assert call.percent_delta == pytest.approx(50.0)

    def test_rejoin_republishes_bonus(self, host, engine_factory, player_factory):
        steve = player_factory()
        engine = engine_factory()
        engine.enable(now=0.0)
        engine.on_player_join(steve)
        engine.triggers.on_entity_death("zombie", steve)

        engine.on_player_quit(steve)
        host.time_skips.clear()
        engine.on_player_join(steve)

        (call,) = host.skips_for(steve)
        assert call.percent_delta == pytest.approx(50.0)

    def test_quit_saves_player(self, engine_factory, player_factory):
        steve = player_factory()
        engine = engine_factory()
        engine.enable(now=0.0)
        engine.triggers.on_entity_death("zombie", steve)

        engine.on_player_quit(steve)

        assert engine.store.player_path(steve).is_file()

    def test_save_reports_success(self, engine_factory, player_factory):
        engine = engine_factory()
        engine.enable(now=0.0)
        engine.triggers.on_entity_death("zombie", player_factory())
        assert engine.save(now=1.0) is True
        assert engine.store.global_file.is_file()


@pytest.mark.systems
class TestAutosave:
    def test_waits_for_interval(self, engine_factory, player_factory):
        engine = engine_factory()
        engine.enable(now=100.0)
        engine.triggers.on_entity_death("zombie", player_factory())

        # autosave-interval-seconds is 60 in the sample config
        assert engine.maybe_autosave(now=130.0) is False
        assert engine.maybe_autosave(now=160.0) is True
        assert engine.maybe_autosave(now=170.0) is False

    def test_disabled_engine_never_autosaves(self, engine_factory):
        assert engine_factory().maybe_autosave(now=10_000.0) is False

    def test_zero_interval_disables_autosave(self, engine_factory, valid_document):
        document = dict(valid_document)
        document["settings"] = {**valid_document["settings"], "autosave-interval-seconds": 0}
        engine = engine_factory(document)
        engine.enable(now=0.0)
        assert engine.maybe_autosave(now=10_000.0) is False


@pytest.mark.systems
class TestReload:
    def test_reload_swaps_catalog_and_keeps_records(self, engine_factory, player_factory):
        steve = player_factory()
        engine = engine_factory()
        engine.enable(now=0.0)
        engine.triggers.on_entity_death("zombie", steve)
        old_catalog = engine.catalog

        solo = {
            "trigger": {"type": "command"},
            "section": {"applies-to-all-sections": True},
        }
        warnings = engine.reload({"specials": {"solo": solo}})

        assert warnings == []
        assert engine.catalog is not old_catalog
        assert engine.catalog.ids == ["solo"]
        assert engine.activity.catalog is engine.catalog
        assert engine.record(steve).is_applied("any_kill")

    def test_reload_from_file(self, host, config_file):
        engine = SpecialsEngine.from_config_file(host, config_file)
        config_file.write_text(yaml.safe_dump({"specials": {}}))

        engine.reload()
        assert len(engine.catalog) == 0

    def test_broken_file_keeps_previous_catalog(self, host, config_file):
        engine = SpecialsEngine.from_config_file(host, config_file)
        previous = engine.catalog
        config_file.write_text(BROKEN_YAML)

        with pytest.raises(ConfigError):
            engine.reload()
        assert engine.catalog is previous

    def test_reload_without_source(self, engine_factory):
        with pytest.raises(ValueError):
            engine_factory().reload()


@pytest.mark.systems
class TestFromConfigFile:
    def test_data_folder_is_relative_to_config(self, host, config_file, tmp_path):
        engine = SpecialsEngine.from_config_file(host, config_file)
        assert engine.store.data_folder == tmp_path / "data"
        assert engine.settings.autosave_interval_seconds == 60
        assert len(engine.catalog) == 8

    def test_missing_file(self, host, tmp_path):
        with pytest.raises(ConfigError):
            SpecialsEngine.from_config_file(host, tmp_path / "missing.yml")

    def test_invalid_settings(self, host, tmp_path):
        path = tmp_path / "specials.yml"
        path.write_text("settings:\n  autosave-interval-seconds: -1\n")
        with pytest.raises(ConfigError):
            SpecialsEngine.from_config_file(host, path)

    def test_non_mapping_document(self, host, tmp_path):
        path = tmp_path / "specials.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            SpecialsEngine.from_config_file(host, path)

    def test_lock_policy_comes_from_settings(self, host, tmp_path):
        path = tmp_path / "specials.yml"
        path.write_text("settings:\n  server-lock-on-requirement-miss: false\nspecials: {}\n")
        engine = SpecialsEngine.from_config_file(host, path)
        assert engine.triggers.config.server_lock_on_requirement_miss is False
