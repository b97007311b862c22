"""
Global pytest configuration and shared fixtures.

Provides common test infrastructure for all test suites including:
- RecordingHost (in-memory progression host)
- Catalog and engine factories built from sample YAML
- Player id factory
- Temporary config/data folders
"""

import sys
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import yaml

# Add repo root to path
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from specials.config import parse_settings  # noqa: E402
from specials.engine.catalog import SpecialCatalog  # noqa: E402
from specials.engine.engine import SpecialsEngine  # noqa: E402
from specials.engine.triggers import TriggerConfig, TriggerEngine  # noqa: E402
from tests.fixtures.host import RecordingHost  # noqa: E402
from tests.fixtures.specials_samples import VALID_CONFIG  # noqa: E402

# ============================================================================
# Host Fixtures
# ============================================================================


@pytest.fixture
def host() -> RecordingHost:
    """Create an empty RecordingHost."""
    return RecordingHost()


@pytest.fixture
def player_factory(host: RecordingHost):
    """Factory for player ids registered with the host under a name."""

    def _create_player(name: str = "Steve") -> UUID:
        player_id = uuid4()
        host.names[player_id] = name
        return player_id

    return _create_player


# ============================================================================
# Catalog / Engine Fixtures
# ============================================================================


@pytest.fixture
def valid_document() -> dict:
    return yaml.safe_load(VALID_CONFIG)


@pytest.fixture
def catalog(valid_document: dict) -> SpecialCatalog:
    """Catalog built from the valid sample config."""
    loaded, warnings = SpecialCatalog.load(valid_document)
    assert warnings == []
    return loaded


@pytest.fixture
def trigger_engine_factory(host: RecordingHost, catalog: SpecialCatalog):
    """Factory for TriggerEngine instances over the sample catalog."""

    def _create(**config) -> TriggerEngine:
        return TriggerEngine(host, catalog, config=TriggerConfig(**config))

    return _create


@pytest.fixture
def triggers(trigger_engine_factory) -> TriggerEngine:
    return trigger_engine_factory()


@pytest.fixture
def engine_factory(host: RecordingHost, valid_document: dict, tmp_path: Path):
    """Factory for SpecialsEngine instances with data under tmp_path."""

    def _create(document: dict | None = None) -> SpecialsEngine:
        document = valid_document if document is None else document
        return SpecialsEngine(host, parse_settings(document), document, base_dir=tmp_path)

    return _create


# ============================================================================
# Temporary File System Fixtures
# ============================================================================


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write the valid sample config to a temporary specials.yml."""
    path = tmp_path / "specials.yml"
    path.write_text(VALID_CONFIG, encoding="utf-8")
    return path
