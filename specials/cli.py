"""
Specials CLI - offline tooling for specials configs and saved data.

CONFIG defaults to $SPECIALS_CONFIG, then ./specials.yml.

Usage:
    specials validate specials.yml            Check a config, list skipped entries
    specials validate --strict specials.yml   Fail if any entry was skipped
    specials inspect <uuid> specials.yml      Show one player's saved specials
    specials locks specials.yml               List once-per-server specials consumed
"""

import logging
import sys
from pathlib import Path
from uuid import UUID

import click

from specials import __version__
from specials.config import (
    CONFIG_ENV_VAR,
    ConfigError,
    default_config_path,
    load_config_file,
    parse_settings,
)
from specials.engine.catalog import SpecialCatalog
from specials.engine.persistence import SpecialsStore

config_argument = click.argument(
    "config",
    envvar=CONFIG_ENV_VAR,
    required=False,
    type=click.Path(dir_okay=False),
)


def _load(config: str | None):
    """Read config and settings, exiting with a message on ConfigError."""
    path = Path(config) if config else default_config_path()
    try:
        document = load_config_file(path)
        settings = parse_settings(document)
    except ConfigError as exc:
        click.echo(click.style(f"Error: {exc}", fg="red"), err=True)
        sys.exit(1)
    return path, document, settings


def _store(config: Path, settings) -> SpecialsStore:
    data_folder = Path(settings.data_folder)
    if not data_folder.is_absolute():
        data_folder = config.parent / data_folder
    return SpecialsStore(
        data_folder,
        players_folder=settings.players_folder,
        global_file=settings.global_data_file,
    )


@click.group()
@click.version_option(version=__version__, prog_name="specials")
@click.option("--verbose", "-v", is_flag=True, help="Show engine log output")
def main(verbose: bool):
    """Progress Specials - config-driven progression bonuses."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@config_argument
@click.option("--strict", is_flag=True, help="Exit non-zero if any entry was skipped")
def validate(config: str | None, strict: bool):
    """Load CONFIG and report every entry that would be skipped."""
    _, document, _ = _load(config)
    catalog, warnings = SpecialCatalog.load(document)

    for warning in warnings:
        click.echo(click.style(f"  skipped {warning}", fg="yellow"))

    click.echo(
        f"{len(catalog)} specials, {len(catalog.encounters)} encounter rules, "
        f"{len(catalog.activity_hooks)} activity hooks loaded ({len(warnings)} warnings)"
    )
    if strict and warnings:
        sys.exit(1)


@main.command()
@click.argument("player_uuid")
@config_argument
def inspect(player_uuid: str, config: str | None):
    """Show the saved specials state of PLAYER_UUID."""
    path, _, settings = _load(config)
    try:
        player_id = UUID(player_uuid)
    except ValueError:
        click.echo(click.style(f"Error: not a UUID: {player_uuid}", fg="red"), err=True)
        sys.exit(1)

    record = _store(path, settings).load_player(player_id)
    if record is None:
        click.echo(f"No specials data for {player_id}")
        return

    click.echo(f"Player {player_id}")
    click.echo(f"  completed: {', '.join(sorted(record.completed)) or '-'}")
    click.echo(f"  applied:   {', '.join(sorted(record.applied)) or '-'}")
    click.echo(f"  pending:   {', '.join(record.pending()) or '-'}")
    for special_id, bonus in sorted(record.bonuses.items()):
        click.echo(f"  bonus {special_id}: +{bonus.percent:g}% skip {bonus.skip_seconds}s")
    multiplier = 1.0 + record.total_percent() / 100.0
    click.echo(f"  multiplier: x{multiplier:g}, skip {record.total_skip_seconds()}s")
    for key, victims in sorted(record.unique_encounters.items()):
        click.echo(f"  encounters {key}: {len(victims)}")


@main.command()
@config_argument
def locks(config: str | None):
    """List once-per-server specials that have been consumed."""
    path, _, settings = _load(config)
    server_locks = _store(path, settings).load_server_locks()
    if not len(server_locks):
        click.echo("No server-wide specials consumed")
        return
    for special_id in server_locks:
        holder = server_locks.holder(special_id)
        click.echo(f"{special_id}  (claimed by {holder})" if holder else special_id)


if __name__ == "__main__":
    main()
