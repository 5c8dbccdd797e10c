import asyncio
import logging
import traceback
from pathlib import Path

import click
from filelock import FileLock, Timeout

DEFAULT_CONFIG_PATH = Path("~/.config/matrix-status/settings.json")


class ConsoleRenderer:
    """Prints the visible room list whenever it changes"""

    def on_visible_list_changed(self, rooms) -> None:
        if not rooms:
            click.echo("No Active Messages")
            return
        click.echo(f"--- {len(rooms)} room(s) ---")
        for room in rooms:
            marks = "".join(
                [
                    "*" if room.is_favorite else " ",
                    "E" if room.encrypted else " ",
                ]
            )
            label = f"({room.unread}) {room.name}" if room.unread > 0 else room.name
            click.echo(f"{marks} {label}  [{room.id}]")

    def on_unread_state_changed(self, any_unread: bool) -> None:
        click.echo("Unread messages waiting" if any_unread else "All caught up")


async def run_status(config, once: bool) -> None:
    """Run the status poller"""
    from matrix_status.core import StatusIndicator

    indicator = StatusIndicator(config, observer=ConsoleRenderer())
    try:
        if once:
            await indicator.refresh()
        else:
            await indicator.run()
    finally:
        await indicator.close()


@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="JSON settings file",
)
@click.option("--once", is_flag=True, default=False, help="Sync a single time and exit")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging")
@click.command()
def run(config_path: Path, once: bool, verbose: bool) -> None:
    """Poll the homeserver and print rooms with unread messages"""
    from matrix_status.core import LogManager, load_config, logger

    if verbose:
        LogManager.set_level(logger, logging.DEBUG)

    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Cannot read settings {config_path}: {e}")

    if not config.is_complete:
        raise click.ClickException(
            "Homeserver URL and access token are required "
            "(settings file or MATRIX_STATUS_HOMESERVER / MATRIX_STATUS_TOKEN)",
        )

    try:
        config.cache_dir.mkdir(parents=True, exist_ok=True)
        lock = FileLock(config.cache_dir.parent / "matrix-status.lock", timeout=5)
        with lock.acquire():
            asyncio.run(run_status(config, once))
    except KeyboardInterrupt:
        click.echo("Matrix Status stopped")
    except Timeout:
        raise click.ClickException("Another matrix-status instance is already running")
    except Exception as e:
        raise click.ClickException(f"Runtime error: {e}\n{traceback.format_exc()}")
