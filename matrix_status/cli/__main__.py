import click

from .. import __version__
from .commands import link, run


@click.group()
@click.version_option(__version__, prog_name="matrix-status")
def cli() -> None:
    """Matrix Status: unread and favourite rooms from your homeserver"""


cli.add_command(run)
cli.add_command(link)


if __name__ == "__main__":
    cli()
