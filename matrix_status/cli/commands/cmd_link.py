import click

from matrix_status.core.config import ClientType
from matrix_status.core.utils.links import client_url


@click.argument("room_id", required=False)
@click.option(
    "--client",
    "client_name",
    type=click.Choice([c.name.lower() for c in ClientType]),
    default="web",
    show_default=True,
    help="Client the link opens in",
)
@click.command()
def link(room_id: str | None, client_name: str) -> None:
    """Print the URI that opens ROOM_ID in a Matrix client"""
    click.echo(client_url(ClientType[client_name.upper()], room_id))
