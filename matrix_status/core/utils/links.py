"""
Links for opening and sharing rooms in the user's preferred client
"""

from urllib.parse import quote

from ..config import ClientType

QR_CODE_SERVICE = "https://api.qrserver.com/v1/create-qr-code/"
QR_CODE_SIZE = 180


def web_url(room_id: str | None = None) -> str:
    return f"https://matrix.to/#/{room_id}" if room_id else "https://matrix.to"


def element_url(room_id: str | None = None) -> str:
    return f"element://vector/webapp/#/room/{room_id}" if room_id else "element://"


def fractal_url(room_id: str | None = None) -> str:
    """
    Build a ``matrix:`` URI for Fractal

    ``!abc:example.org`` becomes
    ``matrix:roomid/abc%3Aexample.org?action=join&via=example.org``.
    The ``via`` parameter is only added when the id carries a server name.
    """
    if not room_id:
        return "matrix:"

    clean_id = room_id[1:] if room_id.startswith("!") else room_id
    encoded_id = clean_id.replace(":", "%3A")

    via = ""
    if ":" in clean_id:
        via = f"&via={clean_id.split(':')[1]}"

    return f"matrix:roomid/{encoded_id}?action=join{via}"


def client_url(client_type: ClientType, room_id: str | None = None) -> str:
    if client_type == ClientType.FRACTAL:
        return fractal_url(room_id)
    if client_type == ClientType.ELEMENT:
        return element_url(room_id)
    return web_url(room_id)


def pretty_id(room) -> str:
    """Most human-friendly identifier of a room: DM partner, alias, then id."""
    return room.dm_partner_id or room.canonical_alias or room.id


def matrix_to_url(room) -> str:
    return f"https://matrix.to/#/{pretty_id(room)}"


def qr_code_url(room, size: int = QR_CODE_SIZE) -> str:
    data = quote(matrix_to_url(room), safe="!~*'()")
    return f"{QR_CODE_SERVICE}?size={size}x{size}&data={data}"
