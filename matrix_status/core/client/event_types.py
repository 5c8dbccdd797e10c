"""
Matrix Status data types
"""

from dataclasses import dataclass


@dataclass
class Room:
    """Canonical state of one joined room, merged across sync deltas"""

    id: str
    name: str = "Unnamed Room"
    dm_partner_id: str | None = None
    canonical_alias: str | None = None
    unread: int = 0
    timestamp: int = 0
    encrypted: bool = False
    is_direct: bool = False
    avatar_url: str | None = None
    is_favorite: bool = False
