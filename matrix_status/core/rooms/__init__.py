from .change_detector import lists_equal
from .room_store import RoomStateStore

__all__ = ["RoomStateStore", "lists_equal"]
